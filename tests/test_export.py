import pytest

from reelsmith.media.clip_adapter import ClipAdapter
from reelsmith.services.export import ClipSpec, ExportSettings, assemble_timeline_preview, export_video, start_times


def test_start_times_without_transitions():
    specs = [ClipSpec("a.mp4", 0, 8), ClipSpec("b.mp4", 0, 6), ClipSpec("c.mp4", 0, 5)]
    assert start_times(specs) == [0, 8, 14]


def test_start_times_with_transitions():
    specs = [
        ClipSpec("a.mp4", 0, 8, "fade", 1.0),
        ClipSpec("b.mp4", 0, 6, "fade", 1.0),
        ClipSpec("c.mp4", 0, 5, "fade", 3.0),  # last clip: ignored
    ]
    assert start_times(specs) == [0, 7, 12]


def test_start_times_clamps_overlap():
    specs = [ClipSpec("a.mp4", 0, 4, "fade", 10.0), ClipSpec("b.mp4", 1, 2)]
    assert start_times(specs) == [0, 3]


def test_empty_preview_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        assemble_timeline_preview([], tmp_path / "out.mp4")


def test_missing_media_is_rejected(tmp_path):
    out = tmp_path / "out.mp4"
    with pytest.raises(FileNotFoundError):
        assemble_timeline_preview([ClipSpec(str(tmp_path / "nope.mp4"), 0, 1)], out)
    assert not out.exists()


def test_concatenated_preview(tmp_path, make_video):
    a = make_video("a.mp4", duration=1.0)
    b = make_video("b.mp4", duration=1.0, color=(0, 0, 255))
    progress = []
    out = assemble_timeline_preview(
        [ClipSpec(str(a), 0, 1.0), ClipSpec(str(b), 0.5, 1.0)],
        tmp_path / "temp" / "preview.mp4",
        ExportSettings(fps=12, preset="ultrafast"),
        progress=progress.append,
    )
    with ClipAdapter.from_path(out) as clip:
        assert clip.duration == pytest.approx(1.5, abs=0.15)
    assert progress[-1] == 1.0


def test_cross_fade_overlaps_clips(tmp_path, make_video):
    a = make_video("a.mp4", duration=1.0)
    b = make_video("b.mp4", duration=1.0)
    out = assemble_timeline_preview(
        [ClipSpec(str(a), 0, 1.0, "fade", 0.5), ClipSpec(str(b), 0, 1.0)],
        tmp_path / "preview.mp4",
        ExportSettings(fps=12, preset="ultrafast"),
    )
    with ClipAdapter.from_path(out) as clip:
        assert clip.duration == pytest.approx(1.5, abs=0.15)


def test_export_copies_preview(tmp_path):
    preview = tmp_path / "preview.mp4"
    preview.write_bytes(b"video")
    dest = export_video(preview, tmp_path / "out" / "final.mp4")
    assert (tmp_path / "out" / "final.mp4").read_bytes() == b"video"
    assert dest.endswith("final.mp4")


def test_export_without_preview_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        export_video(tmp_path / "missing.mp4", tmp_path / "final.mp4")
