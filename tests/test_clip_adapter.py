import pytest

from reelsmith.media.clip_adapter import ClipAdapter


def test_clip_adapter_basic(make_video):
    video_path = make_video("color.mp4", duration=0.5)
    adapter = ClipAdapter.from_path(str(video_path))
    assert adapter.duration == pytest.approx(0.5, abs=0.05)
    assert adapter.size == (32, 32)
    frame = adapter.get_frame(0.1)
    assert frame.shape[0] == 32 and frame.shape[1] == 32
    assert not adapter.has_audio
    assert adapter.audio_array() is None  # ColorClip has no audio
    adapter.close()


def test_subclip_shares_reader(make_video):
    video_path = make_video("color.mp4", duration=1.0)
    with ClipAdapter.from_path(str(video_path)) as adapter:
        sub = adapter.subclip(0.25, 5.0)
        assert sub.duration == pytest.approx(adapter.duration - 0.25, abs=0.05)
        sub.close()  # no-op, the parent still reads
        assert sub.get_frame(0.1).shape[:2] == (32, 32)
