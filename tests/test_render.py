import numpy as np
import pytest
from PIL import Image

from reelsmith.core.clip import PlacedClip, SourceClip
from reelsmith.core.project import ProjectPaths
from reelsmith.media.render import MediaRenderer, rms_envelope, strip_layout


def _placed(path, duration, clip_id="clip_1", trim=None):
    source = SourceClip(id="src", name="src", video_path=str(path), original_duration=duration)
    start, end = trim or (0.0, duration)
    return PlacedClip(id=clip_id, source=source, trim_start=start, trim_end=end)


@pytest.fixture
def renderer(tmp_path):
    return MediaRenderer(ProjectPaths(tmp_path / "project").ensure())


def test_rms_envelope_normalizes_to_peak():
    samples = np.concatenate([np.zeros(100), np.full(100, 0.25), np.full(200, 0.5)])
    env = rms_envelope(samples, 4)
    assert env.shape == (4,)
    assert env[0] == 0
    assert env.max() == pytest.approx(1.0)
    assert 0 < env[1] < env[2]


def test_rms_envelope_of_silence_is_flat():
    assert not rms_envelope(np.zeros((50, 2)), 10).any()


def test_strip_layout():
    assert strip_layout(4.0, 300)[:2] == (6, 50)
    count, frame_width, times = strip_layout(0.5, 300)
    assert (count, frame_width) == (5, 60)
    assert times == pytest.approx([0.0, 0.1, 0.2, 0.3, 0.4])
    assert strip_layout(0.0, 10)[0] >= 1


def test_thumbnail_strip_tiles_frames(renderer, make_video):
    video = make_video(duration=1.0, color=(255, 0, 0))
    clip = _placed(video, 1.0)
    path = renderer.compute_thumbnail_strip(clip, 120, 38)

    with Image.open(path) as image:
        assert image.size == (120, 38)
        r, g, b = image.convert("RGB").getpixel((10, 10))
        assert r > 200 and g < 60 and b < 60


def test_existing_asset_is_reused(renderer, make_video, tmp_path):
    video = make_video(duration=1.0)
    clip = _placed(video, 1.0)
    first = renderer.compute_thumbnail_strip(clip, 120, 38)
    video.unlink()  # a cached file must not need the media
    assert renderer.compute_thumbnail_strip(clip, 120, 38) == first


def test_waveform_without_audio_is_none(renderer, make_video):
    video = make_video(duration=1.0)
    assert renderer.compute_waveform_image(_placed(video, 1.0), 300, 60) is None


def test_waveform_image(renderer, make_video):
    video = make_video(duration=1.0, audio=True)
    clip = _placed(video, 1.0, trim=(0.2, 0.9))
    path = renderer.compute_waveform_image(clip, 300, 60)
    assert path.endswith("clip_1_300.png")
    with Image.open(path) as image:
        assert image.mode == "RGBA"
        assert image.size == (300, 60)
        assert image.getpixel((150, 30))[3] == 255


def test_missing_media_raises(renderer, tmp_path):
    clip = _placed(tmp_path / "gone.mp4", 3.0)
    with pytest.raises(FileNotFoundError):
        renderer.compute_thumbnail_strip(clip, 300, 38)
    with pytest.raises(FileNotFoundError):
        renderer.compute_waveform_image(clip, 300, 60)
