import pytest

from reelsmith.core.clip import PlacedClip, SourceClip
from reelsmith.services.derived_assets import AssetKind, DerivedAssetCache


class FakeRenderer:
    def __init__(self, result="png", error=None):
        self.calls = []
        self.result = result
        self.error = error

    def compute_waveform_image(self, clip, width, height):
        self.calls.append(("waveform", clip.id, width, height))
        return self._answer(clip, width)

    def compute_thumbnail_strip(self, clip, width, height):
        self.calls.append(("strip", clip.id, width, height))
        return self._answer(clip, width)

    def _answer(self, clip, width):
        if self.error is not None:
            raise self.error
        if self.result is None:
            return None
        return f"/cache/{clip.id}_{width}.{self.result}"


def _clip(duration=4.0, clip_id="clip_a"):
    source = SourceClip(id="src", name="src", video_path="/videos/src.mp4", original_duration=duration)
    return PlacedClip(id=clip_id, source=source, trim_start=0.0, trim_end=duration)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def cache(qapp, renderer, runner):
    return DerivedAssetCache(AssetKind.WAVEFORM, renderer, min_width=300, height=60, runner=runner)


def test_first_request_dispatches_and_caches(cache, renderer, runner):
    clip = _clip()
    ready = []
    cache.assetReady.connect(lambda *args: ready.append(args))

    assert cache.request(clip, 300)
    assert cache.is_loading(clip.id)
    assert cache.get_derived_asset(clip.id, 300) == (False, None)
    runner.run_all()

    assert cache.get_derived_asset(clip.id, 300) == (True, "/cache/clip_a_300.png")
    assert cache.current(clip.id) == "/cache/clip_a_300.png"
    assert not cache.is_loading(clip.id)
    assert renderer.calls == [("waveform", "clip_a", 300, 60)]
    assert ready == [("clip_a", 300, "/cache/clip_a_300.png")]


def test_duplicate_requests_are_coalesced(cache, renderer, runner):
    clip = _clip()
    assert cache.request(clip, 300)
    assert not cache.request(clip, 300)
    assert not cache.request(clip, 300)
    runner.run_all()
    assert not cache.request(clip, 300)
    assert len(renderer.calls) == 1
    assert runner.pending == []


def test_width_change_creates_new_entry(cache, renderer, runner):
    clip = _clip()
    cache.request(clip, 300)
    runner.run_all()
    cache.request(clip, 600)
    assert cache.current(clip.id) is None
    runner.run_all()

    assert cache.get_derived_asset(clip.id, 300)[0]
    assert cache.get_derived_asset(clip.id, 600) == (True, "/cache/clip_a_600.png")
    assert cache.current(clip.id) == "/cache/clip_a_600.png"
    assert len(renderer.calls) == 2


def test_stale_width_result_is_dropped(cache, runner):
    clip = _clip()
    cache.request(clip, 300)
    cache.request(clip, 450)
    runner.run_next()  # the 300px result arrives after the zoom changed

    assert cache.get_derived_asset(clip.id, 300) == (False, None)
    assert cache.is_loading(clip.id)
    runner.run_next()
    assert cache.current(clip.id) == "/cache/clip_a_450.png"


def test_returning_to_in_flight_width_keeps_its_result(cache, renderer, runner):
    clip = _clip()
    assert cache.request(clip, 300)
    assert cache.request(clip, 600)
    assert not cache.request(clip, 300)  # zoomed back while 300px is still rendering
    assert len(renderer.calls) == 0

    runner.run_at(1)  # 600px finishes first and is no longer wanted
    assert cache.get_derived_asset(clip.id, 600) == (False, None)
    runner.run_next()

    assert cache.get_derived_asset(clip.id, 300) == (True, "/cache/clip_a_300.png")
    assert cache.current(clip.id) == "/cache/clip_a_300.png"
    assert not cache.is_loading(clip.id)


def test_no_asset_is_cached_and_not_retried(qapp, runner):
    renderer = FakeRenderer(result=None)
    cache = DerivedAssetCache(AssetKind.WAVEFORM, renderer, 300, 60, runner=runner)
    clip = _clip()
    cache.request(clip, 300)
    runner.run_all()
    assert cache.get_derived_asset(clip.id, 300) == (True, None)
    assert not cache.request(clip, 300)
    assert len(renderer.calls) == 1


def test_renderer_error_is_cached_as_no_asset(qapp, runner):
    renderer = FakeRenderer(error=OSError("cannot decode"))
    cache = DerivedAssetCache(AssetKind.THUMBNAIL_STRIP, renderer, 100, 38, runner=runner)
    clip = _clip()
    cache.request(clip, 120)
    runner.run_all()
    assert cache.get_derived_asset(clip.id, 120) == (True, None)
    assert renderer.calls == [("strip", "clip_a", 120, 38)]
    assert not cache.is_loading(clip.id)


def test_width_for_uses_zoom_and_minimum(cache):
    assert cache.width_for(_clip(2.0), 100) == 300
    assert cache.width_for(_clip(8.0), 100) == 800
    assert cache.width_for(_clip(4.25), 99.9) == 424


def test_refresh_requests_every_clip(cache, renderer, runner):
    clips = [_clip(5, "a"), _clip(1, "b")]
    cache.refresh(clips, 100)
    runner.run_all()
    assert sorted(c[1:3] for c in renderer.calls) == [("a", 500), ("b", 300)]
    cache.refresh(clips, 100)
    assert runner.pending == []


def test_forget_drops_clip_entries(cache, runner):
    a, b = _clip(clip_id="a"), _clip(clip_id="b")
    cache.request(a, 300)
    cache.request(b, 300)
    runner.run_all()
    assert cache.known_ids() == {"a", "b"}
    cache.forget("a")
    assert cache.known_ids() == {"b"}
    assert cache.get_derived_asset("a", 300) == (False, None)
    assert len(cache) == 1


def test_factories_use_settings(qapp, renderer, runner):
    from reelsmith.config import Settings

    settings = Settings(_env_file=None)
    waveforms = DerivedAssetCache.waveforms(renderer, settings, runner=runner)
    strips = DerivedAssetCache.thumbnail_strips(renderer, settings, runner=runner)
    assert waveforms.kind is AssetKind.WAVEFORM
    assert strips.kind is AssetKind.THUMBNAIL_STRIP
    assert waveforms.width_for(_clip(1.0), 10) == 300
    assert strips.width_for(_clip(1.0), 10) == 100
    strips.request(_clip(), 100)
    runner.run_all()
    assert renderer.calls[-1] == ("strip", "clip_a", 100, 38)
