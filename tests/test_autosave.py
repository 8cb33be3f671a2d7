from reelsmith.core.autosave import AutoSaver
from reelsmith.core.clip import SourceClip
from reelsmith.core.project import EditorStateStore
from reelsmith.core.timeline import TimelineModel


class CountingStore(EditorStateStore):
    def __init__(self, workspace, error=None):
        super().__init__(workspace)
        self.saves = []
        self.error = error

    def save_editor_state(self, project_name, state):
        if self.error is not None:
            raise self.error
        self.saves.append(state)
        return super().save_editor_state(project_name, state)


def _source(name):
    return SourceClip(id=name, name=name, video_path=f"/v/{name}.mp4", original_duration=3.0)


def test_burst_of_edits_saves_once(qapp, tmp_path, spin):
    model = TimelineModel()
    store = CountingStore(tmp_path)
    saver = AutoSaver(model, store, "demo", delay_ms=20, preview_path=lambda: "/tmp/preview.mp4")
    saved = []
    saver.saved.connect(saved.append)

    for name in "abc":
        model.add_clip(_source(name))
    assert saver.pending()
    assert store.saves == []
    spin(100)

    assert len(store.saves) == 1
    assert len(store.saves[0].clips) == 3
    assert store.saves[0].preview_video_path == "/tmp/preview.mp4"
    assert saved == [str(store.paths("demo").editor_state_file())]
    assert store.load_editor_state("demo").clips == list(model.clips)


def test_flush_writes_pending_save(qapp, tmp_path):
    model = TimelineModel()
    store = CountingStore(tmp_path)
    saver = AutoSaver(model, store, "demo", delay_ms=10000)
    model.add_clip(_source("a"))
    saver.flush()
    assert len(store.saves) == 1
    assert not saver.pending()
    saver.flush()
    assert len(store.saves) == 1


def test_disabled_saver_ignores_changes(qapp, tmp_path, spin):
    model = TimelineModel()
    store = CountingStore(tmp_path)
    saver = AutoSaver(model, store, "demo", delay_ms=10)
    saver.set_enabled(False)
    model.add_clip(_source("a"))
    spin(50)
    assert store.saves == []


def test_save_error_is_reported_not_raised(qapp, tmp_path):
    model = TimelineModel()
    store = CountingStore(tmp_path, error=PermissionError("read-only"))
    saver = AutoSaver(model, store, "demo", delay_ms=10000)
    failures = []
    saver.saveFailed.connect(failures.append)
    model.add_clip(_source("a"))
    saver.flush()
    assert failures == ["read-only"]
