"""Editing session: the per-project bundle of timeline, caches and tracker.

The session owns one instance of each store so their lifetime matches the
open project. It wires them only where the wiring is bookkeeping (autosave,
dropping cache entries of removed clips); the timeline, caches and tracker
never call one another.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from .config import Settings, get_settings
from .core.autosave import AutoSaver
from .core.clip import PlacedClip, SourceClip
from .core.duration import timeline_scale
from .core.project import EditorStateStore
from .core.timeline import TimelineModel
from .media.clip_adapter import ClipAdapter
from .media.render import MediaRenderer
from .services.derived_assets import AssetRenderer, DerivedAssetCache
from .services.export import ExportSettings, assemble_timeline_preview, specs_for
from .services.jobs import JobStatusTracker
from .services.tasks import QtTaskRunner, TaskRunner
from .services.video_api import RemoteJobClient

logger = logging.getLogger(__name__)


def probe_source(path: str | Path, clip_id: Optional[str] = None, name: Optional[str] = None) -> SourceClip:
    """Open a media file and describe it as a SourceClip (blocking)."""
    p = Path(path)
    with ClipAdapter.from_path(str(p)) as adapter:
        duration = adapter.duration
    if duration <= 0:
        raise ValueError(f"media has no duration: {p}")
    return SourceClip(
        id=clip_id or p.stem,
        name=name or p.stem,
        video_path=str(p),
        original_duration=duration,
    )


class EditingSession(QObject):
    clipImported = Signal(object)  # PlacedClip
    importFailed = Signal(str, str)  # path, message
    previewReady = Signal(str)
    previewFailed = Signal(str)

    def __init__(
        self,
        project_name: str,
        settings: Optional[Settings] = None,
        store: Optional[EditorStateStore] = None,
        client: Optional[RemoteJobClient] = None,
        runner: Optional[TaskRunner] = None,
        renderer: Optional[AssetRenderer] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.settings = settings or get_settings()
        self.project_name = project_name
        self.store = store or EditorStateStore(self.settings.workspace_dir)
        self.paths = self.store.paths(project_name).ensure()
        self.runner = runner or QtTaskRunner(self)
        self.preview_path: Optional[str] = None

        self.timeline = TimelineModel(self)
        renderer = renderer or MediaRenderer(self.paths)
        self.waveforms = DerivedAssetCache.waveforms(renderer, self.settings, runner=self.runner, parent=self)
        self.thumbnails = DerivedAssetCache.thumbnail_strips(renderer, self.settings, runner=self.runner, parent=self)
        self.jobs: Optional[JobStatusTracker] = None
        if client is not None:
            self.jobs = JobStatusTracker(
                client,
                self.paths.video_file,
                runner=self.runner,
                poll_interval=self.settings.poll_interval_seconds,
                parent=self,
            )
        self.autosave = AutoSaver(
            self.timeline,
            self.store,
            project_name,
            delay_ms=self.settings.autosave_delay_ms,
            preview_path=lambda: self.preview_path,
            parent=self,
        )
        self.timeline.changed.connect(self._pruneCaches)

    # --- Persistence ---
    def load(self) -> bool:
        """Load the saved timeline; returns False when starting empty."""
        self.autosave.set_enabled(False)
        try:
            try:
                state = self.store.load_editor_state(self.project_name)
            except (OSError, ValueError) as e:
                logger.error("could not load editor state for %s: %s", self.project_name, e)
                state = None
            self.timeline.load_state(state)
            self.preview_path = state.preview_video_path if state else None
        finally:
            self.autosave.set_enabled(True)
        return state is not None

    def close(self):
        self.autosave.flush()

    # --- Derived assets ---
    def refresh_assets(self, container_width: float) -> float:
        """Run one render pass for both caches and return the scale used."""
        pps = timeline_scale(self.timeline.total_duration, container_width)
        clips = self.timeline.clips
        self.waveforms.refresh(clips, pps)
        self.thumbnails.refresh(clips, pps)
        return pps

    def _pruneCaches(self):
        present = {c.id for c in self.timeline.clips}
        for cache in (self.waveforms, self.thumbnails):
            for clip_id in cache.known_ids() - present:
                cache.forget(clip_id)

    # --- Clips ---
    def import_clip(
        self,
        path: str | Path,
        name: Optional[str] = None,
        clip_id: Optional[str] = None,
        on_added: Optional[Callable[[PlacedClip], None]] = None,
    ) -> None:
        """Probe ``path`` in the background and append it to the timeline."""

        def added(source: SourceClip):
            placed = self.timeline.add_clip(source)
            self.clipImported.emit(placed)
            if on_added is not None:
                on_added(placed)

        def failed(error: BaseException):
            logger.error("import of %s failed: %s", path, error)
            self.importFailed.emit(str(path), str(error))

        self.runner.submit(lambda: probe_source(path, clip_id=clip_id, name=name), added, failed)

    def import_job_result(self, job_id: str, name: Optional[str] = None) -> bool:
        """Add the downloaded media of a completed job; False if not ready."""
        if self.jobs is None:
            return False
        record = self.jobs.get_status(job_id)
        if record is None or record.resolved_media_ref is None:
            return False
        self.import_clip(record.resolved_media_ref, name=name, clip_id=job_id)
        return True

    # --- Preview ---
    def create_preview(self, settings: Optional[ExportSettings] = None) -> None:
        clips = self.timeline.clips
        if not clips:
            self.previewFailed.emit("no clips to preview")
            return
        specs = specs_for(clips)
        output = self.paths.preview_file()

        def done(path: str):
            self.preview_path = path
            self.autosave.schedule()
            self.previewReady.emit(path)

        def failed(error: BaseException):
            logger.error("preview for %s failed: %s", self.project_name, error)
            self.previewFailed.emit(str(error))

        self.runner.submit(lambda: assemble_timeline_preview(specs, output, settings), done, failed)


__all__ = ["EditingSession", "probe_source"]
