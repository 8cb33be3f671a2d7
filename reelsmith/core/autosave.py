"""Debounced persistence for the timeline.

The timeline model only announces ``changed``; `AutoSaver` waits until edits
have been quiet for ``delay_ms`` and then writes one snapshot through the
store. Save errors are logged and never reach the model.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .project import EditorStateStore
from .timeline import TimelineModel

logger = logging.getLogger(__name__)


class Debouncer(QObject):
    """Run ``callback`` once, ``delay_ms`` after the last `trigger` call."""

    def __init__(self, callback: Callable[[], None], delay_ms: int, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._callback = callback
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(delay_ms)))
        self._timer.timeout.connect(self._fire)

    def trigger(self):
        self._timer.start()  # restarts if already pending

    def pending(self) -> bool:
        return self._timer.isActive()

    def cancel(self):
        self._timer.stop()

    def flush(self):
        """Run a pending callback now instead of waiting for the timer."""
        if self._timer.isActive():
            self._timer.stop()
            self._fire()

    def _fire(self):
        self._callback()


class AutoSaver(QObject):
    saved = Signal(str)  # path of the written state file
    saveFailed = Signal(str)

    def __init__(
        self,
        model: TimelineModel,
        store: EditorStateStore,
        project_name: str,
        delay_ms: int = 500,
        preview_path: Callable[[], Optional[str]] = lambda: None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._model = model
        self._store = store
        self._project = project_name
        self._preview_path = preview_path
        self._enabled = True
        self._debouncer = Debouncer(self.save_now, delay_ms, self)
        model.changed.connect(self._onChanged)

    def set_enabled(self, enabled: bool):
        """Pause autosave, e.g. while the initial state is being loaded."""
        self._enabled = enabled
        if not enabled:
            self._debouncer.cancel()

    def pending(self) -> bool:
        return self._debouncer.pending()

    def schedule(self):
        """Request a save for state the model does not signal (e.g. preview path)."""
        if self._enabled:
            self._debouncer.trigger()

    def flush(self):
        self._debouncer.flush()

    def save_now(self):
        state = self._model.to_state(preview_video_path=self._preview_path())
        try:
            path = self._store.save_editor_state(self._project, state)
        except OSError as e:
            logger.error("failed to save editor state for %s: %s", self._project, e)
            self.saveFailed.emit(str(e))
            return
        self.saved.emit(str(path))

    def _onChanged(self):
        self.schedule()


__all__ = ["AutoSaver", "Debouncer"]
