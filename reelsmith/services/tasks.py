"""Run blocking work off the GUI thread and resume on it.

Polls, downloads and image rendering block on I/O. `QtTaskRunner` runs them
on a QThreadPool and hands the outcome back through a signal connected to a
slot of the runner itself. Because the runner lives on the thread that created
it, Qt queues that delivery, so callbacks always execute on the owner's thread
and the tracker/cache maps never need locks.

Anything with a compatible ``submit(fn, on_success, on_failure)`` can stand in
for the runner (tests use a manual one to control completion order).
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[BaseException], None]


class TaskRunner(Protocol):
    def submit(
        self,
        fn: Callable[[], Any],
        on_success: SuccessCallback,
        on_failure: Optional[FailureCallback] = None,
    ) -> None: ...


class _Task(QRunnable):
    def __init__(self, fn: Callable[[], Any], token: int, done: Any):
        super().__init__()
        self._fn = fn
        self._token = token
        self._done = done
        self.setAutoDelete(True)

    def run(self):  # executed in pool thread
        try:
            result = self._fn()
        except Exception as e:  # delivered to on_failure on the owner thread
            self._done.emit(self._token, False, e)
            return
        self._done.emit(self._token, True, result)


class QtTaskRunner(QObject):
    _done = Signal(int, bool, object)

    def __init__(self, parent: Optional[QObject] = None, pool: Optional[QThreadPool] = None):
        super().__init__(parent)
        self._pool = pool or QThreadPool.globalInstance()
        self._tokens = itertools.count(1)
        self._callbacks: Dict[int, Tuple[SuccessCallback, Optional[FailureCallback]]] = {}
        self._done.connect(self._deliver)

    def submit(
        self,
        fn: Callable[[], Any],
        on_success: SuccessCallback,
        on_failure: Optional[FailureCallback] = None,
    ) -> None:
        token = next(self._tokens)
        self._callbacks[token] = (on_success, on_failure)
        self._pool.start(_Task(fn, token, self._done))

    def pending(self) -> int:
        return len(self._callbacks)

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until the pool is idle (results are still delivered later)."""
        return self._pool.waitForDone(msecs)

    @Slot(int, bool, object)
    def _deliver(self, token: int, ok: bool, payload: object):
        on_success, on_failure = self._callbacks.pop(token, (None, None))
        if ok:
            if on_success is not None:
                on_success(payload)
        elif on_failure is not None:
            on_failure(payload)  # type: ignore[arg-type]
        else:
            logger.error("background task failed with no handler: %s", payload)


__all__ = ["QtTaskRunner", "TaskRunner"]
