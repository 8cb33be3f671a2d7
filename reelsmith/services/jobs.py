"""Status tracking for remote video-generation jobs.

Job completion is only observable by polling. `JobStatusTracker` keeps one
record per job id and guarantees, per id:

 - at most one poll loop, started by the first observer and stopped when the
   job reaches a terminal status or the last observer releases it;
 - strictly sequential polls: the next poll is scheduled ``poll_interval``
   after the previous response has been applied;
 - a local-existence check before any network poll, so media downloaded in an
   earlier session is picked up without polling;
 - a single "materialize" (download to the project's videos folder) once the
   job completes, gated by a one-shot flag set before the download starts.

Terminal statuses are latched. Poll errors are logged and retried on the next
period. A failed download keeps the record completed, emits ``downloadFailed``
and is not retried automatically; call `retry_materialize` to try again.

All bookkeeping happens on the tracker's thread; blocking calls go through the
injected task runner.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .tasks import QtTaskRunner, TaskRunner
from .video_api import JobStatus, PollResult, RemoteJobClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0  # seconds


@dataclass(frozen=True)
class JobStatusRecord:
    job_id: str
    status: JobStatus
    progress: float = 0.0
    resolved_media_ref: Optional[str] = None
    error: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status.terminal


class _JobState:
    """Per-id bookkeeping that is not part of the public record."""

    def __init__(self):
        self.observers = 0
        self.local_check_started = False
        self.local_check_pending = False
        self.polling = False
        self.poll_in_flight = False
        self.timer: Optional[QTimer] = None
        self.materialize_started = False


class JobStatusTracker(QObject):
    statusChanged = Signal(str, object)  # job id, JobStatusRecord
    downloadFailed = Signal(str, str)  # job id, message
    jobSubmitted = Signal(str)
    submitFailed = Signal(str)

    def __init__(
        self,
        client: RemoteJobClient,
        media_path_for: Callable[[str], Path],
        runner: Optional[TaskRunner] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        exists: Callable[[str], bool] = os.path.exists,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._client = client
        self._media_path_for = media_path_for
        self._runner = runner or QtTaskRunner(self)
        self._poll_interval_ms = max(0, int(poll_interval * 1000))
        self._exists = exists
        self._records: Dict[str, JobStatusRecord] = {}
        self._jobs: Dict[str, _JobState] = {}

    # --- Queries ---
    def get_status(self, job_id: str) -> Optional[JobStatusRecord]:
        return self._records.get(job_id)

    def records(self) -> Dict[str, JobStatusRecord]:
        return dict(self._records)

    def is_polling(self, job_id: str) -> bool:
        state = self._jobs.get(job_id)
        return bool(state and state.polling)

    def observer_count(self, job_id: str) -> int:
        state = self._jobs.get(job_id)
        return state.observers if state else 0

    # --- Observation ---
    def observe(self, job_id: str) -> Optional[JobStatusRecord]:
        """Register interest in ``job_id`` and make sure it is being tracked.

        Returns the current record (None until the first observation lands).
        """
        state = self._jobs.setdefault(job_id, _JobState())
        state.observers += 1
        record = self._records.get(job_id)
        if record is not None and record.terminal:
            if record.status is JobStatus.COMPLETED and record.resolved_media_ref is None:
                self._materialize(job_id)
            return record
        if not state.local_check_started:
            state.local_check_started = True
            state.local_check_pending = True
            path = str(self._media_path_for(job_id))
            self._runner.submit(
                partial(self._exists, path),
                partial(self._onLocalChecked, job_id),
                partial(self._onLocalCheckFailed, job_id),
            )
        elif not state.local_check_pending:
            self._start_polling(job_id)
        return record

    def release(self, job_id: str) -> None:
        state = self._jobs.get(job_id)
        if state is None or state.observers == 0:
            return
        state.observers -= 1
        if state.observers == 0:
            self._stop_polling(job_id)

    def submit(self, params: Dict[str, Any]) -> None:
        """Submit a new job in the background and start observing it.

        The observation is taken on the caller's behalf: once ``jobSubmitted``
        delivers the id, the caller owns that reference and must call
        ``release(job_id)`` when it no longer needs updates.
        """
        self._runner.submit(
            partial(self._client.submit_job, params),
            self._onSubmitted,
            self._onSubmitFailed,
        )

    def retry_materialize(self, job_id: str) -> bool:
        """Retry the download of a completed job that has no local media."""
        record = self._records.get(job_id)
        if record is None or record.status is not JobStatus.COMPLETED:
            return False
        if record.resolved_media_ref is not None:
            return False
        state = self._jobs.setdefault(job_id, _JobState())
        state.materialize_started = False
        self._materialize(job_id)
        return True

    # --- Poll loop ---
    def _start_polling(self, job_id: str):
        state = self._jobs[job_id]
        record = self._records.get(job_id)
        if state.polling or (record is not None and record.terminal):
            return
        state.polling = True
        logger.debug("start polling %s", job_id)
        self._poll(job_id)

    def _stop_polling(self, job_id: str):
        state = self._jobs.get(job_id)
        if state is None:
            return
        if state.polling:
            logger.debug("stop polling %s", job_id)
        state.polling = False
        if state.timer is not None:
            state.timer.stop()

    def _poll(self, job_id: str):
        state = self._jobs[job_id]
        if not state.polling or state.poll_in_flight:
            return
        state.poll_in_flight = True
        self._runner.submit(
            partial(self._client.poll_job, job_id),
            partial(self._onPolled, job_id),
            partial(self._onPollFailed, job_id),
        )

    def _schedule_next_poll(self, job_id: str):
        state = self._jobs[job_id]
        record = self._records.get(job_id)
        if record is not None and record.terminal:
            self._stop_polling(job_id)
            return
        if not state.polling or state.observers == 0:
            state.polling = False
            return
        if state.timer is None:
            state.timer = QTimer(self)
            state.timer.setSingleShot(True)
            state.timer.timeout.connect(partial(self._poll, job_id))
        state.timer.start(self._poll_interval_ms)

    def _onPolled(self, job_id: str, result: PollResult):
        self._jobs[job_id].poll_in_flight = False
        self._apply(job_id, result)
        self._schedule_next_poll(job_id)

    def _onPollFailed(self, job_id: str, error: BaseException):
        self._jobs[job_id].poll_in_flight = False
        logger.warning("poll for %s failed, retrying next period: %s", job_id, error)
        self._schedule_next_poll(job_id)

    def _apply(self, job_id: str, result: PollResult):
        current = self._records.get(job_id)
        if current is not None and current.terminal:
            return  # latched
        progress = min(100.0, max(0.0, float(result.progress or 0.0)))
        if result.status is JobStatus.COMPLETED:
            self._set_record(JobStatusRecord(job_id, JobStatus.COMPLETED, 100.0))
            self._stop_polling(job_id)
            self._materialize(job_id)
        elif result.status is JobStatus.FAILED:
            error = result.error or "video generation failed"
            logger.info("job %s failed: %s", job_id, error)
            self._set_record(JobStatusRecord(job_id, JobStatus.FAILED, progress, error=error))
            self._stop_polling(job_id)
        else:
            if current is not None and current.status is result.status and current.progress == progress:
                return
            self._set_record(JobStatusRecord(job_id, result.status, progress))

    # --- Local media ---
    def _onLocalChecked(self, job_id: str, exists: bool):
        state = self._jobs[job_id]
        state.local_check_pending = False
        if exists:
            # Downloaded in an earlier session: complete without polling.
            state.materialize_started = True
            path = str(self._media_path_for(job_id))
            current = self._records.get(job_id)
            if current is not None and current.terminal:
                if current.status is JobStatus.COMPLETED and current.resolved_media_ref is None:
                    self._set_record(replace(current, resolved_media_ref=path))
                return
            self._set_record(
                JobStatusRecord(job_id, JobStatus.COMPLETED, 100.0, resolved_media_ref=path)
            )
            return
        if state.observers > 0:
            self._start_polling(job_id)

    def _onLocalCheckFailed(self, job_id: str, error: BaseException):
        logger.warning("local media check for %s failed: %s", job_id, error)
        self._onLocalChecked(job_id, False)

    def _materialize(self, job_id: str):
        state = self._jobs.setdefault(job_id, _JobState())
        if state.materialize_started:
            return
        # Set before the download starts so a concurrent observer cannot
        # start a second copy.
        state.materialize_started = True
        path = self._media_path_for(job_id)
        self._runner.submit(
            partial(self._download, job_id, path),
            partial(self._onMaterialized, job_id),
            partial(self._onMaterializeFailed, job_id),
        )

    def _download(self, job_id: str, path: Path) -> str:
        if not self._exists(str(path)):
            self._client.download_result(job_id, path)
        return str(path)

    def _onMaterialized(self, job_id: str, path: str):
        record = self._records.get(job_id)
        if record is None or record.resolved_media_ref is not None:
            return
        self._set_record(replace(record, resolved_media_ref=path))

    def _onMaterializeFailed(self, job_id: str, error: BaseException):
        logger.error("failed to download video %s: %s", job_id, error)
        self.downloadFailed.emit(job_id, str(error))

    # --- Submission ---
    def _onSubmitted(self, job_id: str):
        self._set_record(JobStatusRecord(job_id, JobStatus.QUEUED, 0.0))
        self.jobSubmitted.emit(job_id)
        self.observe(job_id)

    def _onSubmitFailed(self, error: BaseException):
        logger.error("video job submission failed: %s", error)
        self.submitFailed.emit(str(error))

    def _set_record(self, record: JobStatusRecord):
        self._records[record.job_id] = record
        self.statusChanged.emit(record.job_id, record)


__all__ = ["JobStatusRecord", "JobStatusTracker", "DEFAULT_POLL_INTERVAL"]
