"""Remote video-generation API.

`RemoteJobClient` is the contract the job tracker depends on:

    submit_job(params) -> job_id
    poll_job(job_id) -> PollResult
    download_result(job_id, destination) -> None   (no-op if already present)

`OpenAIVideoClient` implements it against the OpenAI videos endpoints
(``POST /videos``, ``GET /videos/{id}``, ``GET /videos/{id}/content``).
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 16


class JobStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True)
class PollResult:
    status: JobStatus
    progress: float = 0.0
    error: Optional[str] = None


class VideoApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteJobClient(ABC):
    @abstractmethod
    def submit_job(self, params: Dict[str, Any]) -> str: ...

    @abstractmethod
    def poll_job(self, job_id: str) -> PollResult: ...

    @abstractmethod
    def download_result(self, job_id: str, destination: str | Path) -> None: ...


def parse_poll_response(payload: Dict[str, Any]) -> PollResult:
    """Convert a video job JSON object into a PollResult."""
    raw_status = payload.get("status")
    if not raw_status:
        raise VideoApiError("video job response has no status")
    try:
        status = JobStatus(raw_status)
    except ValueError:
        raise VideoApiError(f"unknown video job status: {raw_status!r}") from None
    progress = payload.get("progress")
    error = payload.get("error")
    if isinstance(error, dict):
        error = error.get("message") or error.get("code") or str(error)
    return PollResult(
        status=status,
        progress=float(progress) if progress is not None else 0.0,
        error=str(error) if error else None,
    )


class OpenAIVideoClient(RemoteJobClient):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ):
        if not api_key:
            raise ValueError("an API key is required for the video API")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {api_key}"})
        # Filled into submit params the caller leaves out (model, size, seconds).
        self._defaults = dict(defaults or {})

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "OpenAIVideoClient":
        return cls(
            session=session,
            api_key=settings.api_key or "",
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            defaults={
                "model": settings.video_model,
                "size": settings.video_size,
                "seconds": settings.video_seconds,
            },
        )

    def submit_job(self, params: Dict[str, Any]) -> str:
        """Start a generation job.

        ``params`` holds ``model``, ``prompt`` and optionally ``size``,
        ``seconds`` and ``input_reference`` (path to a starting-frame image).
        Missing or None values fall back to the client defaults.
        """
        params = {**self._defaults, **{k: v for k, v in params.items() if v is not None}}
        if not str(params.get("prompt", "")).strip():
            raise ValueError("prompt is required")
        # The endpoint only accepts multipart bodies, so plain fields are sent
        # as filename-less parts.
        parts: Dict[str, Any] = {
            k: (None, str(v))
            for k, v in params.items()
            if k != "input_reference"
        }
        reference = params.get("input_reference")
        if reference:
            ref_path = Path(reference)
            if not ref_path.exists():
                raise FileNotFoundError(f"reference image not found: {ref_path}")
            with ref_path.open("rb") as fh:
                parts["input_reference"] = (ref_path.name, fh, "image/jpeg")
                response = self._request("POST", "/videos", files=parts)
        else:
            response = self._request("POST", "/videos", files=parts)
        job_id = response.json().get("id")
        if not job_id:
            raise VideoApiError("video API did not return a job id")
        logger.info("submitted video job %s", job_id)
        return str(job_id)

    def poll_job(self, job_id: str) -> PollResult:
        response = self._request("GET", f"/videos/{job_id}")
        return parse_poll_response(response.json())

    def download_result(self, job_id: str, destination: str | Path) -> None:
        dest = Path(destination)
        if dest.exists() and dest.stat().st_size > 0:
            return
        dest.parent.mkdir(parents=True, exist_ok=True)
        part = dest.with_name(dest.name + ".part")
        response = self._request("GET", f"/videos/{job_id}/content", stream=True)
        try:
            with part.open("wb") as fh:
                for chunk in response.iter_content(CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
        except (OSError, requests.RequestException):
            part.unlink(missing_ok=True)
            raise
        finally:
            response.close()
        os.replace(part, dest)
        logger.info("downloaded video %s to %s", job_id, dest)

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._base_url}{path}"
        response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        if response.status_code >= 400:
            details = ""
            try:
                details = response.text
            except Exception:
                details = ""
            raise VideoApiError(
                f"{method} {path} failed ({response.status_code}): {details[:500]}",
                status_code=response.status_code,
            )
        return response


__all__ = [
    "JobStatus",
    "OpenAIVideoClient",
    "PollResult",
    "RemoteJobClient",
    "VideoApiError",
    "parse_poll_response",
]
