"""Thread-safe adapter around a MoviePy VideoFileClip.

Renderers run on pool threads and MoviePy readers are not safe to share, so
every frame or audio read goes through one mutex per opened file.
"""

from __future__ import annotations

from typing import Optional

from moviepy import VideoFileClip
from PySide6.QtCore import QMutex


class ClipAdapter:
    def __init__(self, clip, mutex: Optional[QMutex] = None, owner: Optional["ClipAdapter"] = None):
        self._clip = clip
        # Subclips share the reader (and therefore the mutex) of their parent.
        self._mutex = mutex or QMutex()
        self._owner = owner

    @property
    def clip(self):
        return self._clip

    @property
    def duration(self) -> float:
        return float(getattr(self._clip, "duration", 0.0) or 0.0)

    @property
    def fps(self) -> float:
        return float(getattr(self._clip, "fps", 0.0) or 0.0)

    @property
    def size(self) -> tuple[int, int]:
        w, h = getattr(self._clip, "size", (0, 0))
        return int(w), int(h)

    @property
    def has_audio(self) -> bool:
        return getattr(self._clip, "audio", None) is not None

    def get_frame(self, t: float):
        self._mutex.lock()
        try:
            return self._clip.get_frame(t)
        finally:
            self._mutex.unlock()

    def audio_array(self, fps: int = 200):
        """Return audio samples (n, channels) or None when there is no track."""
        audio = getattr(self._clip, "audio", None)
        if audio is None:
            return None
        self._mutex.lock()
        try:
            return audio.to_soundarray(fps=fps)
        finally:
            self._mutex.unlock()

    def subclip(self, start: float, end: float) -> "ClipAdapter":
        """Restrict to ``[start, end)`` of the source, clamped to its duration."""
        start = max(0.0, min(start, self.duration))
        end = max(start, min(end, self.duration))
        return ClipAdapter(self._clip.subclipped(start, end), self._mutex, owner=self)

    def close(self):
        if self._owner is not None:
            return  # the parent owns the reader
        self._clip.close()

    def __enter__(self) -> "ClipAdapter":
        return self

    def __exit__(self, *exc):
        self.close()

    @classmethod
    def from_path(cls, path: str) -> "ClipAdapter":
        return cls(VideoFileClip(path))

    @classmethod
    def from_clip(cls, clip) -> "ClipAdapter":
        return cls(clip)


__all__ = ["ClipAdapter"]
