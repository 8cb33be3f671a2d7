"""Derived image rendering for timeline clips.

`MediaRenderer` produces the overlay images drawn on top of timeline clips:

 - waveform: RMS envelope of the clip's trimmed audio, mirrored around the
   centre line, white on transparent;
 - thumbnail strip: frames sampled across the trimmed range, scaled to the
   strip height and tiled left to right.

Both are written as PNG into the project's cache folders, named by clip id and
width, and an existing file is returned without decoding anything. ``None``
means the clip has nothing to draw (no audio track, no decodable frame).

Methods block on decoding; call them through a task runner.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import Image, ImageDraw

from ..core.clip import PlacedClip
from ..core.project import ProjectPaths
from .clip_adapter import ClipAdapter

logger = logging.getLogger(__name__)

WAVEFORM_COLOR = (255, 255, 255, 255)
# Narrowest frame the strip will show; fewer, wider frames read better.
MIN_FRAME_WIDTH = 50
MIN_STRIP_FPS = 0.5
MAX_STRIP_FPS = 10.0
MAX_AUDIO_FPS = 8000


def rms_envelope(samples: np.ndarray, points: int) -> np.ndarray:
    """Collapse audio samples to ``points`` normalized RMS values in [0, 1]."""
    if samples.ndim == 2:
        samples = samples.mean(axis=1)
    n = samples.shape[0]
    points = max(1, min(points, n))
    edges = np.linspace(0, n, points + 1).astype(int)
    values = np.zeros(points, dtype=float)
    for i in range(points):
        s, e = edges[i], edges[i + 1]
        if e <= s:
            continue
        seg = samples[s:e]
        values[i] = float(np.sqrt(np.mean(seg * seg)))
    peak = float(values.max()) if values.size else 0.0
    if peak <= 0:
        return np.zeros(points, dtype=float)
    return (values / peak) ** 0.85


def strip_layout(duration: float, width: int) -> tuple[int, int, List[float]]:
    """Return ``(frame_count, frame_width, sample_times)`` for a strip."""
    duration = max(duration, 1e-3)
    max_frames = max(1, width // MIN_FRAME_WIDTH)
    fps = min(MAX_STRIP_FPS, max(MIN_STRIP_FPS, max_frames / duration))
    count = max(1, math.ceil(duration * fps))
    frame_width = max(1, width // count)
    times = [min(i / fps, max(0.0, duration - 1e-3)) for i in range(count)]
    return count, frame_width, times


class MediaRenderer:
    def __init__(self, paths: ProjectPaths):
        self._paths = paths

    def compute_waveform_image(self, clip: PlacedClip, width: int, height: int) -> Optional[str]:
        target = self._paths.waveform_file(clip.id, width)
        if target.exists():
            return str(target)
        with self._open(clip) as source:
            if not source.has_audio:
                return None
            trimmed = source.subclip(clip.trim_start, clip.trim_end)
            duration = max(trimmed.duration, 1e-3)
            audio_fps = int(min(MAX_AUDIO_FPS, max(200, math.ceil(width * 4 / duration))))
            samples = trimmed.audio_array(fps=audio_fps)
        if samples is None or samples.size == 0:
            return None
        envelope = rms_envelope(np.asarray(samples, dtype=float), width)
        if not envelope.any():
            return None
        image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(image)
        mid = (height - 1) / 2.0
        # Resample the envelope to one value per pixel column.
        columns = np.interp(
            np.linspace(0, len(envelope) - 1, width),
            np.arange(len(envelope)),
            envelope,
        )
        for x, amp in enumerate(columns):
            half = max(0.5, amp * mid)
            draw.line([(x, mid - half), (x, mid + half)], fill=WAVEFORM_COLOR)
        return self._save(image, target)

    def compute_thumbnail_strip(self, clip: PlacedClip, width: int, height: int) -> Optional[str]:
        target = self._paths.sprite_file(clip.id, width)
        if target.exists():
            return str(target)
        count, frame_width, times = strip_layout(clip.duration, width)
        frames: List[Image.Image] = []
        with self._open(clip) as source:
            trimmed = source.subclip(clip.trim_start, clip.trim_end)
            for t in times:
                try:
                    array = trimmed.get_frame(t)
                except (OSError, IndexError, ValueError) as e:
                    logger.debug("skipping frame %.3f of %s: %s", t, clip.id, e)
                    continue
                frame = Image.fromarray(np.asarray(array, dtype=np.uint8)).convert("RGB")
                frames.append(frame.resize((frame_width, height)))
        if not frames:
            return None
        strip = Image.new("RGB", (frame_width * count, height), (0, 0, 0))
        for i, frame in enumerate(frames):
            strip.paste(frame, (i * frame_width, 0))
        return self._save(strip, target)

    def _open(self, clip: PlacedClip) -> ClipAdapter:
        if not Path(clip.video_path).exists():
            raise FileNotFoundError(f"media not found for clip {clip.id}: {clip.video_path}")
        return ClipAdapter.from_path(clip.video_path)

    def _save(self, image: Image.Image, target: Path) -> str:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.stem + ".tmp.png")
        image.save(tmp, format="PNG")
        tmp.replace(target)
        return str(target)


__all__ = ["MediaRenderer", "rms_envelope", "strip_layout"]
