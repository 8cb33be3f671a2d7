"""Timeline preview assembly and export.

`assemble_timeline_preview` stitches the trimmed clips into one file with
MoviePy. Without transitions the clips are concatenated back to back; with
transitions every clip is placed at its overlapped start (the same math the
timeline uses for positions) and the incoming clip gets an entry effect.
MoviePy has no wipe or iris effects, so those fall back to a cross fade.

`export_video` copies a finished preview to a user-chosen destination.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from moviepy import CompositeVideoClip, VideoFileClip, concatenate_videoclips, vfx
from proglog import ProgressBarLogger

from ..core.clip import PlacedClip
from ..core.duration import clamp_transition

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]  # 0.0 - 1.0


class ExportSettings:
    def __init__(
        self,
        fps: int = 30,
        preset: str = "medium",
        width: int | None = None,
        height: int | None = None,
        codec: str = "libx264",
        audio_codec: str = "aac",
    ):
        self.fps = fps
        self.preset = preset
        self.width = width
        self.height = height
        self.codec = codec
        self.audio_codec = audio_codec


@dataclass(frozen=True)
class ClipSpec:
    """What the renderer needs to know about one timeline clip."""

    path: str
    trim_start: float
    trim_end: float
    transition_type: Optional[str] = None
    transition_duration: Optional[float] = None

    @property
    def duration(self) -> float:
        return self.trim_end - self.trim_start

    @classmethod
    def from_clip(cls, clip: PlacedClip) -> "ClipSpec":
        return cls(
            path=clip.video_path,
            trim_start=clip.trim_start,
            trim_end=clip.trim_end,
            transition_type=clip.transition_type,
            transition_duration=clip.transition_duration,
        )


def specs_for(clips: Sequence[PlacedClip]) -> List[ClipSpec]:
    return [ClipSpec.from_clip(c) for c in clips]


def start_times(specs: Sequence[ClipSpec]) -> List[float]:
    """Start of each clip in the output, shifted earlier by transition overlaps."""
    starts: List[float] = []
    running = 0.0
    for i, spec in enumerate(specs):
        starts.append(running)
        overlap = 0.0
        if i + 1 < len(specs) and spec.transition_type:
            overlap = clamp_transition(spec.transition_duration or 0.0, spec.duration, specs[i + 1].duration)
        running += spec.duration - overlap
    return starts


class _ProgressLogger(ProgressBarLogger):
    """Forwards MoviePy's frame counter to a progress callback."""

    def __init__(self, callback: ProgressCallback):
        super().__init__()
        self._callback = callback

    def bars_callback(self, bar, attr, value, old_value=None):
        if attr != "index":
            return
        total = self.bars.get(bar, {}).get("total") or 0
        if total:
            self._callback(min(1.0, value / total))


def _entry_effects(transition_type: str, duration: float) -> list:
    if transition_type == "fadeblack":
        return [vfx.FadeIn(duration)]
    if transition_type == "slideleft":
        return [vfx.SlideIn(duration, "right")]
    return [vfx.CrossFadeIn(duration)]


def assemble_timeline_preview(
    specs: Sequence[ClipSpec],
    output_path: str | Path,
    settings: ExportSettings | None = None,
    progress: Optional[ProgressCallback] = None,
) -> str:
    """Render ``specs`` in order into ``output_path`` and return the path.

    Raises ValueError for an empty list and FileNotFoundError for missing
    media; nothing is written in either case.
    """
    if not specs:
        raise ValueError("no clips to preview")
    for spec in specs:
        if not Path(spec.path).exists():
            raise FileNotFoundError(f"clip media not found: {spec.path}")
    settings = settings or ExportSettings()
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    sources = [VideoFileClip(s.path) for s in specs]
    try:
        parts = []
        for spec, source in zip(specs, sources):
            part = source.subclipped(spec.trim_start, min(spec.trim_end, source.duration))
            if settings.width and settings.height:
                part = part.resized(new_size=(settings.width, settings.height))
            parts.append(part)

        has_transitions = any(s.transition_type for s in specs[:-1])
        if has_transitions:
            starts = start_times(specs)
            placed = []
            for i, (part, start) in enumerate(zip(parts, starts)):
                if i > 0:
                    prev = specs[i - 1]
                    overlap = starts[i - 1] + prev.duration - start
                    if prev.transition_type and overlap > 0:
                        part = part.with_effects(_entry_effects(prev.transition_type, overlap))
                placed.append(part.with_start(start))
            final = CompositeVideoClip(placed, size=parts[0].size)
        else:
            final = concatenate_videoclips(parts, method="compose")

        logger.info(
            "assembling preview of %d clips (%.2fs) into %s",
            len(specs),
            final.duration,
            output,
        )
        final.write_videofile(
            str(output),
            fps=settings.fps,
            codec=settings.codec,
            audio_codec=settings.audio_codec,
            preset=settings.preset,
            logger=_ProgressLogger(progress) if progress else None,
        )
    except Exception:
        output.unlink(missing_ok=True)
        raise
    finally:
        for source in sources:
            source.close()
    if progress:
        progress(1.0)
    return str(output)


def export_video(preview_path: str | Path, destination: str | Path) -> str:
    """Copy a rendered preview to ``destination``."""
    src = Path(preview_path)
    if not src.exists():
        raise FileNotFoundError("preview video not found; generate a preview first")
    dest = Path(destination)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dest)
    logger.info("exported %s to %s", src, dest)
    return str(dest)


__all__ = [
    "ClipSpec",
    "ExportSettings",
    "assemble_timeline_preview",
    "export_video",
    "specs_for",
    "start_times",
]
