"""Timeline length and position math.

A transition on clip *i* makes it overlap clip *i+1*, so the timeline is
shorter than the sum of clip durations by the overlaps. The overlap used is
always ``min(transition_i, duration_i, duration_{i+1})``; a transition on the
last clip has nothing to overlap and is ignored.

Positions are never patched incrementally: `assign_positions` re-derives every
position from the durations so repeated edits cannot accumulate drift.
"""

from __future__ import annotations

from typing import List, Sequence

from .clip import PlacedClip

# Zoom bounds of the timeline strip (pixels per second).
MIN_PIXELS_PER_SECOND = 50.0
MAX_PIXELS_PER_SECOND = 200.0
DEFAULT_PIXELS_PER_SECOND = 100.0
# Share of the container the clips should fill at the fitted zoom level.
FIT_RATIO = 0.9


def clamp_transition(duration: float, current: float, following: float) -> float:
    """Clamp a requested transition length to ``[0, min(current, following)]``."""
    return max(0.0, min(float(duration), current, following))


def overlaps(clips: Sequence[PlacedClip]) -> List[float]:
    """Overlap between each clip and its successor (0.0 for the last clip)."""
    result: List[float] = []
    for i, clip in enumerate(clips):
        if i + 1 >= len(clips):
            result.append(0.0)
            continue
        result.append(clamp_transition(clip.transition, clip.duration, clips[i + 1].duration))
    return result


def total_duration(clips: Sequence[PlacedClip]) -> float:
    """Total occupied timeline length; 0.0 for an empty list."""
    if not clips:
        return 0.0
    return sum(c.duration for c in clips) - sum(overlaps(clips))


def assign_positions(clips: Sequence[PlacedClip]) -> List[PlacedClip]:
    """Return the clips with ``position`` set to the running total so far."""
    placed: List[PlacedClip] = []
    running = 0.0
    for clip, overlap in zip(clips, overlaps(clips)):
        placed.append(clip if clip.position == running else clip.with_changes(position=running))
        running += clip.duration - overlap
    return placed


def timeline_scale(total: float, container_width: float) -> float:
    """Pixels per second that fit ``total`` seconds into the container."""
    if not total or not container_width:
        return DEFAULT_PIXELS_PER_SECOND
    scale = (container_width * FIT_RATIO) / total
    return max(MIN_PIXELS_PER_SECOND, min(MAX_PIXELS_PER_SECOND, scale))


__all__ = [
    "assign_positions",
    "clamp_transition",
    "overlaps",
    "timeline_scale",
    "total_duration",
]
