"""Timeline model: the ordered sequence of placed clips and the selection.

This is the only writer of PlacedClip state. Every mutation goes through
`_commit`, which re-clamps transitions against the new neighbours and
re-derives every position from the durations (see `duration.assign_positions`).

Operations are synchronous and total. Stale or unknown clip ids are ignored
rather than raised because the model is driven by UI events that can race a
deletion; only a malformed `reorder` request is treated as a programming error.

Signals:
    changed()                   any change to clips or selection
    selectionChanged(object)    new selected clip id or None
    currentTimeChanged(object)  new playback cursor or None

The model does not persist itself; `core.autosave.AutoSaver` listens to
``changed``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from PySide6.QtCore import QObject, Signal

from .clip import PlacedClip, SourceClip, TRANSITIONS, transition_type
from .duration import assign_positions, clamp_transition, total_duration
from .project import EditorState
from ..utils.timefmt import format_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineSnapshot:
    clips: Tuple[PlacedClip, ...]
    selected_clip_id: Optional[str]
    current_time: Optional[float]
    total_duration: float

    def clip(self, clip_id: str) -> Optional[PlacedClip]:
        return next((c for c in self.clips if c.id == clip_id), None)


class TimelineModel(QObject):
    changed = Signal()
    selectionChanged = Signal(object)
    currentTimeChanged = Signal(object)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._clips: List[PlacedClip] = []
        self._selected: Optional[str] = None
        self._current_time: Optional[float] = None

    # --- Read-only views ---
    @property
    def clips(self) -> Tuple[PlacedClip, ...]:
        return tuple(self._clips)

    @property
    def selected_clip_id(self) -> Optional[str]:
        return self._selected

    @property
    def current_time(self) -> Optional[float]:
        return self._current_time

    @property
    def total_duration(self) -> float:
        return total_duration(self._clips)

    def snapshot(self) -> TimelineSnapshot:
        return TimelineSnapshot(
            clips=tuple(self._clips),
            selected_clip_id=self._selected,
            current_time=self._current_time,
            total_duration=self.total_duration,
        )

    def clip(self, clip_id: str) -> Optional[PlacedClip]:
        return next((c for c in self._clips if c.id == clip_id), None)

    def clip_at(self, timeline_time: float) -> Optional[Tuple[PlacedClip, float]]:
        """Return the clip under ``timeline_time`` and the matching source time.

        Inside a transition overlap the later clip wins, since it is the one
        fading in on top.
        """
        hit: Optional[PlacedClip] = None
        for c in self._clips:
            if c.position <= timeline_time < c.end:
                hit = c
        if hit is None:
            return None
        return hit, hit.trim_start + (timeline_time - hit.position)

    # --- Mutations ---
    def add_clip(self, source: SourceClip, at_end: bool = True) -> PlacedClip:
        placed = PlacedClip.place(source, position=self.total_duration if at_end else 0.0)
        if at_end:
            self._clips.append(placed)
        else:
            self._clips.insert(0, placed)
        self._commit()
        placed = self.clip(placed.id) or placed
        logger.debug("added %s at %s", placed.id, format_time(placed.position))
        self._set_selection(placed.id)
        self.changed.emit()
        return placed

    def remove_clip(self, clip_id: str) -> None:
        index = self._index(clip_id)
        if index is None:
            return
        del self._clips[index]
        self._commit()
        if self._selected == clip_id:
            self._set_selection(None)
        self._clamp_cursor()
        self.changed.emit()

    def split_clip(self, clip_id: str, at_timeline_time: float) -> Optional[Tuple[PlacedClip, PlacedClip]]:
        """Split a clip at a timeline time strictly inside it.

        Returns the two new pieces, or None when the request was ignored.
        """
        index = self._index(clip_id)
        if index is None:
            return None
        original = self._clips[index]
        offset = at_timeline_time - original.position
        if not (0.0 < offset < original.duration):
            return None
        first = PlacedClip.place(original.source, position=original.position).with_changes(
            trim_start=original.trim_start,
            trim_end=original.trim_start + offset,
        )
        # The transition belongs to the boundary with the next clip, which is
        # now the second piece's.
        second = PlacedClip.place(original.source, position=original.position + offset).with_changes(
            trim_start=original.trim_start + offset,
            trim_end=original.trim_end,
            transition_type=original.transition_type,
            transition_duration=original.transition_duration,
        )
        self._clips[index : index + 1] = [first, second]
        self._commit()
        logger.debug(
            "split %s at %s into %s + %s",
            clip_id,
            format_time(at_timeline_time),
            first.id,
            second.id,
        )
        self._set_selection(None)
        self.changed.emit()
        return self._clips[index], self._clips[index + 1]

    def reorder(self, new_ordered_ids: Sequence[str]) -> None:
        current = [c.id for c in self._clips]
        if len(new_ordered_ids) != len(current) or set(new_ordered_ids) != set(current):
            raise ValueError("reorder requires every clip id exactly once")
        by_id = {c.id: c for c in self._clips}
        self._clips = [by_id[i] for i in new_ordered_ids]
        self._commit()
        self.changed.emit()

    def select_clip(self, clip_id: Optional[str]) -> None:
        if clip_id is not None and self._index(clip_id) is None:
            return
        if self._set_selection(clip_id):
            self.changed.emit()

    def trim_clip(self, clip_id: str, trim_start: float, trim_end: float) -> None:
        index = self._index(clip_id)
        if index is None:
            return
        clip = self._clips[index]
        limit = clip.source.original_duration
        start = min(max(0.0, trim_start), limit)
        end = min(max(0.0, trim_end), limit)
        if end <= start:
            return
        self._clips[index] = clip.with_changes(trim_start=start, trim_end=end)
        self._commit()
        self._clamp_cursor()
        self.changed.emit()

    def set_transition(
        self,
        clip_id: str,
        type_id: Optional[str],
        duration: Optional[float] = None,
    ) -> None:
        """Attach (or clear with ``type_id=None``) the transition to the next clip."""
        index = self._index(clip_id)
        if index is None:
            return
        clip = self._clips[index]
        if type_id is None:
            self._clips[index] = clip.with_changes(transition_type=None, transition_duration=None)
        else:
            kind = transition_type(type_id)
            requested = kind.default_duration if duration is None else duration
            self._clips[index] = clip.with_changes(
                transition_type=kind.id,
                transition_duration=self._clamped(index, requested, clip),
            )
        self._commit()
        self._clamp_cursor()
        self.changed.emit()

    def set_current_time(self, t: Optional[float]) -> None:
        if t is not None:
            t = min(max(0.0, float(t)), self.total_duration)
        if t == self._current_time:
            return
        self._current_time = t
        self.currentTimeChanged.emit(t)

    # --- Persistence bridge ---
    def load_state(self, state: Optional[EditorState]) -> None:
        """Replace the whole timeline with a persisted state (None clears it)."""
        clips = list(state.clips) if state else []
        valid: List[PlacedClip] = []
        for c in clips:
            if not (0.0 <= c.trim_start < c.trim_end <= c.source.original_duration):
                logger.warning("dropping clip %s with invalid trim %.3f-%.3f", c.id, c.trim_start, c.trim_end)
                continue
            if c.transition_type is not None and c.transition_type not in TRANSITIONS:
                logger.warning("clearing unknown transition %r on %s", c.transition_type, c.id)
                c = c.with_changes(transition_type=None, transition_duration=None)
            valid.append(c)
        self._clips = valid
        self._commit()
        selected = state.selected_clip_id if state else None
        self._selected = selected if selected and self._index(selected) is not None else None
        self.selectionChanged.emit(self._selected)
        self._current_time = 0.0 if self._clips else None
        self.currentTimeChanged.emit(self._current_time)
        self.changed.emit()

    def to_state(self, preview_video_path: Optional[str] = None) -> EditorState:
        return EditorState(
            clips=list(self._clips),
            selected_clip_id=self._selected,
            preview_video_path=preview_video_path,
        )

    # --- Internal helpers ---
    def _index(self, clip_id: str) -> Optional[int]:
        for i, c in enumerate(self._clips):
            if c.id == clip_id:
                return i
        return None

    def _clamped(self, index: int, requested: float, clip: PlacedClip) -> float:
        if index + 1 >= len(self._clips):
            # Last clip: nothing to overlap yet, only bound by its own length.
            return max(0.0, min(float(requested), clip.duration))
        return clamp_transition(requested, clip.duration, self._clips[index + 1].duration)

    def _commit(self) -> None:
        clips = self._clips
        for i, c in enumerate(clips):
            if c.transition_duration is None:
                continue
            bounded = self._clamped(i, c.transition_duration, c)
            if bounded != c.transition_duration:
                clips[i] = c.with_changes(transition_duration=bounded)
        self._clips = assign_positions(clips)

    def _set_selection(self, clip_id: Optional[str]) -> bool:
        if clip_id == self._selected:
            return False
        self._selected = clip_id
        self.selectionChanged.emit(clip_id)
        return True

    def _clamp_cursor(self) -> None:
        if self._current_time is None:
            return
        if not self._clips:
            self.set_current_time(None)
        elif self._current_time > self.total_duration:
            self.set_current_time(self.total_duration)


__all__ = ["TimelineModel", "TimelineSnapshot"]
