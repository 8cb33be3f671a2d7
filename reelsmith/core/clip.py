"""Clip value types.

SourceClip describes a playable media unit (a generated or imported video),
PlacedClip is that media placed on the timeline with trim points and an
optional transition toward the following clip. Both are frozen; the timeline
replaces them with ``dataclasses.replace`` instead of mutating.

Serialization uses camelCase keys so editor state files stay compatible with
project folders written by earlier versions of the editor.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TransitionType:
    id: str
    name: str
    default_duration: float


TRANSITIONS: Dict[str, TransitionType] = {
    t.id: t
    for t in (
        TransitionType("fade", "Cross Fade", 1.0),
        TransitionType("fadeblack", "Fade to Black", 1.0),
        TransitionType("wiperight", "Wipe Right", 0.8),
        TransitionType("slideleft", "Slide Left", 1.0),
        TransitionType("circleopen", "Circle Open", 1.2),
    )
}


def transition_type(type_id: str) -> TransitionType:
    """Look up a transition by id; raises KeyError for unknown ids."""
    try:
        return TRANSITIONS[type_id]
    except KeyError:
        raise KeyError(f"unknown transition type: {type_id!r}") from None


@dataclass(frozen=True)
class SourceClip:
    id: str
    name: str
    video_path: str
    original_duration: float  # seconds
    created_at: int = field(default_factory=_now_ms)  # epoch ms
    thumbnail: Optional[str] = None
    scene_number: Optional[int] = None
    scene_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "videoPath": self.video_path,
            "originalDuration": self.original_duration,
            "createdAt": self.created_at,
        }
        if self.thumbnail is not None:
            data["thumbnail"] = self.thumbnail
        if self.scene_number is not None:
            data["sceneNumber"] = self.scene_number
        if self.scene_title is not None:
            data["sceneTitle"] = self.scene_title
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceClip":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            video_path=data["videoPath"],
            original_duration=float(data["originalDuration"]),
            created_at=int(data.get("createdAt", 0)),
            thumbnail=data.get("thumbnail"),
            scene_number=data.get("sceneNumber"),
            scene_title=data.get("sceneTitle"),
        )


@dataclass(frozen=True)
class PlacedClip:
    """A SourceClip on the timeline.

    ``trim_start``/``trim_end`` are offsets into the source media and satisfy
    ``0 <= trim_start < trim_end <= source.original_duration``. ``position``
    is owned by the timeline and recomputed from the clip order.
    """

    id: str
    source: SourceClip
    position: float = 0.0
    trim_start: float = 0.0
    trim_end: float = 0.0
    transition_type: Optional[str] = None
    transition_duration: Optional[float] = None

    @classmethod
    def place(cls, source: SourceClip, position: float = 0.0) -> "PlacedClip":
        return cls(
            id=generate_id("clip"),
            source=source,
            position=position,
            trim_start=0.0,
            trim_end=source.original_duration,
        )

    @property
    def duration(self) -> float:
        return self.trim_end - self.trim_start

    @property
    def end(self) -> float:
        return self.position + self.duration

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def video_path(self) -> str:
        return self.source.video_path

    @property
    def transition(self) -> float:
        """Requested overlap with the next clip (0 when none)."""
        if self.transition_type is None or not self.transition_duration:
            return 0.0
        return max(0.0, float(self.transition_duration))

    def with_changes(self, **changes: Any) -> "PlacedClip":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        # Source fields are flattened next to the placement fields; the
        # placement id replaces the source id and the source id is kept
        # under ``sourceId``.
        data = self.source.to_dict()
        data.update(
            {
                "id": self.id,
                "sourceId": self.source.id,
                "position": self.position,
                "trimStart": self.trim_start,
                "trimEnd": self.trim_end,
                "duration": self.duration,
                "transitionType": self.transition_type,
                "transitionDuration": self.transition_duration,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlacedClip":
        source_data = dict(data)
        source_data["id"] = data.get("sourceId", data["id"])
        source = SourceClip.from_dict(source_data)
        trim_start = float(data.get("trimStart", 0.0))
        trim_end = float(data.get("trimEnd", source.original_duration))
        return cls(
            id=data["id"],
            source=source,
            position=float(data.get("position", 0.0)),
            trim_start=trim_start,
            trim_end=trim_end,
            transition_type=data.get("transitionType"),
            transition_duration=data.get("transitionDuration"),
        )


__all__ = [
    "SourceClip",
    "PlacedClip",
    "TransitionType",
    "TRANSITIONS",
    "transition_type",
    "generate_id",
]
