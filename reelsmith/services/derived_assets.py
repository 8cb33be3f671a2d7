"""Lazily computed per-clip overlay images (waveforms, thumbnail strips).

Entries are keyed by ``(clip_id, width)``. The width follows the timeline zoom
(``clip.duration * pixels_per_second``, floored and clamped to a per-kind
minimum), so a resize produces new keys rather than rescaling old images.

Per request:
 1. an entry for the key exists -> reuse it;
 2. the key is already being computed -> wait for that computation;
 3. otherwise mark it in flight and ask the renderer on the task runner.

In every case the requested width becomes the one wanted for the clip.

A result is stored only if its width is still the wanted one; results for
widths abandoned during an interactive resize are dropped. A renderer that
returns None (no audio track, undecodable media) or raises is cached as None,
which means "computed, nothing to show" and is not retried on later passes.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from functools import partial
from typing import Callable, Dict, Iterable, Optional, Protocol, Set, Tuple

from PySide6.QtCore import QObject, Signal

from ..core.clip import PlacedClip
from .tasks import QtTaskRunner, TaskRunner

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, int]


class AssetKind(str, Enum):
    WAVEFORM = "waveform"
    THUMBNAIL_STRIP = "thumbnail_strip"


class AssetRenderer(Protocol):
    def compute_waveform_image(self, clip: PlacedClip, width: int, height: int) -> Optional[str]: ...

    def compute_thumbnail_strip(self, clip: PlacedClip, width: int, height: int) -> Optional[str]: ...


class DerivedAssetCache(QObject):
    assetReady = Signal(str, int, object)  # clip id, width, path or None

    def __init__(
        self,
        kind: AssetKind,
        renderer: AssetRenderer,
        min_width: int,
        height: int,
        runner: Optional[TaskRunner] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._kind = AssetKind(kind)
        self._renderer = renderer
        self._min_width = int(min_width)
        self._height = int(height)
        self._runner = runner or QtTaskRunner(self)
        self._entries: Dict[CacheKey, Optional[str]] = {}
        self._in_flight: Set[CacheKey] = set()
        self._wanted: Dict[str, int] = {}

    @classmethod
    def waveforms(cls, renderer: AssetRenderer, settings, runner=None, parent=None) -> "DerivedAssetCache":
        return cls(
            AssetKind.WAVEFORM,
            renderer,
            settings.min_waveform_width,
            settings.waveform_height,
            runner=runner,
            parent=parent,
        )

    @classmethod
    def thumbnail_strips(cls, renderer: AssetRenderer, settings, runner=None, parent=None) -> "DerivedAssetCache":
        return cls(
            AssetKind.THUMBNAIL_STRIP,
            renderer,
            settings.min_sprite_width,
            settings.sprite_height,
            runner=runner,
            parent=parent,
        )

    @property
    def kind(self) -> AssetKind:
        return self._kind

    def width_for(self, clip: PlacedClip, pixels_per_second: float) -> int:
        return max(self._min_width, int(math.floor(clip.duration * pixels_per_second)))

    # --- Render pass ---
    def refresh(self, clips: Iterable[PlacedClip], pixels_per_second: float) -> None:
        for clip in clips:
            self.request(clip, self.width_for(clip, pixels_per_second))

    def request(self, clip: PlacedClip, width: int) -> bool:
        """Make sure an asset for ``(clip.id, width)`` exists or is coming.

        Returns True when a new computation was dispatched.
        """
        key = (clip.id, int(width))
        self._wanted[clip.id] = key[1]
        if key in self._entries or key in self._in_flight:
            return False
        self._in_flight.add(key)
        self._runner.submit(
            partial(self._compute(), clip, key[1], self._height),
            partial(self._onComputed, key),
            partial(self._onFailed, key),
        )
        return True

    # --- Queries ---
    def get_derived_asset(self, clip_id: str, width: int) -> Tuple[bool, Optional[str]]:
        """Exact-key lookup: ``(found, path)``; ``(True, None)`` means no asset."""
        key = (clip_id, int(width))
        if key in self._entries:
            return True, self._entries[key]
        return False, None

    def current(self, clip_id: str) -> Optional[str]:
        width = self._wanted.get(clip_id)
        if width is None:
            return None
        return self._entries.get((clip_id, width))

    def is_loading(self, clip_id: str) -> bool:
        return any(k[0] == clip_id for k in self._in_flight)

    def forget(self, clip_id: str) -> None:
        """Drop everything known about a clip (e.g. after it was removed)."""
        for key in [k for k in self._entries if k[0] == clip_id]:
            del self._entries[key]
        self._wanted.pop(clip_id, None)

    def known_ids(self) -> Set[str]:
        return {k[0] for k in self._entries} | set(self._wanted)

    def __len__(self) -> int:
        return len(self._entries)

    # --- Internal ---
    def _compute(self) -> Callable[[PlacedClip, int, int], Optional[str]]:
        if self._kind is AssetKind.WAVEFORM:
            return self._renderer.compute_waveform_image
        return self._renderer.compute_thumbnail_strip

    def _onComputed(self, key: CacheKey, path: Optional[str]):
        self._store(key, path or None)

    def _onFailed(self, key: CacheKey, error: BaseException):
        logger.warning("%s for %s at %dpx failed: %s", self._kind.value, key[0], key[1], error)
        self._store(key, None)

    def _store(self, key: CacheKey, path: Optional[str]):
        self._in_flight.discard(key)
        clip_id, width = key
        if self._wanted.get(clip_id) != width:
            logger.debug("dropping stale %s for %s at %dpx", self._kind.value, clip_id, width)
            return
        self._entries[key] = path
        self.assetReady.emit(clip_id, width, path)


__all__ = ["AssetKind", "AssetRenderer", "DerivedAssetCache"]
