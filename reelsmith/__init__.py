"""Reelsmith: timeline editing for generated and imported video clips.

Public API surface (keep minimal):
 - TimelineModel, SourceClip, PlacedClip (timeline state)
 - JobStatusTracker (remote generation jobs)
 - DerivedAssetCache (waveform / thumbnail strip images)
 - EditingSession (one of each, bound to a project folder)
"""

from .core.clip import PlacedClip, SourceClip  # noqa: F401
from .core.timeline import TimelineModel  # noqa: F401
from .services.derived_assets import AssetKind, DerivedAssetCache  # noqa: F401
from .services.jobs import JobStatusRecord, JobStatusTracker  # noqa: F401
from .services.video_api import JobStatus  # noqa: F401
from .session import EditingSession  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AssetKind",
    "DerivedAssetCache",
    "EditingSession",
    "JobStatus",
    "JobStatusRecord",
    "JobStatusTracker",
    "PlacedClip",
    "SourceClip",
    "TimelineModel",
]
