"""Project folder layout and persisted editor state.

A project is a folder in the workspace::

    <workspace>/<project_name>/
        .reelsmith/editor_state.json
        videos/<job_id>.mp4
        cache/waveforms/<clip_id>_<width>.png
        cache/sprites/<clip_id>_<width>.png
        temp/preview.mp4

`EditorStateStore` loads and saves the editor state as pretty-printed JSON.
It knows nothing about the timeline model; the model converts itself to and
from `EditorState`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from .clip import PlacedClip

logger = logging.getLogger(__name__)

META_DIR = ".reelsmith"
EDITOR_STATE_FILE = "editor_state.json"
VIDEOS_DIR = "videos"
CACHE_DIR = "cache"
TEMP_DIR = "temp"
PREVIEW_FILE = "preview.mp4"

_UNSAFE = re.compile(r"[^A-Za-z0-9._ -]+")


def sanitize_project_name(name: str) -> str:
    """Make ``name`` safe to use as a single path component."""
    cleaned = _UNSAFE.sub("_", name).strip(" .")
    if not cleaned:
        raise ValueError(f"invalid project name: {name!r}")
    return cleaned


class ProjectPaths:
    def __init__(self, root: str | Path):
        self._root = Path(root)

    @classmethod
    def from_name(cls, workspace: str | Path, project_name: str) -> "ProjectPaths":
        return cls(Path(workspace) / sanitize_project_name(project_name))

    @property
    def root(self) -> Path:
        return self._root

    @property
    def name(self) -> str:
        return self._root.name

    def editor_state_file(self) -> Path:
        return self._root / META_DIR / EDITOR_STATE_FILE

    def videos_dir(self) -> Path:
        return self._root / VIDEOS_DIR

    def video_file(self, job_id: str) -> Path:
        return self.videos_dir() / f"{job_id}.mp4"

    def waveforms_dir(self) -> Path:
        return self._root / CACHE_DIR / "waveforms"

    def waveform_file(self, clip_id: str, width: int) -> Path:
        return self.waveforms_dir() / f"{clip_id}_{width}.png"

    def sprites_dir(self) -> Path:
        return self._root / CACHE_DIR / "sprites"

    def sprite_file(self, clip_id: str, width: int) -> Path:
        return self.sprites_dir() / f"{clip_id}_{width}.png"

    def temp_dir(self) -> Path:
        return self._root / TEMP_DIR

    def preview_file(self) -> Path:
        return self.temp_dir() / PREVIEW_FILE

    def ensure(self) -> "ProjectPaths":
        for d in (
            self.editor_state_file().parent,
            self.videos_dir(),
            self.waveforms_dir(),
            self.sprites_dir(),
            self.temp_dir(),
        ):
            d.mkdir(parents=True, exist_ok=True)
        return self

    def __repr__(self) -> str:
        return f"ProjectPaths({str(self._root)!r})"


@dataclass
class EditorState:
    clips: List[PlacedClip] = field(default_factory=list)
    selected_clip_id: Optional[str] = None
    preview_video_path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "clips": [c.to_dict() for c in self.clips],
            "selectedClipId": self.selected_clip_id,
            "previewVideoPath": self.preview_video_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EditorState":
        clips = [PlacedClip.from_dict(c) for c in data.get("clips", [])]
        return cls(
            clips=clips,
            selected_clip_id=data.get("selectedClipId"),
            preview_video_path=data.get("previewVideoPath"),
        )


class EditorStateStore:
    """JSON file persistence for `EditorState`, one file per project."""

    def __init__(self, workspace: str | Path):
        self._workspace = Path(workspace)

    @property
    def workspace(self) -> Path:
        return self._workspace

    def paths(self, project_name: str) -> ProjectPaths:
        return ProjectPaths.from_name(self._workspace, project_name)

    def load_editor_state(self, project_name: str) -> Optional[EditorState]:
        """Return the saved state, or None when the project has none yet.

        Malformed files raise ValueError; callers decide whether to start
        from an empty timeline.
        """
        path = self.paths(project_name).editor_state_file()
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return EditorState.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"failed to parse editor state {path}: {e}") from e

    def save_editor_state(self, project_name: str, state: EditorState) -> Path:
        path = self.paths(project_name).editor_state_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
        tmp.replace(path)
        logger.debug("saved editor state for %s (%d clips)", project_name, len(state.clips))
        return path


__all__ = [
    "EditorState",
    "EditorStateStore",
    "ProjectPaths",
    "sanitize_project_name",
]
