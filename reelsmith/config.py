"""Application settings.

Values come from the environment (prefix ``REELSMITH_``) or a local ``.env``
file. Everything has a default so the editor runs without any configuration;
only the remote video API needs ``REELSMITH_API_KEY``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # General
    debug: bool = False
    log_level: str = "INFO"

    # Project storage
    workspace_dir: Path = Path.home() / "reelsmith" / "projects"

    # Job polling
    poll_interval_seconds: float = 5.0

    # Persistence
    autosave_delay_ms: int = 500

    # Derived assets (pixels)
    min_waveform_width: int = 300
    waveform_height: int = 60
    min_sprite_width: int = 100
    timeline_clip_height: int = 64
    sprite_height_ratio: float = 0.6

    # Remote video API
    api_base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    request_timeout: float = 60.0
    video_model: str = "sora-2"
    video_size: str = "1280x720"
    video_seconds: int = 12

    model_config = SettingsConfigDict(
        env_prefix="REELSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def sprite_height(self) -> int:
        return round(self.timeline_clip_height * self.sprite_height_ratio)

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
