"""Process-wide logging configuration.

Modules log through ``logging.getLogger(__name__)``; only entry points call
`configure_logging`.
"""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler once and set the ``reelsmith`` logger level."""
    if level is None:
        from .config import get_settings

        level = get_settings().effective_log_level
    level_value = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=level_value, format=LOG_FORMAT)
    logging.getLogger("reelsmith").setLevel(level_value)
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level_value, logging.INFO))


__all__ = ["configure_logging", "LOG_FORMAT"]
