"""Time formatting utilities.

`format_time` formats seconds as mm:ss.mmm for labels and log lines,
`format_ruler` gives the coarse m:ss used on timeline rulers and
`ruler_ticks` picks the tick positions for a given zoom level.
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import List

__all__ = ["format_time", "format_ruler", "ruler_ticks", "RULER_INTERVALS"]

# Candidate ruler spacings in seconds, smallest first.
RULER_INTERVALS = (1, 2, 5, 10, 15, 30, 60)


def format_time(seconds: float) -> str:
    """Return a human-friendly timestamp mm:ss.mmm.

    Uses ROUND_HALF_UP semantics for milliseconds to avoid Python's bankers rounding
    edge cases (e.g., 1.2345 -> 1.235). Accepts negative (clamps display to 0).
    """
    if seconds < 0:
        seconds = 0.0
    ms_total = int(
        (Decimal(str(seconds)) * Decimal(1000)).to_integral_value(
            rounding=ROUND_HALF_UP
        )
    )
    m, rem = divmod(ms_total, 60000)
    s, ms = divmod(rem, 1000)
    return f"{m:02d}:{s:02d}.{ms:03d}"  # mm:ss.mmm


def format_ruler(seconds: float) -> str:
    """Format whole seconds as m:ss (no zero padding on minutes)."""
    if seconds < 0:
        seconds = 0.0
    whole = int(seconds)
    return f"{whole // 60}:{whole % 60:02d}"


def ruler_ticks(total_duration: float, pixels_per_second: float) -> List[float]:
    """Return tick times covering ``total_duration`` at the given scale.

    The interval is the smallest entry of RULER_INTERVALS that keeps ticks at
    least ~60px apart; one extra tick past the end closes the ruler.
    """
    if total_duration <= 0 or pixels_per_second <= 0:
        return []
    min_gap = math.ceil(60 / pixels_per_second)
    interval = next((i for i in RULER_INTERVALS if i >= min_gap), RULER_INTERVALS[-1])
    count = math.ceil(total_duration / interval) + 1
    return [float(i * interval) for i in range(count)]
