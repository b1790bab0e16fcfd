"""Shared formatting helpers for console output."""

from __future__ import annotations

from typing import Optional, Union

Number = Union[int, float]


def format_age(seconds: float) -> str:
    """Format age in seconds to short human-readable string (e.g. '5min', '2h')."""
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        return f"{int(seconds / 60)}min"
    else:
        return f"{int(seconds / 3600)}h"


def format_temperature(value: Optional[Number]) -> str:
    if value is None:
        return "-"
    return f"{value:.1f}C"


def format_percent(value: Optional[Number], decimals: int = 0) -> str:
    if value is None:
        return "-"
    return f"{value:.{decimals}f}%"
