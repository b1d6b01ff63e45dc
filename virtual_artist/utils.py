"""Small numeric and time helpers shared by the engine."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Union


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def to_utc_date(value: Union[date, datetime]) -> date:
    """
    Normalize a timestamp to its UTC calendar day.

    Aware datetimes are converted to UTC first; naive datetimes are taken
    to already be UTC. Plain dates pass through.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def to_utc_datetime(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive input is taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
