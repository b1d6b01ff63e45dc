"""
Daily growth tick for artist entities.

STATE MACHINE:
--------------
Keyed by UTC calendar day (never by wall-clock hours):
- NOT_DUE_TODAY: growth already applied for today's date
- DUE_TODAY: last update date is before today (or never applied)

FAME GROWTH:
------------
    fame_delta = round(base_growth(fame) * streak_multiplier(streak))
    base_growth(fame) = max(1, round((100 - fame) / 20))
    streak_multiplier(streak) = 1 + min(streak, 30) * 0.02

Sales accrue from the new fame: floor(fame * 1.0) digital downloads and
floor(fame * 0.1) physical copies per day.

A gap of more than one day breaks the streak: it is reset to 0 before the
delta is computed and the new streak is 1. Missed days are never credited
retroactively.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple, Union

from ..config import GrowthSettings, settings
from ..errors import AlreadyAppliedToday
from ..events import DailyGrowthApplied, Event
from ..models import ArtistEntity
from ..utils import clamp, round_half_up, to_utc_date
from .milestones import record_milestones

logger = logging.getLogger(__name__)


class GrowthState(Enum):
    DUE_TODAY = "due_today"
    NOT_DUE_TODAY = "not_due_today"


@dataclass(frozen=True)
class GrowthResult:
    """What one growth tick changed."""
    day: date
    fame_delta: int
    streams_added: int
    fans_added: int
    streak: int
    streak_broken: bool
    downloads_added: int = 0
    physical_added: int = 0


def _growth(config: Optional[GrowthSettings]) -> GrowthSettings:
    return config or settings.growth


def growth_state(artist: ArtistEntity, now: Union[date, datetime]) -> GrowthState:
    """Whether the artist may receive growth for the UTC day of `now`."""
    if artist.last_daily_update is None:
        return GrowthState.DUE_TODAY
    if artist.last_daily_update < to_utc_date(now):
        return GrowthState.DUE_TODAY
    return GrowthState.NOT_DUE_TODAY


def base_growth(current_fame: int, config: Optional[GrowthSettings] = None) -> int:
    """Diminishing fame growth as fame approaches 100."""
    config = _growth(config)
    return max(config.min_base_growth, round_half_up((100 - current_fame) / config.fame_divisor))


def streak_multiplier(streak: int, config: Optional[GrowthSettings] = None) -> float:
    """Streak bonus, capped after streak_cap days."""
    config = _growth(config)
    return 1 + min(max(0, streak), config.streak_cap) * config.streak_bonus


def daily_stream_rate(current_fame: int, config: Optional[GrowthSettings] = None) -> int:
    """Daily streams earned at a given fame."""
    return max(0, current_fame) * _growth(config).streams_per_fame


def daily_fan_rate(current_fame: int, config: Optional[GrowthSettings] = None) -> int:
    """Fans gained per day at a given fame."""
    return max(0, round_half_up(current_fame * _growth(config).fans_per_fame))


def daily_download_rate(current_fame: int, config: Optional[GrowthSettings] = None) -> int:
    """Digital downloads sold per day at a given fame."""
    return max(0, math.floor(current_fame * _growth(config).downloads_per_fame))


def daily_physical_rate(current_fame: int, config: Optional[GrowthSettings] = None) -> int:
    """Physical copies sold per day at a given fame."""
    return max(0, math.floor(current_fame * _growth(config).physical_per_fame))


def apply_daily_growth(
    artist: ArtistEntity,
    now: Union[date, datetime],
    config: Optional[GrowthSettings] = None,
) -> Tuple[ArtistEntity, GrowthResult, List[Event]]:
    """
    Apply one day of growth to an artist.

    Args:
        artist: Current artist state
        now: Current time; normalized to its UTC calendar day
        config: Growth settings (defaults to global settings)

    Returns:
        Tuple of (updated artist, growth result, events)

    Raises:
        AlreadyAppliedToday: growth was already applied for this UTC day
    """
    today = to_utc_date(now)
    if growth_state(artist, today) == GrowthState.NOT_DUE_TODAY:
        raise AlreadyAppliedToday(artist.artist_id, today)

    consecutive = (
        artist.last_daily_update is not None
        and (today - artist.last_daily_update).days == 1
    )
    streak = artist.daily_growth_streak if consecutive else 0
    streak_broken = artist.daily_growth_streak > 0 and not consecutive

    fame_delta = round_half_up(base_growth(artist.current_fame, config) * streak_multiplier(streak, config))
    new_fame = int(clamp(artist.current_fame + fame_delta, 0, 100))
    daily_streams = daily_stream_rate(new_fame, config)
    fans_added = daily_fan_rate(new_fame, config)
    downloads_added = daily_download_rate(new_fame, config)
    physical_added = daily_physical_rate(new_fame, config)
    new_streak = streak + 1

    updated = replace(
        artist,
        current_fame=new_fame,
        daily_streams=daily_streams,
        total_streams=artist.total_streams + daily_streams,
        fanbase=artist.fanbase + fans_added,
        digital_downloads=artist.digital_downloads + downloads_added,
        physical_copies=artist.physical_copies + physical_added,
        last_daily_update=today,
        daily_growth_streak=new_streak,
    )

    result = GrowthResult(
        day=today,
        fame_delta=new_fame - artist.current_fame,
        streams_added=daily_streams,
        fans_added=fans_added,
        streak=new_streak,
        streak_broken=streak_broken,
        downloads_added=downloads_added,
        physical_added=physical_added,
    )

    updated, milestone_events = record_milestones(updated)
    events: List[Event] = [DailyGrowthApplied(
        artist_id=artist.artist_id,
        day=today,
        fame_delta=result.fame_delta,
        streams_added=daily_streams,
        fans_added=fans_added,
        streak=new_streak,
        downloads_added=downloads_added,
        physical_added=physical_added,
    )]
    events.extend(milestone_events)

    logger.info(
        "Applied daily growth to %s: fame %d -> %d, +%d streams, streak %d",
        artist.artist_id, artist.current_fame, new_fame, daily_streams, new_streak,
    )
    return updated, result, events
