"""Typed event records emitted by engine operations.

The engine only builds these; delivering them to feeds or notifications
is the caller's job.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class LevelUp:
    user_id: str
    previous_level: str
    new_level: str
    experience: int


@dataclass(frozen=True)
class CreditsGranted:
    user_id: str
    amount: int
    balance: int


@dataclass(frozen=True)
class CreditsSpent:
    user_id: str
    amount: int
    balance: int


@dataclass(frozen=True)
class CreditsRenewed:
    user_id: str
    tier: str
    amount: int
    renewed_at: datetime


@dataclass(frozen=True)
class TierChanged:
    user_id: str
    previous_tier: str
    new_tier: str


@dataclass(frozen=True)
class DailyGrowthApplied:
    artist_id: str
    day: date
    fame_delta: int
    streams_added: int
    fans_added: int
    streak: int
    downloads_added: int = 0
    physical_added: int = 0


@dataclass(frozen=True)
class ReleasePublished:
    artist_id: str
    release_id: str
    release_impact: int
    fan_reaction: str
    fame_change: int


@dataclass(frozen=True)
class ChartEntry:
    artist_id: str
    position: int


@dataclass(frozen=True)
class ChartExit:
    artist_id: str
    previous_position: int


@dataclass(frozen=True)
class ChartMove:
    artist_id: str
    previous_position: int
    position: int


@dataclass(frozen=True)
class MilestoneReached:
    artist_id: str
    milestone_id: str
    name: str


Event = Union[
    LevelUp,
    CreditsGranted,
    CreditsSpent,
    CreditsRenewed,
    TierChanged,
    DailyGrowthApplied,
    ReleasePublished,
    ChartEntry,
    ChartExit,
    ChartMove,
    MilestoneReached,
]


def event_to_dict(event: Event) -> Dict[str, Any]:
    """Flatten an event to a JSON-friendly dict with its type name."""
    data: Dict[str, Any] = {"type": type(event).__name__}
    for key, value in asdict(event).items():
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        data[key] = value
    return data


def event_entity_id(event: Event) -> Optional[str]:
    """Return the user or artist id an event concerns."""
    return getattr(event, "artist_id", None) or getattr(event, "user_id", None)
