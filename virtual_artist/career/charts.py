"""
Chart ranking over the whole artist population.

Rank is a relative, global property, so every call recomputes positions
for all artists from scratch. Ordering:
    1. current_fame, descending
    2. total_streams, descending
    3. created_at, ascending (earlier artist wins)
    4. artist_id, ascending (only for identical timestamps)
Positions beyond the chart size are reported as 0 (unranked).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..config import ChartSettings, settings
from ..events import ChartEntry, ChartExit, ChartMove, Event
from ..models import ArtistEntity
from ..utils import to_utc_datetime
from .milestones import record_milestones

logger = logging.getLogger(__name__)

_SORT_COLUMNS = ["current_fame", "total_streams", "created_at", "artist_id"]
_SORT_ASCENDING = [False, False, True, True]


def _artists_frame(artists: Sequence[ArtistEntity]) -> pd.DataFrame:
    """Build a frame of ranking inputs, sorted best first."""
    df = pd.DataFrame(
        [
            {
                "artist_id": a.artist_id,
                "name": a.name,
                "genre": a.genre,
                "current_fame": a.current_fame,
                "total_streams": a.total_streams,
                "daily_streams": a.daily_streams,
                "fanbase": a.fanbase,
                "created_at": to_utc_datetime(a.created_at),
            }
            for a in artists
        ],
        columns=["artist_id", "name", "genre", "current_fame", "total_streams",
                 "daily_streams", "fanbase", "created_at"],
    )
    df = df.sort_values(_SORT_COLUMNS, ascending=_SORT_ASCENDING, kind="mergesort")
    df["rank"] = range(1, len(df) + 1)
    return df.reset_index(drop=True)


def rank(
    artists: Sequence[ArtistEntity],
    config: Optional[ChartSettings] = None,
) -> Dict[str, int]:
    """
    Assign chart positions to every artist.

    Args:
        artists: Full artist population (a consistent snapshot)
        config: Chart settings (defaults to global settings)

    Returns:
        Mapping of artist_id to 1-based position, or 0 when outside the chart
    """
    config = config or settings.charts
    if not artists:
        return {}

    df = _artists_frame(artists)
    positions = df["rank"].where(df["rank"] <= config.chart_size, 0)
    return {artist_id: int(pos) for artist_id, pos in zip(df["artist_id"], positions)}


def apply_rankings(
    artists: Sequence[ArtistEntity],
    positions: Dict[str, int],
) -> Tuple[List[ArtistEntity], List[Event]]:
    """Set chart positions on artists and emit chart and milestone events."""
    updated: List[ArtistEntity] = []
    events: List[Event] = []

    for artist in artists:
        position = positions.get(artist.artist_id, 0)
        previous = artist.chart_position
        if position == previous:
            updated.append(artist)
            continue

        if previous == 0:
            events.append(ChartEntry(artist.artist_id, position))
        elif position == 0:
            events.append(ChartExit(artist.artist_id, previous))
        else:
            events.append(ChartMove(artist.artist_id, previous, position))

        moved, milestone_events = record_milestones(replace(artist, chart_position=position))
        events.extend(milestone_events)
        updated.append(moved)

    logger.info(
        "Updated global rankings - %d artists ranked of %d",
        sum(1 for p in positions.values() if p > 0), len(artists),
    )
    return updated, events


def leaderboard(
    artists: Sequence[ArtistEntity],
    limit: Optional[int] = None,
    config: Optional[ChartSettings] = None,
) -> pd.DataFrame:
    """Ranked frame of charting artists for dashboards."""
    config = config or settings.charts
    if not artists:
        return pd.DataFrame(columns=["rank", "artist_id", "name", "genre", "current_fame", "total_streams"])

    df = _artists_frame(artists)
    df = df[df["rank"] <= config.chart_size]
    if limit is not None:
        df = df.head(limit)
    return df[["rank", "artist_id", "name", "genre", "current_fame", "total_streams"]].reset_index(drop=True)
