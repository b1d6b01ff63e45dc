"""Milestone rules for artist careers.

Each milestone is reached at most once per artist. Rules are evaluated in
declaration order, so results are stable for the same artist state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Tuple

from ..events import MilestoneReached
from ..models import ArtistEntity


@dataclass(frozen=True)
class Milestone:
    """A one-time career achievement."""
    id: str
    name: str
    description: str
    requirement: Callable[[ArtistEntity, int], bool]  # (artist, release_count)


def _charted_within(artist: ArtistEntity, position: int) -> bool:
    return 0 < artist.chart_position <= position


def total_sales(artist: ArtistEntity) -> int:
    """Physical copies plus digital downloads plus streams."""
    return artist.physical_copies + artist.digital_downloads + artist.total_streams


MILESTONES: List[Milestone] = [
    Milestone("first_release", "First Steps", "Publish your first release",
              lambda a, releases: releases >= 1),
    Milestone("rising_star", "Rising Star", "Reach 1,000 total streams",
              lambda a, releases: a.total_streams >= 1000),
    Milestone("chart_debut", "Chart Debut", "Enter the charts (position 100 or better)",
              lambda a, releases: _charted_within(a, 100)),
    Milestone("viral_hit", "Viral Hit", "Reach 10,000 daily streams",
              lambda a, releases: a.daily_streams >= 10000),
    Milestone("top_40", "Top 40 Artist", "Reach top 40 on the charts",
              lambda a, releases: _charted_within(a, 40)),
    Milestone("fanbase_1k", "Growing Fanbase", "Gain 1,000 fans",
              lambda a, releases: a.fanbase >= 1000),
    Milestone("fanbase_10k", "Devoted Following", "Gain 10,000 fans",
              lambda a, releases: a.fanbase >= 10000),
    Milestone("top_10", "Chart Domination", "Reach top 10 on the charts",
              lambda a, releases: _charted_within(a, 10)),
    Milestone("superstar", "Superstar Status", "Reach FAME 80",
              lambda a, releases: a.current_fame >= 80),
    Milestone("legend", "Music Legend", "Reach maximum FAME 100",
              lambda a, releases: a.current_fame >= 100),
    Milestone("gold_record", "Gold Record", "Reach 500,000 total sales",
              lambda a, releases: total_sales(a) >= 500_000),
    Milestone("platinum_record", "Platinum Record", "Reach 2,000,000 total sales",
              lambda a, releases: total_sales(a) >= 2_000_000),
    Milestone("diamond_record", "Diamond Record", "Reach 10,000,000 total sales",
              lambda a, releases: total_sales(a) >= 10_000_000),
]


def check_milestones(artist: ArtistEntity, release_count: int = 0) -> List[Milestone]:
    """All milestones whose requirement the artist currently meets."""
    return [m for m in MILESTONES if m.requirement(artist, release_count)]


def new_milestones(artist: ArtistEntity, release_count: int = 0) -> List[Milestone]:
    """Milestones met now that are not yet recorded on the artist."""
    return [m for m in check_milestones(artist, release_count) if m.id not in artist.milestones]


def record_milestones(
    artist: ArtistEntity,
    release_count: int = 0,
) -> Tuple[ArtistEntity, List[MilestoneReached]]:
    """Record newly reached milestones on the artist and emit an event for each."""
    reached = new_milestones(artist, release_count)
    if not reached:
        return artist, []

    updated = replace(artist, milestones=artist.milestones + tuple(m.id for m in reached))
    events = [MilestoneReached(artist.artist_id, m.id, m.name) for m in reached]
    return updated, events
