"""
Career aggregation: folds releases and evolution records into career stats.

Both sequences are expected in chronological (insertion) order. The fold is
pure and idempotent: the same input always yields the same stats, with
highlights ordered by rule declaration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..config import ScoringSettings, settings
from ..models import ArtistEvolution, FanReaction, Release
from ..utils import to_utc_datetime

INSUFFICIENT_DATA = "Insufficient Data"
ASCENDING = "Ascending"
DECLINING = "Declining"
STABLE = "Stable"


@dataclass
class CareerStats:
    """Career-level statistics for one artist."""
    total_releases: int
    genre_consistency_score: float
    artistic_growth_trend: str
    best_performing_release: Optional[Release]
    career_highlights: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class HighlightRule:
    name: str
    applies: Callable[[Sequence[Release], Sequence[ArtistEvolution], ScoringSettings], bool]


def _count_positive(releases: Sequence[Release]) -> int:
    return sum(1 for r in releases if r.fan_reaction == FanReaction.POSITIVE)


HIGHLIGHT_RULES: List[HighlightRule] = [
    HighlightRule("Top 10 Hit", lambda rs, es, c: any(1 <= r.peak_chart_position <= 10 for r in rs)),
    HighlightRule("Fan Favorite", lambda rs, es, c: _count_positive(rs) >= c.fan_favorite_count),
    HighlightRule("Prolific Artist", lambda rs, es, c: len(rs) >= 10),
    HighlightRule("Established Catalog", lambda rs, es, c: 5 <= len(rs) < 10),
    HighlightRule("High Quality Catalog", lambda rs, es, c: any(r.music_quality > c.high_quality for r in rs)),
    HighlightRule("Genre Pioneer", lambda rs, es, c: any(
        e.genre_shift is not None and e.genre_shift.intensity > c.pioneer_shift_intensity for e in es
    )),
    HighlightRule("Charting Artist", lambda rs, es, c: any(r.peak_chart_position > 0 for r in rs)),
    HighlightRule("Genre Master", lambda rs, es, c: bool(es) and es[-1].genre_mastery > c.mastery_threshold),
]


def overall_consistency(releases: Sequence[Release]) -> float:
    """Mean genre consistency; 1.0 (neutral) for an empty catalog."""
    if not releases:
        return 1.0
    return float(np.mean([r.genre_consistency for r in releases]))


def growth_trend(evolutions: Sequence[ArtistEvolution], threshold: float) -> str:
    """Compare mean mastery of the first half to the second half."""
    if len(evolutions) < 2:
        return INSUFFICIENT_DATA

    mastery = np.array([e.genre_mastery for e in evolutions], dtype=float)
    # Odd counts put the middle record in the second half
    split = len(mastery) // 2
    delta = float(mastery[split:].mean() - mastery[:split].mean())

    if delta > threshold:
        return ASCENDING
    if delta < -threshold:
        return DECLINING
    return STABLE


def best_performing_release(releases: Sequence[Release]) -> Optional[Release]:
    """Release with the most streams; ties go to the most recent."""
    if not releases:
        return None
    return max(releases, key=lambda r: (r.streams, to_utc_datetime(r.created_at)))


def career_highlights(
    releases: Sequence[Release],
    evolutions: Sequence[ArtistEvolution],
    config: ScoringSettings,
) -> List[str]:
    return [rule.name for rule in HIGHLIGHT_RULES if rule.applies(releases, evolutions, config)]


def aggregate(
    releases: Sequence[Release],
    evolutions: Sequence[ArtistEvolution],
    config: Optional[ScoringSettings] = None,
) -> CareerStats:
    """Fold an artist's releases and evolutions into career statistics."""
    config = config or settings.scoring
    return CareerStats(
        total_releases=len(releases),
        genre_consistency_score=overall_consistency(releases),
        artistic_growth_trend=growth_trend(evolutions, config.trend_threshold),
        best_performing_release=best_performing_release(releases),
        career_highlights=career_highlights(releases, evolutions, config),
    )


def _ordinal_phrase(release: Release, release_count: int) -> str:
    release_type = release.release_type.value
    if release_count == 1:
        return f"their debut {release_type}!"
    if release_count == 2:
        return "their sophomore release."
    if release_count == 3:
        return "their third release."
    return f"their latest {release_type} (#{release_count} in their catalog)."


def career_summary(
    artist_name: str,
    genre: str,
    release: Release,
    evolution: ArtistEvolution,
    release_count: int,
) -> str:
    """Short narrative describing what a release did for the artist."""
    title = release.title or "New Track"
    parts = [f'{artist_name} has released "{title}" - {_ordinal_phrase(release, release_count)}']

    shift = evolution.genre_shift
    if shift is None:
        parts.append(f"This release shows refined mastery of {genre}.")
    elif shift.intensity > 0.7:
        parts.append(f"This release is a bold pivot from {shift.from_genre} to {shift.to_genre}.")
    else:
        parts.append(f"This release brings {shift.to_genre} elements into their {shift.from_genre} sound.")

    fame = evolution.fame_change_from_release
    fans = evolution.fanbase_change_from_release
    if fame > 0:
        gained = f" and gained {fans} new fans" if fans > 0 else ""
        parts.append(f"It boosted their FAME by {fame} points{gained}.")
    elif fame < 0:
        parts.append(f"It met a mixed reception, costing {abs(fame)} FAME.")

    parts.append(f"{artist_name} continues to evolve their {genre} sound.")
    return " ".join(parts)
