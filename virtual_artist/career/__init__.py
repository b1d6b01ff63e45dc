"""
Career module for artist release scoring, daily growth, aggregation and charts.
"""

from .genres import GENRE_ALIASES, GENRE_FAMILIES, canonical_genre, genre_family
from .milestones import Milestone, MILESTONES, check_milestones, new_milestones, record_milestones, total_sales
from .scoring import (
    ReleaseScore,
    ReleaseOutcome,
    genre_consistency,
    genre_shift,
    evolution_narrative,
    fan_reaction,
    release_impact,
    score,
    release_new_music,
    record_engagement,
    record_chart_position,
)
from .growth import (
    GrowthState,
    GrowthResult,
    growth_state,
    base_growth,
    streak_multiplier,
    daily_stream_rate,
    daily_fan_rate,
    daily_download_rate,
    daily_physical_rate,
    apply_daily_growth,
)
from .aggregator import (
    CareerStats,
    HIGHLIGHT_RULES,
    aggregate,
    career_summary,
)
from .charts import rank, apply_rankings, leaderboard

__version__ = "1.0.0"

__all__ = [
    # genres.py
    "GENRE_ALIASES",
    "GENRE_FAMILIES",
    "canonical_genre",
    "genre_family",
    # milestones.py
    "Milestone",
    "MILESTONES",
    "check_milestones",
    "new_milestones",
    "record_milestones",
    "total_sales",
    # scoring.py
    "ReleaseScore",
    "ReleaseOutcome",
    "genre_consistency",
    "genre_shift",
    "evolution_narrative",
    "fan_reaction",
    "release_impact",
    "score",
    "release_new_music",
    "record_engagement",
    "record_chart_position",
    # growth.py
    "GrowthState",
    "GrowthResult",
    "growth_state",
    "base_growth",
    "streak_multiplier",
    "daily_stream_rate",
    "daily_fan_rate",
    "daily_download_rate",
    "daily_physical_rate",
    "apply_daily_growth",
    # aggregator.py
    "CareerStats",
    "HIGHLIGHT_RULES",
    "aggregate",
    "career_summary",
    # charts.py
    "rank",
    "apply_rankings",
    "leaderboard",
]
