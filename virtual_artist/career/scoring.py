"""
Release scoring and application of a release to an artist's career.

SCORING:
--------
- music_quality: supplied by the audio collaborator, clamped to [0, 1]
- genre_consistency: 1.0 for an exact genre match, otherwise looked up in
  the genre table:
    alias of the same genre  -> 0.9
    same family              -> 0.7  (e.g. Dream Pop / Shoegaze)
    different known families -> 0.3
    either genre unmapped    -> 0.5
- release_impact: round(quality * consistency * 100), floor 0
- fan_reaction: positive above 0.7 quality, negative below 0.4
- evolution narrative: a shift above 0.7 intensity is a dramatic pivot, any
  smaller shift a subtle evolution, no shift refined mastery

scoring is pure. release_new_music builds the Release and ArtistEvolution
records and returns the artist with the release's fame and fanbase deltas
applied; callers persist all three.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from ..config import ScoringSettings, settings
from ..errors import InvalidDelta
from ..events import Event, ReleasePublished
from ..models import (
    ArtistEntity,
    ArtistEvolution,
    FanReaction,
    GenreShift,
    Release,
    ReleaseSubmission,
)
from ..utils import clamp, round_half_up
from .genres import canonical_genre, genre_family, normalize_genre
from .milestones import record_milestones

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseScore:
    """Scores and derived deltas for one release."""
    music_quality: float
    genre_consistency: float
    release_impact: int
    fan_reaction: FanReaction
    genre_mastery: float
    fame_change: int
    fanbase_change: int
    track_number: int
    genre_shift: Optional[GenreShift] = None


@dataclass
class ReleaseOutcome:
    """Everything a release produces, for the caller to persist."""
    artist: ArtistEntity
    release: Release
    evolution: ArtistEvolution
    score: ReleaseScore
    events: List[Event]


def _scoring(config: Optional[ScoringSettings]) -> ScoringSettings:
    return config or settings.scoring


def genre_consistency(
    release_genre: str,
    artist_genre: str,
    config: Optional[ScoringSettings] = None,
) -> float:
    """Similarity between a release's genre and the artist's established genre."""
    config = _scoring(config)
    if normalize_genre(release_genre) == normalize_genre(artist_genre):
        return 1.0
    if canonical_genre(release_genre) == canonical_genre(artist_genre):
        return config.alias_similarity

    release_family = genre_family(release_genre)
    artist_family = genre_family(artist_genre)
    if release_family is None or artist_family is None:
        return config.unknown_similarity
    if release_family == artist_family:
        return config.family_similarity
    return config.cross_family_similarity


def genre_shift(
    release_genre: str,
    artist_genre: str,
    config: Optional[ScoringSettings] = None,
) -> Optional[GenreShift]:
    """Describe the move away from the artist's genre, if any."""
    config = _scoring(config)
    if canonical_genre(release_genre) == canonical_genre(artist_genre):
        return None

    release_family = genre_family(release_genre)
    same_family = release_family is not None and release_family == genre_family(artist_genre)
    intensity = config.family_shift_intensity if same_family else config.cross_family_shift_intensity
    return GenreShift(from_genre=artist_genre, to_genre=release_genre, intensity=intensity)


def evolution_narrative(
    shift: Optional[GenreShift],
    fame_change: int,
    artist_genre: str,
) -> Tuple[str, str, str]:
    """Sound evolution, fanbase reaction and artistic growth text for a release."""
    if shift is None:
        return (
            f"Refined mastery of {artist_genre} showcasing technical growth",
            "Core fanbase celebrates the consistent quality and style",
            "Genre mastery progression",
        )
    if shift.intensity > 0.7:
        reaction = (
            "Mixed reactions but ultimately praised for creative risk-taking" if fame_change > 0
            else "Fans divided on the new direction, some calling it experimental"
        )
        return (
            f"Dramatic shift from {shift.from_genre} to {shift.to_genre} - a bold artistic pivot",
            reaction,
            "Creative breakthrough" if shift.intensity > 0.8 else "Artistic exploration",
        )
    return (
        f"Subtle evolution incorporating {shift.to_genre} elements into core {shift.from_genre} sound",
        "Fans appreciate the musical growth while staying true to roots",
        "Measured artistic development",
    )


def fan_reaction(music_quality: float, config: Optional[ScoringSettings] = None) -> FanReaction:
    config = _scoring(config)
    if music_quality > config.positive_quality:
        return FanReaction.POSITIVE
    if music_quality < config.negative_quality:
        return FanReaction.NEGATIVE
    return FanReaction.NEUTRAL


def release_impact(music_quality: float, consistency: float) -> int:
    return max(0, round_half_up(music_quality * consistency * 100))


def score(
    submission: ReleaseSubmission,
    artist_genre: str,
    artist_history: Sequence[Release] = (),
    config: Optional[ScoringSettings] = None,
) -> ReleaseScore:
    """
    Score a release against the artist's established genre.

    Args:
        submission: Release submission with quality and audio features
        artist_genre: The artist's fixed identity genre
        artist_history: Prior releases, oldest first (read only)
        config: Scoring settings (defaults to global settings)

    Returns:
        ReleaseScore
    """
    config = _scoring(config)
    quality = clamp(submission.music_quality, 0.0, 1.0)
    release_genre = submission.declared_genre

    consistency = genre_consistency(release_genre, artist_genre, config)
    impact = release_impact(quality, consistency)

    return ReleaseScore(
        music_quality=quality,
        genre_consistency=consistency,
        release_impact=impact,
        fan_reaction=fan_reaction(quality, config),
        genre_mastery=clamp(consistency * (0.5 + quality), 0.0, 2.0),
        fame_change=round_half_up((impact - config.fame_impact_pivot) / config.fame_impact_step),
        fanbase_change=math.floor((quality - config.fanbase_quality_pivot) * config.fanbase_per_quality),
        track_number=len(artist_history) + 1,
        genre_shift=genre_shift(release_genre, artist_genre, config),
    )


def release_new_music(
    artist: ArtistEntity,
    submission: ReleaseSubmission,
    history: Sequence[Release],
    now: datetime,
    config: Optional[ScoringSettings] = None,
) -> ReleaseOutcome:
    """Score a release and apply it to the artist's career."""
    result = score(submission, artist.genre, history, config)

    release = Release(
        release_id=str(uuid.uuid4()),
        artist_id=artist.artist_id,
        created_at=now,
        genre=submission.declared_genre,
        music_quality=result.music_quality,
        genre_consistency=result.genre_consistency,
        release_impact=result.release_impact,
        fan_reaction=result.fan_reaction,
        title=submission.title,
        release_type=submission.release_type,
        track_number=result.track_number,
    )

    new_fame = int(clamp(artist.current_fame + result.fame_change, 0, 100))
    new_fanbase = max(0, artist.fanbase + result.fanbase_change)
    sound, reaction, growth = evolution_narrative(result.genre_shift, new_fame - artist.current_fame, artist.genre)
    evolution = ArtistEvolution(
        evolution_id=str(uuid.uuid4()),
        artist_id=artist.artist_id,
        release_id=release.release_id,
        created_at=now,
        genre_mastery=result.genre_mastery,
        fame_change_from_release=new_fame - artist.current_fame,
        fanbase_change_from_release=new_fanbase - artist.fanbase,
        genre_shift=result.genre_shift,
        sound_evolution=sound,
        fanbase_reaction=reaction,
        artistic_growth=growth,
    )

    updated = replace(artist, current_fame=new_fame, fanbase=new_fanbase)
    updated, milestone_events = record_milestones(updated, release_count=len(history) + 1)

    events: List[Event] = [ReleasePublished(
        artist_id=artist.artist_id,
        release_id=release.release_id,
        release_impact=release.release_impact,
        fan_reaction=release.fan_reaction.value,
        fame_change=evolution.fame_change_from_release,
    )]
    events.extend(milestone_events)

    logger.info(
        "Artist %s released %s: impact %d, fame %+d",
        artist.artist_id, release.release_id, release.release_impact,
        evolution.fame_change_from_release,
    )
    return ReleaseOutcome(updated, release, evolution, result, events)


def record_engagement(release: Release, streams: int = 0, likes: int = 0) -> Release:
    """Accumulate stream and like counts on a release."""
    if streams < 0 or likes < 0:
        raise InvalidDelta(f"Stream and like deltas must be non-negative (got {streams}, {likes})")
    return replace(release, streams=release.streams + streams, likes=release.likes + likes)


def record_chart_position(release: Release, position: int) -> Release:
    """Update the peak chart position; the recorded peak never gets worse."""
    if position <= 0:
        return release
    if release.peak_chart_position == 0 or position < release.peak_chart_position:
        return replace(release, peak_chart_position=position)
    return release
