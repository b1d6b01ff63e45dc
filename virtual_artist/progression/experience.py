"""
Experience tracker: converts cumulative experience into a level.

The level table is a fixed, ordered list of half-open experience bands.
A value exactly on a boundary belongs to the higher band. The top band
("Music Mogul") is open-ended and display-only: it unlocks nothing beyond
Label Executive.

Capabilities are a pure function of level and are never stored.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from ..config import LevelBand, ProgressionSettings, settings
from ..errors import InvalidDelta
from ..events import LevelUp
from ..models import Capabilities, Level, UserProgression

logger = logging.getLogger(__name__)

# Display bands above Label Executive map back to it for capability purposes
_LEVEL_BY_NAME: Dict[str, Level] = {level.value: level for level in Level}

CAPABILITIES: Dict[Level, Capabilities] = {
    Level.FAN: Capabilities(),
    Level.ARTIST: Capabilities(),
    Level.PRODUCER: Capabilities(),
    Level.A_AND_R: Capabilities(
        can_customize_style=True,
        can_set_philosophy=True,
    ),
    Level.LABEL_EXECUTIVE: Capabilities(
        can_customize_style=True,
        can_set_philosophy=True,
        can_upload_images=True,
        can_hardcode_parameters=True,
    ),
}


def _bands(progression: Optional[ProgressionSettings]) -> List[LevelBand]:
    return (progression or settings.progression).level_bands


def band_for(experience: int, progression: Optional[ProgressionSettings] = None) -> LevelBand:
    """Return the level band containing the given experience."""
    bands = _bands(progression)
    experience = max(0, experience)
    current = bands[0]
    for band in bands:
        if experience >= band.min_experience:
            current = band
        else:
            break
    return current


def level_for(experience: int, progression: Optional[ProgressionSettings] = None) -> Level:
    """Return the capability level for an experience total."""
    band = band_for(experience, progression)
    if band.name in _LEVEL_BY_NAME:
        return _LEVEL_BY_NAME[band.name]
    return Level.LABEL_EXECUTIVE


def title_for(experience: int, progression: Optional[ProgressionSettings] = None) -> str:
    """Return the display title, including the open-ended top tier."""
    return band_for(experience, progression).name


def progress_fraction(experience: int, progression: Optional[ProgressionSettings] = None) -> float:
    """Fraction of the way through the current band, in [0, 1]."""
    band = band_for(experience, progression)
    if band.max_experience is None:
        return 1.0
    span = band.max_experience - band.min_experience
    fraction = (max(0, experience) - band.min_experience) / span
    return max(0.0, min(1.0, fraction))


def experience_to_next_level(experience: int, progression: Optional[ProgressionSettings] = None) -> Optional[int]:
    """Experience still needed to leave the current band, or None at the top."""
    band = band_for(experience, progression)
    if band.max_experience is None:
        return None
    return band.max_experience - max(0, experience)


def capabilities_for(level: Level) -> Capabilities:
    """Return the creative-control capabilities unlocked by a level."""
    return CAPABILITIES[level]


def add_experience(
    progression: UserProgression,
    experience: int,
    influence: int = 0,
    config: Optional[ProgressionSettings] = None,
) -> Tuple[UserProgression, List[LevelUp]]:
    """
    Add experience and influence to a user.

    Args:
        progression: Current user progression
        experience: Experience to add (must be >= 0)
        influence: Influence to add (must be >= 0)
        config: Progression settings (defaults to global settings)

    Returns:
        Tuple of (updated progression, level-up events)
    """
    if experience < 0 or influence < 0:
        raise InvalidDelta(
            f"Experience and influence deltas must be non-negative "
            f"(got experience={experience}, influence={influence})"
        )

    previous_title = title_for(progression.experience, config)
    updated = replace(
        progression,
        experience=progression.experience + experience,
        influence=progression.influence + influence,
    )
    new_title = title_for(updated.experience, config)

    events: List[LevelUp] = []
    if new_title != previous_title:
        events.append(LevelUp(
            user_id=progression.user_id,
            previous_level=previous_title,
            new_level=new_title,
            experience=updated.experience,
        ))
        logger.info("User %s leveled up: %s -> %s", progression.user_id, previous_title, new_title)

    return updated, events


def award_card_created(
    progression: UserProgression,
    config: Optional[ProgressionSettings] = None,
) -> Tuple[UserProgression, List[LevelUp]]:
    """Award the per-card experience and influence for generating an artist."""
    config = config or settings.progression
    updated, events = add_experience(
        progression,
        config.card_experience_award,
        config.card_influence_award,
        config,
    )
    return replace(updated, total_cards=updated.total_cards + 1), events
