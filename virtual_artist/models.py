"""Data models for the virtual artist career engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SubscriptionTier(Enum):
    """Subscription tiers. Supplied by billing, read-only to the engine."""
    FREE = "Free"
    TIER2 = "Tier2"
    TIER3 = "Tier3"
    PRO = "Pro"


class Level(Enum):
    """User progression levels, lowest first."""
    FAN = "Fan"
    ARTIST = "Artist"
    PRODUCER = "Producer"
    A_AND_R = "A&R"
    LABEL_EXECUTIVE = "Label Executive"


class FanReaction(Enum):
    """How fans received a release."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ReleaseType(Enum):
    SINGLE = "single"
    EP = "ep"
    ALBUM = "album"


@dataclass(frozen=True)
class Capabilities:
    """Creative-control permissions unlocked by a level."""
    can_customize_style: bool = False
    can_set_philosophy: bool = False
    can_upload_images: bool = False
    can_hardcode_parameters: bool = False


@dataclass
class UserProgression:
    """A user's experience, influence and credit balance."""
    user_id: str
    experience: int = 0
    influence: int = 0
    credits: int = 0
    total_credits_earned: int = 0
    total_credits_spent: int = 0
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    last_credit_renewal: Optional[datetime] = None
    total_cards: int = 0
    version: int = 0

    @property
    def level(self) -> Level:
        # Imported here to keep the level table in one place
        from .progression.experience import level_for
        return level_for(self.experience)


@dataclass
class ArtistEntity:
    """A generated artist ("band"/card) and its career stats."""
    artist_id: str
    user_id: str
    name: str
    genre: str
    created_at: datetime
    current_fame: int = 5
    fanbase: int = 0
    daily_growth_streak: int = 0
    last_daily_update: Optional[date] = None
    total_streams: int = 0
    daily_streams: int = 0
    digital_downloads: int = 0
    physical_copies: int = 0
    chart_position: int = 0  # 0 = unranked
    milestones: Tuple[str, ...] = ()
    version: int = 0


@dataclass
class AudioFeatures:
    """Opaque record from the audio analysis collaborator."""
    tempo: Optional[float] = None
    energy_level: Optional[str] = None
    detected_genre_hint: Optional[str] = None
    vocal_features: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReleaseSubmission:
    """A new release as submitted by the caller."""
    music_quality: float
    title: Optional[str] = None
    genre: Optional[str] = None
    release_type: ReleaseType = ReleaseType.SINGLE
    features: AudioFeatures = field(default_factory=AudioFeatures)

    @property
    def declared_genre(self) -> str:
        return self.genre or self.features.detected_genre_hint or "Unknown"


@dataclass
class Release:
    """A single release. Only streams, likes and peak chart position change after creation."""
    release_id: str
    artist_id: str
    created_at: datetime
    genre: str
    music_quality: float
    genre_consistency: float
    release_impact: int
    fan_reaction: FanReaction
    title: Optional[str] = None
    release_type: ReleaseType = ReleaseType.SINGLE
    track_number: int = 1
    streams: int = 0
    likes: int = 0
    peak_chart_position: int = 0  # 0 = never charted
    version: int = 0


@dataclass(frozen=True)
class GenreShift:
    """A move away from the artist's established genre."""
    from_genre: str
    to_genre: str
    intensity: float


@dataclass
class ArtistEvolution:
    """Append-only record of how one release changed the artist."""
    evolution_id: str
    artist_id: str
    release_id: str
    created_at: datetime
    genre_mastery: float
    fame_change_from_release: int = 0
    fanbase_change_from_release: int = 0
    genre_shift: Optional[GenreShift] = None
    sound_evolution: str = ""
    fanbase_reaction: str = ""
    artistic_growth: str = ""
