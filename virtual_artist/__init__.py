"""
Virtual artist career engine.

Tracks user progression and credits, scores releases, applies daily growth
and ranks the artist population on a global chart.
"""

from .models import (
    SubscriptionTier,
    Level,
    FanReaction,
    ReleaseType,
    Capabilities,
    UserProgression,
    ArtistEntity,
    AudioFeatures,
    ReleaseSubmission,
    Release,
    GenreShift,
    ArtistEvolution,
)
from .storage import Repository, InMemoryRepository, JsonFileRepository
from .service import CareerService

__version__ = "1.0.0"

__all__ = [
    # models.py
    "SubscriptionTier",
    "Level",
    "FanReaction",
    "ReleaseType",
    "Capabilities",
    "UserProgression",
    "ArtistEntity",
    "AudioFeatures",
    "ReleaseSubmission",
    "Release",
    "GenreShift",
    "ArtistEvolution",
    # storage.py
    "Repository",
    "InMemoryRepository",
    "JsonFileRepository",
    # service.py
    "CareerService",
]
