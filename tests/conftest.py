"""
Pytest Configuration and Fixtures

Shared settings, clocks and sample entities for the career engine tests.
"""
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from virtual_artist.config import BillingSettings, Settings
from virtual_artist.events import Event
from virtual_artist.models import (
    ArtistEntity,
    ArtistEvolution,
    FanReaction,
    Release,
    SubscriptionTier,
    UserProgression,
)
from virtual_artist.storage import InMemoryRepository


def make_release(
    artist_id: str = "artist-1",
    index: int = 1,
    quality: float = 0.5,
    reaction: FanReaction = FanReaction.NEUTRAL,
    consistency: float = 1.0,
    streams: int = 0,
    peak: int = 0,
    genre: str = "Dream Pop",
) -> Release:
    """Build a stored release without going through scoring."""
    return Release(
        release_id=f"{artist_id}-release-{index}",
        artist_id=artist_id,
        created_at=datetime(2024, 1, index, 12, 0, tzinfo=timezone.utc),
        genre=genre,
        music_quality=quality,
        genre_consistency=consistency,
        release_impact=int(quality * consistency * 100),
        fan_reaction=reaction,
        track_number=index,
        streams=streams,
        peak_chart_position=peak,
    )


def make_evolution(artist_id: str = "artist-1", index: int = 1, mastery: float = 1.0, shift=None) -> ArtistEvolution:
    return ArtistEvolution(
        evolution_id=f"{artist_id}-evolution-{index}",
        artist_id=artist_id,
        release_id=f"{artist_id}-release-{index}",
        created_at=datetime(2024, 1, index, 12, 0, tzinfo=timezone.utc),
        genre_mastery=mastery,
        genre_shift=shift,
    )


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of config/settings.yaml."""
    return Settings()


@pytest.fixture
def unconfigured_billing() -> BillingSettings:
    return BillingSettings(api_base_url="", api_token_env_var="VIRTUAL_ARTIST_TEST_UNSET_TOKEN")


@pytest.fixture
def now() -> datetime:
    """Fixed clock: 2024-03-01 09:00 UTC."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def tomorrow(now) -> datetime:
    return now + timedelta(days=1)


@pytest.fixture
def free_user() -> UserProgression:
    return UserProgression(
        user_id="user-free",
        credits=500,
        total_credits_earned=500,
        subscription_tier=SubscriptionTier.FREE,
    )


@pytest.fixture
def paid_user() -> UserProgression:
    return UserProgression(
        user_id="user-paid",
        credits=500,
        total_credits_earned=500,
        subscription_tier=SubscriptionTier.TIER2,
    )


@pytest.fixture
def artist(now) -> ArtistEntity:
    return ArtistEntity(
        artist_id="artist-1",
        user_id="user-free",
        name="Velvet Static",
        genre="Dream Pop",
        created_at=now - timedelta(days=10),
        current_fame=50,
    )


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def event_log() -> List[Event]:
    """List that collects everything sent to the event sink."""
    return []


@pytest.fixture
def event_sink(event_log):
    def sink(events):
        event_log.extend(events)
    return sink
