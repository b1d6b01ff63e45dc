"""
Repositories for engine state.

The engine never touches storage itself. Callers load entities through a
Repository, run an engine operation, and save the result with the version
they loaded. A save whose expected version no longer matches raises
VersionConflict and the caller retries the whole read-modify-write.

Implementations:
- InMemoryRepository: process-local, used by tests and single-process tools
- JsonFileRepository: persists to a JSON file under data/
- PostgresRepository (db.py): PostgreSQL via psycopg2
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import EntityNotFound, VersionConflict
from .models import (
    ArtistEntity,
    ArtistEvolution,
    FanReaction,
    GenreShift,
    Release,
    ReleaseType,
    SubscriptionTier,
    UserProgression,
)

logger = logging.getLogger(__name__)

# Default storage file path
DATA_DIR = Path(__file__).parent.parent / "data"
STORAGE_FILE = DATA_DIR / "career_state.json"


class Repository(ABC):
    """Narrow load / optimistic-save contract used by the service layer."""

    # ========== User progression ==========

    @abstractmethod
    def load_progression(self, user_id: str) -> UserProgression:
        """Load a progression or raise EntityNotFound."""

    @abstractmethod
    def save_progression(self, progression: UserProgression, expected_version: int) -> UserProgression:
        """Save if the stored version equals expected_version (0 = new). Returns the stored copy."""

    @abstractmethod
    def list_progressions(self) -> List[UserProgression]:
        """Snapshot of all progressions."""

    # ========== Artists ==========

    @abstractmethod
    def load_artist(self, artist_id: str) -> ArtistEntity:
        """Load an artist or raise EntityNotFound."""

    @abstractmethod
    def save_artist(self, artist: ArtistEntity, expected_version: int) -> ArtistEntity:
        """Save if the stored version equals expected_version (0 = new). Returns the stored copy."""

    @abstractmethod
    def list_artists(self, user_id: Optional[str] = None) -> List[ArtistEntity]:
        """Snapshot of all artists, optionally for one owner."""

    # ========== Releases & evolution ==========

    @abstractmethod
    def append_release(self, release: Release) -> Release:
        """Store a new release at version 1."""

    @abstractmethod
    def save_release(self, release: Release, expected_version: int) -> Release:
        """Save a release's mutable counters if the stored version equals expected_version."""

    @abstractmethod
    def load_release(self, release_id: str) -> Release:
        """Load a release or raise EntityNotFound."""

    @abstractmethod
    def list_releases(self, artist_id: str) -> List[Release]:
        """Releases for an artist, oldest first."""

    @abstractmethod
    def append_evolution(self, evolution: ArtistEvolution) -> ArtistEvolution:
        """Store a new evolution record."""

    @abstractmethod
    def list_evolutions(self, artist_id: str) -> List[ArtistEvolution]:
        """Evolution records for an artist, oldest first."""


class InMemoryRepository(Repository):
    """Thread-safe process-local repository. Loads return copies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._progressions: Dict[str, UserProgression] = {}
        self._artists: Dict[str, ArtistEntity] = {}
        self._releases: Dict[str, Release] = {}
        self._evolutions: Dict[str, ArtistEvolution] = {}

    def _changed(self) -> None:
        """Hook called after every write while holding the lock."""

    def _check_version(self, entity_id: str, stored: Optional[Any], expected_version: int) -> None:
        actual = stored.version if stored is not None else 0
        if actual != expected_version:
            raise VersionConflict(entity_id, expected_version, actual if stored is not None else None)

    def _commit(self, table: Dict[str, Any], key: str, value: Any) -> Any:
        """Store value under key and run _changed; undo the write if that fails."""
        previous = table.get(key)
        table[key] = value
        try:
            self._changed()
        except Exception:
            if previous is None:
                del table[key]
            else:
                table[key] = previous
            raise
        return copy.deepcopy(value)

    def _versioned(self, entity: Any, expected_version: int) -> Any:
        saved = copy.deepcopy(entity)
        saved.version = expected_version + 1
        return saved

    # ========== User progression ==========

    def load_progression(self, user_id: str) -> UserProgression:
        with self._lock:
            if user_id not in self._progressions:
                raise EntityNotFound(f"User progression {user_id} not found")
            return copy.deepcopy(self._progressions[user_id])

    def save_progression(self, progression: UserProgression, expected_version: int) -> UserProgression:
        with self._lock:
            stored = self._progressions.get(progression.user_id)
            self._check_version(progression.user_id, stored, expected_version)
            saved = self._versioned(progression, expected_version)
            return self._commit(self._progressions, progression.user_id, saved)

    def list_progressions(self) -> List[UserProgression]:
        with self._lock:
            return [copy.deepcopy(p) for p in self._progressions.values()]

    # ========== Artists ==========

    def load_artist(self, artist_id: str) -> ArtistEntity:
        with self._lock:
            if artist_id not in self._artists:
                raise EntityNotFound(f"Artist {artist_id} not found")
            return copy.deepcopy(self._artists[artist_id])

    def save_artist(self, artist: ArtistEntity, expected_version: int) -> ArtistEntity:
        with self._lock:
            stored = self._artists.get(artist.artist_id)
            self._check_version(artist.artist_id, stored, expected_version)
            saved = self._versioned(artist, expected_version)
            return self._commit(self._artists, artist.artist_id, saved)

    def list_artists(self, user_id: Optional[str] = None) -> List[ArtistEntity]:
        with self._lock:
            return [
                copy.deepcopy(a) for a in self._artists.values()
                if user_id is None or a.user_id == user_id
            ]

    # ========== Releases & evolution ==========

    def append_release(self, release: Release) -> Release:
        with self._lock:
            self._check_version(release.release_id, self._releases.get(release.release_id), 0)
            return self._commit(self._releases, release.release_id, self._versioned(release, 0))

    def save_release(self, release: Release, expected_version: int) -> Release:
        with self._lock:
            stored = self._releases.get(release.release_id)
            if stored is None:
                raise EntityNotFound(f"Release {release.release_id} not found")
            self._check_version(release.release_id, stored, expected_version)
            saved = self._versioned(release, expected_version)
            return self._commit(self._releases, release.release_id, saved)

    def load_release(self, release_id: str) -> Release:
        with self._lock:
            if release_id not in self._releases:
                raise EntityNotFound(f"Release {release_id} not found")
            return copy.deepcopy(self._releases[release_id])

    def list_releases(self, artist_id: str) -> List[Release]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._releases.values() if r.artist_id == artist_id]

    def append_evolution(self, evolution: ArtistEvolution) -> ArtistEvolution:
        with self._lock:
            return self._commit(self._evolutions, evolution.evolution_id, copy.deepcopy(evolution))

    def list_evolutions(self, artist_id: str) -> List[ArtistEvolution]:
        with self._lock:
            return [copy.deepcopy(e) for e in self._evolutions.values() if e.artist_id == artist_id]


# ========== JSON serialization ==========

def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def progression_to_dict(p: UserProgression) -> Dict[str, Any]:
    return {
        "user_id": p.user_id,
        "experience": p.experience,
        "influence": p.influence,
        "credits": p.credits,
        "total_credits_earned": p.total_credits_earned,
        "total_credits_spent": p.total_credits_spent,
        "subscription_tier": p.subscription_tier.value,
        "last_credit_renewal": _iso(p.last_credit_renewal),
        "total_cards": p.total_cards,
        "version": p.version,
    }


def progression_from_dict(data: Dict[str, Any]) -> UserProgression:
    return UserProgression(
        user_id=data["user_id"],
        experience=data.get("experience", 0),
        influence=data.get("influence", 0),
        credits=data.get("credits", 0),
        total_credits_earned=data.get("total_credits_earned", 0),
        total_credits_spent=data.get("total_credits_spent", 0),
        subscription_tier=SubscriptionTier(data.get("subscription_tier", "Free")),
        last_credit_renewal=_datetime(data.get("last_credit_renewal")),
        total_cards=data.get("total_cards", 0),
        version=data.get("version", 0),
    )


def artist_to_dict(a: ArtistEntity) -> Dict[str, Any]:
    return {
        "artist_id": a.artist_id,
        "user_id": a.user_id,
        "name": a.name,
        "genre": a.genre,
        "created_at": _iso(a.created_at),
        "current_fame": a.current_fame,
        "fanbase": a.fanbase,
        "daily_growth_streak": a.daily_growth_streak,
        "last_daily_update": _iso(a.last_daily_update),
        "total_streams": a.total_streams,
        "daily_streams": a.daily_streams,
        "digital_downloads": a.digital_downloads,
        "physical_copies": a.physical_copies,
        "chart_position": a.chart_position,
        "milestones": list(a.milestones),
        "version": a.version,
    }


def artist_from_dict(data: Dict[str, Any]) -> ArtistEntity:
    return ArtistEntity(
        artist_id=data["artist_id"],
        user_id=data["user_id"],
        name=data["name"],
        genre=data["genre"],
        created_at=_datetime(data["created_at"]),
        current_fame=data.get("current_fame", 5),
        fanbase=data.get("fanbase", 0),
        daily_growth_streak=data.get("daily_growth_streak", 0),
        last_daily_update=_date(data.get("last_daily_update")),
        total_streams=data.get("total_streams", 0),
        daily_streams=data.get("daily_streams", 0),
        digital_downloads=data.get("digital_downloads", 0),
        physical_copies=data.get("physical_copies", 0),
        chart_position=data.get("chart_position", 0),
        milestones=tuple(data.get("milestones", [])),
        version=data.get("version", 0),
    )


def release_to_dict(r: Release) -> Dict[str, Any]:
    return {
        "release_id": r.release_id,
        "artist_id": r.artist_id,
        "created_at": _iso(r.created_at),
        "genre": r.genre,
        "music_quality": r.music_quality,
        "genre_consistency": r.genre_consistency,
        "release_impact": r.release_impact,
        "fan_reaction": r.fan_reaction.value,
        "title": r.title,
        "release_type": r.release_type.value,
        "track_number": r.track_number,
        "streams": r.streams,
        "likes": r.likes,
        "peak_chart_position": r.peak_chart_position,
        "version": r.version,
    }


def release_from_dict(data: Dict[str, Any]) -> Release:
    return Release(
        release_id=data["release_id"],
        artist_id=data["artist_id"],
        created_at=_datetime(data["created_at"]),
        genre=data["genre"],
        music_quality=data["music_quality"],
        genre_consistency=data.get("genre_consistency", 1.0),
        release_impact=data.get("release_impact", 0),
        fan_reaction=FanReaction(data.get("fan_reaction", "neutral")),
        title=data.get("title"),
        release_type=ReleaseType(data.get("release_type", "single")),
        track_number=data.get("track_number", 1),
        streams=data.get("streams", 0),
        likes=data.get("likes", 0),
        peak_chart_position=data.get("peak_chart_position", 0),
        version=data.get("version", 0),
    )


def evolution_to_dict(e: ArtistEvolution) -> Dict[str, Any]:
    shift = None
    if e.genre_shift is not None:
        shift = {
            "from": e.genre_shift.from_genre,
            "to": e.genre_shift.to_genre,
            "intensity": e.genre_shift.intensity,
        }
    return {
        "evolution_id": e.evolution_id,
        "artist_id": e.artist_id,
        "release_id": e.release_id,
        "created_at": _iso(e.created_at),
        "genre_mastery": e.genre_mastery,
        "fame_change_from_release": e.fame_change_from_release,
        "fanbase_change_from_release": e.fanbase_change_from_release,
        "genre_shift": shift,
        "sound_evolution": e.sound_evolution,
        "fanbase_reaction": e.fanbase_reaction,
        "artistic_growth": e.artistic_growth,
    }


def evolution_from_dict(data: Dict[str, Any]) -> ArtistEvolution:
    shift_data = data.get("genre_shift")
    shift = None
    if shift_data:
        shift = GenreShift(shift_data["from"], shift_data["to"], shift_data["intensity"])
    return ArtistEvolution(
        evolution_id=data["evolution_id"],
        artist_id=data["artist_id"],
        release_id=data["release_id"],
        created_at=_datetime(data["created_at"]),
        genre_mastery=data.get("genre_mastery", 1.0),
        fame_change_from_release=data.get("fame_change_from_release", 0),
        fanbase_change_from_release=data.get("fanbase_change_from_release", 0),
        genre_shift=shift,
        sound_evolution=data.get("sound_evolution", ""),
        fanbase_reaction=data.get("fanbase_reaction", ""),
        artistic_growth=data.get("artistic_growth", ""),
    )


class JsonFileRepository(InMemoryRepository):
    """InMemoryRepository that persists every write to a JSON file."""

    def __init__(self, path: Optional[Path] = None) -> None:
        super().__init__()
        self.path = Path(path) if path is not None else STORAGE_FILE
        self._load()

    def _load(self) -> None:
        """Load state from disk."""
        if not self.path.exists():
            return
        try:
            with self.path.open("r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load career state from %s: %s", self.path, e)
            raise

        for item in data.get("progressions", []):
            p = progression_from_dict(item)
            self._progressions[p.user_id] = p
        for item in data.get("artists", []):
            a = artist_from_dict(item)
            self._artists[a.artist_id] = a
        for item in data.get("releases", []):
            r = release_from_dict(item)
            self._releases[r.release_id] = r
        for item in data.get("evolutions", []):
            e = evolution_from_dict(item)
            self._evolutions[e.evolution_id] = e

    def _changed(self) -> None:
        """Save state to disk. The file is replaced whole or left untouched."""
        data = {
            "progressions": [progression_to_dict(p) for p in self._progressions.values()],
            "artists": [artist_to_dict(a) for a in self._artists.values()],
            "releases": [release_to_dict(r) for r in self._releases.values()],
            "evolutions": [evolution_to_dict(e) for e in self._evolutions.values()],
        }
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", dir=self.path.parent, prefix=self.path.name, suffix=".tmp", delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("Failed to save career state to %s: %s", self.path, e)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
