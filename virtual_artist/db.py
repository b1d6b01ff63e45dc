"""PostgreSQL repository for career engine state with optimistic versioning."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Sequence

from .config import DatabaseSettings, settings
from .errors import EntityNotFound, VersionConflict
from .models import ArtistEntity, ArtistEvolution, Release, UserProgression
from .storage import (
    Repository,
    artist_from_dict,
    evolution_from_dict,
    evolution_to_dict,
    progression_from_dict,
    release_from_dict,
    release_to_dict,
)

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS user_progressions (
        user_id VARCHAR(64) PRIMARY KEY,
        experience INTEGER NOT NULL DEFAULT 0 CHECK (experience >= 0),
        influence INTEGER NOT NULL DEFAULT 0 CHECK (influence >= 0),
        credits INTEGER NOT NULL DEFAULT 0 CHECK (credits >= 0),
        total_credits_earned INTEGER NOT NULL DEFAULT 0,
        total_credits_spent INTEGER NOT NULL DEFAULT 0,
        subscription_tier VARCHAR(16) NOT NULL DEFAULT 'Free',
        last_credit_renewal TIMESTAMPTZ,
        total_cards INTEGER NOT NULL DEFAULT 0,
        version INTEGER NOT NULL,
        CHECK (credits = total_credits_earned - total_credits_spent)
    );

    CREATE TABLE IF NOT EXISTS artists (
        artist_id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(64) NOT NULL,
        name VARCHAR(255) NOT NULL,
        genre VARCHAR(128) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        current_fame INTEGER NOT NULL CHECK (current_fame BETWEEN 0 AND 100),
        fanbase INTEGER NOT NULL DEFAULT 0,
        daily_growth_streak INTEGER NOT NULL DEFAULT 0,
        last_daily_update DATE,
        total_streams BIGINT NOT NULL DEFAULT 0,
        daily_streams BIGINT NOT NULL DEFAULT 0,
        digital_downloads BIGINT NOT NULL DEFAULT 0,
        physical_copies BIGINT NOT NULL DEFAULT 0,
        chart_position INTEGER NOT NULL DEFAULT 0,
        milestones JSONB NOT NULL DEFAULT '[]',
        version INTEGER NOT NULL
    );

    CREATE TABLE IF NOT EXISTS releases (
        release_id VARCHAR(64) PRIMARY KEY,
        artist_id VARCHAR(64) NOT NULL REFERENCES artists(artist_id),
        seq BIGSERIAL,
        data JSONB NOT NULL,
        version INTEGER NOT NULL DEFAULT 1
    );

    CREATE TABLE IF NOT EXISTS artist_evolutions (
        evolution_id VARCHAR(64) PRIMARY KEY,
        artist_id VARCHAR(64) NOT NULL REFERENCES artists(artist_id),
        seq BIGSERIAL,
        data JSONB NOT NULL
    );
"""

_PROGRESSION_COLUMNS = [
    "user_id", "experience", "influence", "credits", "total_credits_earned",
    "total_credits_spent", "subscription_tier", "last_credit_renewal", "total_cards",
]

_ARTIST_COLUMNS = [
    "artist_id", "user_id", "name", "genre", "created_at", "current_fame", "fanbase",
    "daily_growth_streak", "last_daily_update", "total_streams", "daily_streams",
    "digital_downloads", "physical_copies", "chart_position", "milestones",
]


def _row_to_dict(columns: Sequence[str], row: Sequence[Any]) -> dict:
    data = dict(zip(columns, row))
    for key, value in data.items():
        if hasattr(value, "isoformat"):
            data[key] = value.isoformat()
    return data


class PostgresRepository(Repository):
    """Repository backed by PostgreSQL. Saves are compare-and-swap on the version column."""

    def __init__(self, database: Optional[DatabaseSettings] = None) -> None:
        self._database = database or settings.database

    def get_connection(self):
        """Get a database connection."""
        url = self._database.url
        if not url:
            raise RuntimeError("DATABASE_URL environment variable not set")

        import psycopg2
        # Handle postgres:// vs postgresql:// URL format
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)

        return psycopg2.connect(url)

    def init_db(self) -> None:
        """Initialize database tables if they don't exist."""
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(SCHEMA)
            conn.commit()
            logger.info("Database tables initialized successfully")
        except Exception as e:
            conn.rollback()
            logger.error("Failed to initialize database: %s", e)
            raise
        finally:
            conn.close()

    def _fetch(self, sql: str, params: tuple) -> List[tuple]:
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()
        finally:
            conn.close()

    def _compare_and_swap(
        self,
        table: str,
        key_column: str,
        columns: List[str],
        values: List[Any],
        entity_id: str,
        expected_version: int,
    ) -> None:
        """Insert (expected_version == 0) or update where the stored version matches."""
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                if expected_version == 0:
                    placeholders = ", ".join(["%s"] * (len(columns) + 1))
                    cur.execute(
                        f"INSERT INTO {table} ({', '.join(columns)}, version) "
                        f"VALUES ({placeholders}) ON CONFLICT ({key_column}) DO NOTHING",
                        (*values, 1),
                    )
                else:
                    assignments = ", ".join(f"{c} = %s" for c in columns if c != key_column)
                    update_values = [v for c, v in zip(columns, values) if c != key_column]
                    cur.execute(
                        f"UPDATE {table} SET {assignments}, version = version + 1 "
                        f"WHERE {key_column} = %s AND version = %s",
                        (*update_values, entity_id, expected_version),
                    )

                if cur.rowcount == 0:
                    conn.rollback()
                    cur.execute(f"SELECT version FROM {table} WHERE {key_column} = %s", (entity_id,))
                    row = cur.fetchone()
                    raise VersionConflict(entity_id, expected_version, row[0] if row else None)
            conn.commit()
        except VersionConflict:
            raise
        except Exception as e:
            conn.rollback()
            logger.error("Failed to save %s %s: %s", table, entity_id, e)
            raise
        finally:
            conn.close()

    # ========== User progression ==========

    def load_progression(self, user_id: str) -> UserProgression:
        rows = self._fetch(
            f"SELECT {', '.join(_PROGRESSION_COLUMNS)}, version FROM user_progressions WHERE user_id = %s",
            (user_id,),
        )
        if not rows:
            raise EntityNotFound(f"User progression {user_id} not found")
        return progression_from_dict(_row_to_dict(_PROGRESSION_COLUMNS + ["version"], rows[0]))

    def save_progression(self, progression: UserProgression, expected_version: int) -> UserProgression:
        values = [
            progression.user_id, progression.experience, progression.influence,
            progression.credits, progression.total_credits_earned, progression.total_credits_spent,
            progression.subscription_tier.value, progression.last_credit_renewal, progression.total_cards,
        ]
        self._compare_and_swap(
            "user_progressions", "user_id", _PROGRESSION_COLUMNS, values,
            progression.user_id, expected_version,
        )
        return self.load_progression(progression.user_id)

    def list_progressions(self) -> List[UserProgression]:
        rows = self._fetch(
            f"SELECT {', '.join(_PROGRESSION_COLUMNS)}, version FROM user_progressions ORDER BY user_id",
            (),
        )
        return [progression_from_dict(_row_to_dict(_PROGRESSION_COLUMNS + ["version"], row)) for row in rows]

    # ========== Artists ==========

    def _artist_from_row(self, row: Sequence[Any]) -> ArtistEntity:
        data = _row_to_dict(_ARTIST_COLUMNS + ["version"], row)
        if isinstance(data["milestones"], str):
            data["milestones"] = json.loads(data["milestones"])
        return artist_from_dict(data)

    def load_artist(self, artist_id: str) -> ArtistEntity:
        rows = self._fetch(
            f"SELECT {', '.join(_ARTIST_COLUMNS)}, version FROM artists WHERE artist_id = %s",
            (artist_id,),
        )
        if not rows:
            raise EntityNotFound(f"Artist {artist_id} not found")
        return self._artist_from_row(rows[0])

    def save_artist(self, artist: ArtistEntity, expected_version: int) -> ArtistEntity:
        values = [
            artist.artist_id, artist.user_id, artist.name, artist.genre, artist.created_at,
            artist.current_fame, artist.fanbase, artist.daily_growth_streak, artist.last_daily_update,
            artist.total_streams, artist.daily_streams, artist.digital_downloads, artist.physical_copies,
            artist.chart_position,
            json.dumps(list(artist.milestones)),
        ]
        self._compare_and_swap("artists", "artist_id", _ARTIST_COLUMNS, values, artist.artist_id, expected_version)
        return self.load_artist(artist.artist_id)

    def list_artists(self, user_id: Optional[str] = None) -> List[ArtistEntity]:
        sql = f"SELECT {', '.join(_ARTIST_COLUMNS)}, version FROM artists"
        params: tuple = ()
        if user_id is not None:
            sql += " WHERE user_id = %s"
            params = (user_id,)
        return [self._artist_from_row(row) for row in self._fetch(sql + " ORDER BY created_at", params)]

    # ========== Releases & evolution ==========

    def _execute(self, sql: str, params: tuple) -> int:
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount
        except Exception as e:
            conn.rollback()
            logger.error("Database write failed: %s", e)
            raise
        finally:
            conn.close()

    def append_release(self, release: Release) -> Release:
        self._execute(
            "INSERT INTO releases (release_id, artist_id, data, version) VALUES (%s, %s, %s, 1)",
            (release.release_id, release.artist_id, json.dumps(release_to_dict(release))),
        )
        return self.load_release(release.release_id)

    def save_release(self, release: Release, expected_version: int) -> Release:
        updated = self._execute(
            "UPDATE releases SET data = %s, version = version + 1 WHERE release_id = %s AND version = %s",
            (json.dumps(release_to_dict(release)), release.release_id, expected_version),
        )
        if updated == 0:
            rows = self._fetch("SELECT version FROM releases WHERE release_id = %s", (release.release_id,))
            if not rows:
                raise EntityNotFound(f"Release {release.release_id} not found")
            raise VersionConflict(release.release_id, expected_version, rows[0][0])
        return self.load_release(release.release_id)

    def _release_from_row(self, row: Sequence[Any]) -> Release:
        return release_from_dict({**_json(row[0]), "version": row[1]})

    def load_release(self, release_id: str) -> Release:
        rows = self._fetch("SELECT data, version FROM releases WHERE release_id = %s", (release_id,))
        if not rows:
            raise EntityNotFound(f"Release {release_id} not found")
        return self._release_from_row(rows[0])

    def list_releases(self, artist_id: str) -> List[Release]:
        rows = self._fetch(
            "SELECT data, version FROM releases WHERE artist_id = %s ORDER BY seq", (artist_id,),
        )
        return [self._release_from_row(row) for row in rows]

    def append_evolution(self, evolution: ArtistEvolution) -> ArtistEvolution:
        self._execute(
            "INSERT INTO artist_evolutions (evolution_id, artist_id, data) VALUES (%s, %s, %s)",
            (evolution.evolution_id, evolution.artist_id, json.dumps(evolution_to_dict(evolution))),
        )
        return evolution

    def list_evolutions(self, artist_id: str) -> List[ArtistEvolution]:
        rows = self._fetch("SELECT data FROM artist_evolutions WHERE artist_id = %s ORDER BY seq", (artist_id,))
        return [evolution_from_dict(_json(row[0])) for row in rows]


def _json(value: Any) -> dict:
    # psycopg2 decodes JSONB to dict; plain text columns come back as str
    return json.loads(value) if isinstance(value, str) else value
