"""
Unit tests for global chart ranking.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from virtual_artist.career import charts
from virtual_artist.config import ChartSettings
from virtual_artist.events import ChartEntry, ChartExit, ChartMove
from virtual_artist.models import ArtistEntity

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _artist(artist_id: str, fame: int, streams: int, created_offset_days: int = 0) -> ArtistEntity:
    return ArtistEntity(
        artist_id=artist_id,
        user_id="u1",
        name=artist_id.upper(),
        genre="Rock",
        created_at=T0 + timedelta(days=created_offset_days),
        current_fame=fame,
        total_streams=streams,
    )


class TestRank:

    def test_fame_then_streams(self, settings):
        artists = [_artist("a", 80, 100), _artist("b", 80, 200), _artist("c", 60, 50)]

        assert charts.rank(artists, settings.charts) == {"a": 2, "b": 1, "c": 3}

    def test_earlier_artist_wins_full_tie(self, settings):
        artists = [_artist("late", 40, 10, created_offset_days=5), _artist("early", 40, 10)]

        assert charts.rank(artists, settings.charts) == {"early": 1, "late": 2}

    def test_identical_timestamps_fall_back_to_id(self, settings):
        artists = [_artist("zed", 40, 10), _artist("amy", 40, 10)]

        assert charts.rank(artists, settings.charts) == {"amy": 1, "zed": 2}

    def test_positions_beyond_chart_are_unranked(self):
        artists = [_artist("a", 90, 0), _artist("b", 80, 0), _artist("c", 70, 0)]

        assert charts.rank(artists, ChartSettings(chart_size=2)) == {"a": 1, "b": 2, "c": 0}

    def test_empty_population(self, settings):
        assert charts.rank([], settings.charts) == {}

    def test_naive_and_aware_timestamps_compare(self, settings):
        naive = replace(_artist("naive", 40, 10), created_at=datetime(2023, 12, 31))
        assert charts.rank([_artist("aware", 40, 10), naive], settings.charts) == {"naive": 1, "aware": 2}


class TestApplyRankings:

    def test_chart_events(self):
        artists = [
            _artist("new", 90, 0),
            replace(_artist("mover", 80, 0), chart_position=5),
            replace(_artist("dropped", 10, 0), chart_position=2),
            replace(_artist("steady", 70, 0), chart_position=3),
        ]
        positions = {"new": 1, "mover": 2, "dropped": 0, "steady": 3}

        updated, events = charts.apply_rankings(artists, positions)

        assert [a.chart_position for a in updated] == [1, 2, 0, 3]
        assert ChartEntry("new", 1) in events
        assert ChartMove("mover", 5, 2) in events
        assert ChartExit("dropped", 2) in events
        assert not any(getattr(e, "artist_id", None) == "steady" for e in events)
        assert updated[3] is artists[3]

    def test_records_chart_milestones(self):
        updated, events = charts.apply_rankings([_artist("a", 90, 0)], {"a": 1})

        assert {"chart_debut", "top_40", "top_10", "superstar"} <= set(updated[0].milestones)


class TestLeaderboard:

    def test_limit_and_columns(self, settings):
        artists = [_artist("a", 80, 100), _artist("b", 80, 200), _artist("c", 60, 50)]

        df = charts.leaderboard(artists, limit=2, config=settings.charts)

        assert list(df["artist_id"]) == ["b", "a"]
        assert list(df["rank"]) == [1, 2]

    def test_empty(self, settings):
        assert charts.leaderboard([], config=settings.charts).empty
