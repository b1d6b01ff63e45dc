"""
Tests for repositories: optimistic versioning and JSON persistence.
"""

from dataclasses import replace
from datetime import date

import pytest

import virtual_artist.storage
from conftest import make_evolution, make_release
from virtual_artist.errors import EntityNotFound, VersionConflict
from virtual_artist.models import GenreShift
from virtual_artist.storage import JsonFileRepository


class TestInMemoryRepository:

    def test_save_bumps_version(self, repository, free_user):
        saved = repository.save_progression(free_user, expected_version=0)
        assert saved.version == 1

        again = repository.save_progression(replace(saved, experience=10), expected_version=1)
        assert again.version == 2
        assert repository.load_progression("user-free").experience == 10

    def test_stale_save_conflicts(self, repository, free_user):
        saved = repository.save_progression(free_user, expected_version=0)
        repository.save_progression(replace(saved, experience=10), expected_version=1)

        with pytest.raises(VersionConflict) as exc_info:
            repository.save_progression(replace(saved, experience=99), expected_version=1)

        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2
        assert repository.load_progression("user-free").experience == 10

    def test_duplicate_insert_conflicts(self, repository, artist):
        repository.save_artist(artist, expected_version=0)
        with pytest.raises(VersionConflict):
            repository.save_artist(artist, expected_version=0)

    def test_loads_are_copies(self, repository, artist):
        repository.save_artist(artist, expected_version=0)

        loaded = repository.load_artist(artist.artist_id)
        loaded.current_fame = 99

        assert repository.load_artist(artist.artist_id).current_fame == 50
        assert repository.list_artists()[0].current_fame == 50

    def test_missing_entities(self, repository):
        with pytest.raises(EntityNotFound):
            repository.load_progression("nobody")
        with pytest.raises(EntityNotFound):
            repository.load_artist("nobody")
        with pytest.raises(EntityNotFound):
            repository.load_release("nothing")
        with pytest.raises(EntityNotFound):
            repository.save_release(make_release(), 0)

    def test_list_artists_by_owner(self, repository, artist):
        repository.save_artist(artist, expected_version=0)
        repository.save_artist(replace(artist, artist_id="artist-2", user_id="someone-else"), expected_version=0)

        assert [a.artist_id for a in repository.list_artists("user-free")] == ["artist-1"]
        assert len(repository.list_artists()) == 2

    def test_releases_keep_insertion_order(self, repository):
        for index in (3, 1, 2):
            repository.append_release(make_release(index=index))

        ids = [r.release_id for r in repository.list_releases("artist-1")]

        assert ids == ["artist-1-release-3", "artist-1-release-1", "artist-1-release-2"]

    def test_release_versions(self, repository):
        """A release write based on an outdated copy is rejected."""
        stored = repository.append_release(make_release())
        assert stored.version == 1

        peaked = repository.save_release(replace(stored, peak_chart_position=1), expected_version=1)
        assert peaked.version == 2

        with pytest.raises(VersionConflict):
            repository.save_release(replace(stored, streams=10), expected_version=1)

        current = repository.load_release(stored.release_id)
        assert current.peak_chart_position == 1
        assert current.streams == 0

    def test_duplicate_release_conflicts(self, repository):
        repository.append_release(make_release())
        with pytest.raises(VersionConflict):
            repository.append_release(make_release())


class TestJsonFileRepository:

    def test_state_survives_reload(self, tmp_path, free_user, artist):
        path = tmp_path / "state" / "career.json"
        repo = JsonFileRepository(path)

        user = repo.save_progression(free_user, expected_version=0)
        stored_artist = repo.save_artist(
            replace(
                artist, milestones=("first_release",), last_daily_update=date(2024, 2, 29),
                digital_downloads=530, physical_copies=50,
            ),
            expected_version=0,
        )
        release = repo.append_release(make_release(streams=42, peak=7))
        evolution = repo.append_evolution(replace(
            make_evolution(mastery=1.2, shift=GenreShift("Dream Pop", "Techno", 0.8)),
            sound_evolution="Dramatic shift from Dream Pop to Techno - a bold artistic pivot",
            fanbase_reaction="Fans divided on the new direction, some calling it experimental",
            artistic_growth="Artistic exploration",
        ))

        reloaded = JsonFileRepository(path)

        assert path.exists()
        assert reloaded.load_progression(user.user_id) == user
        assert reloaded.load_artist(artist.artist_id) == stored_artist
        assert reloaded.load_release(release.release_id) == release
        assert reloaded.list_evolutions(artist.artist_id) == [evolution]
        assert reloaded.load_release(release.release_id).version == 1
        assert reloaded.load_artist(artist.artist_id).physical_copies == 50

    def test_versions_persist(self, tmp_path, free_user):
        path = tmp_path / "career.json"
        JsonFileRepository(path).save_progression(free_user, expected_version=0)

        reloaded = JsonFileRepository(path)

        with pytest.raises(VersionConflict):
            reloaded.save_progression(free_user, expected_version=0)
        assert reloaded.save_progression(free_user, expected_version=1).version == 2

    def test_missing_file_starts_empty(self, tmp_path):
        assert JsonFileRepository(tmp_path / "absent.json").list_progressions() == []

    def test_failed_write_is_not_kept_in_memory(self, tmp_path, free_user):
        """When the file cannot be written the save raises and nothing is stored."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        repo = JsonFileRepository(blocker / "career.json")

        with pytest.raises(OSError):
            repo.save_progression(free_user, expected_version=0)

        with pytest.raises(EntityNotFound):
            repo.load_progression(free_user.user_id)

    def test_failed_write_leaves_previous_file(self, tmp_path, free_user, paid_user, monkeypatch):
        path = tmp_path / "career.json"
        repo = JsonFileRepository(path)
        repo.save_progression(free_user, expected_version=0)
        before = path.read_text()

        def disk_full(*args, **kwargs):
            raise OSError("No space left on device")

        monkeypatch.setattr(virtual_artist.storage.json, "dump", disk_full)
        with pytest.raises(OSError):
            repo.save_progression(paid_user, expected_version=0)
        monkeypatch.undo()

        assert path.read_text() == before
        assert [p.name for p in tmp_path.iterdir()] == ["career.json"]
        assert [p.user_id for p in JsonFileRepository(path).list_progressions()] == [free_user.user_id]
        with pytest.raises(EntityNotFound):
            repo.load_progression(paid_user.user_id)

    def test_failed_update_restores_previous_copy(self, tmp_path, free_user, monkeypatch):
        repo = JsonFileRepository(tmp_path / "career.json")
        saved = repo.save_progression(free_user, expected_version=0)

        def disk_full(*args, **kwargs):
            raise OSError("No space left on device")

        monkeypatch.setattr(virtual_artist.storage.json, "dump", disk_full)
        with pytest.raises(OSError):
            repo.save_progression(replace(saved, experience=40), expected_version=1)

        assert repo.load_progression(free_user.user_id) == saved
