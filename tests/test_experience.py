"""
Unit tests for the experience tracker.

Pure functions over the level table, no storage.
"""

import pytest

from virtual_artist.errors import InvalidDelta
from virtual_artist.events import LevelUp
from virtual_artist.models import Level, UserProgression
from virtual_artist.progression import experience


class TestLevelTable:
    """Level lookup over the experience bands."""

    @pytest.mark.parametrize("xp, level", [
        (0, Level.FAN),
        (99, Level.FAN),
        (100, Level.ARTIST),
        (499, Level.ARTIST),
        (500, Level.PRODUCER),
        (2000, Level.A_AND_R),
        (5000, Level.LABEL_EXECUTIVE),
        (25000, Level.LABEL_EXECUTIVE),
    ])
    def test_boundaries_belong_to_higher_band(self, settings, xp, level):
        assert experience.level_for(xp, settings.progression) == level

    def test_level_is_monotone(self, settings):
        order = list(Level)
        previous = 0
        for xp in range(0, 12000, 37):
            index = order.index(experience.level_for(xp, settings.progression))
            assert index >= previous
            previous = index

    def test_music_mogul_is_display_only(self, settings):
        """Top display title maps back to Label Executive capabilities."""
        assert experience.title_for(10000, settings.progression) == "Music Mogul"
        assert experience.level_for(10000, settings.progression) == Level.LABEL_EXECUTIVE

    def test_negative_experience_is_treated_as_zero(self, settings):
        assert experience.level_for(-5, settings.progression) == Level.FAN

    def test_progress_fraction(self, settings):
        assert experience.progress_fraction(0, settings.progression) == 0.0
        assert experience.progress_fraction(300, settings.progression) == pytest.approx(0.5)
        assert experience.progress_fraction(50000, settings.progression) == 1.0

    def test_experience_to_next_level(self, settings):
        assert experience.experience_to_next_level(450, settings.progression) == 50
        assert experience.experience_to_next_level(10000, settings.progression) is None

    def test_level_property_on_progression(self):
        assert UserProgression(user_id="u", experience=600).level == Level.PRODUCER


class TestCapabilities:

    def test_lower_levels_unlock_nothing(self):
        for level in (Level.FAN, Level.ARTIST, Level.PRODUCER):
            caps = experience.capabilities_for(level)
            assert not any([
                caps.can_customize_style,
                caps.can_set_philosophy,
                caps.can_upload_images,
                caps.can_hardcode_parameters,
            ])

    def test_a_and_r_unlocks_style_and_philosophy(self):
        caps = experience.capabilities_for(Level.A_AND_R)
        assert caps.can_customize_style and caps.can_set_philosophy
        assert not caps.can_upload_images
        assert not caps.can_hardcode_parameters

    def test_label_executive_unlocks_everything(self):
        caps = experience.capabilities_for(Level.LABEL_EXECUTIVE)
        assert caps.can_upload_images and caps.can_hardcode_parameters


class TestAddExperience:

    def test_level_up_emits_event(self, settings):
        user = UserProgression(user_id="u1", experience=90)

        updated, events = experience.add_experience(user, 20, 5, settings.progression)

        assert updated.experience == 110
        assert updated.influence == 5
        assert events == [LevelUp("u1", "Fan", "Artist", 110)]

    def test_no_event_within_band(self, settings):
        user = UserProgression(user_id="u1", experience=10)

        updated, events = experience.add_experience(user, 20, config=settings.progression)

        assert updated.experience == 30
        assert events == []

    def test_input_is_not_mutated(self, settings):
        user = UserProgression(user_id="u1", experience=10)
        experience.add_experience(user, 500, config=settings.progression)
        assert user.experience == 10

    def test_negative_delta_rejected(self, settings):
        with pytest.raises(InvalidDelta):
            experience.add_experience(UserProgression(user_id="u1"), -1, config=settings.progression)
        with pytest.raises(InvalidDelta):
            experience.add_experience(UserProgression(user_id="u1"), 1, -1, settings.progression)

    def test_award_card_created(self, settings):
        user = UserProgression(user_id="u1", experience=60)

        updated, events = experience.award_card_created(user, settings.progression)

        assert updated.experience == 110
        assert updated.influence == 10
        assert updated.total_cards == 1
        assert len(events) == 1
