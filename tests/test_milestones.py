"""
Unit tests for career milestones.
"""

from dataclasses import replace

from virtual_artist.career import milestones


class TestMilestones:

    def test_fresh_artist_has_none(self, artist):
        assert milestones.check_milestones(artist) == []

    def test_declaration_order(self, artist):
        star = replace(artist, current_fame=100, fanbase=12000)

        ids = [m.id for m in milestones.check_milestones(star, release_count=1)]

        assert ids == ["first_release", "fanbase_1k", "fanbase_10k", "superstar", "legend"]

    def test_recorded_once(self, artist):
        fans = replace(artist, fanbase=1500)

        recorded, events = milestones.record_milestones(fans)
        again, more_events = milestones.record_milestones(recorded)

        assert recorded.milestones == ("fanbase_1k",)
        assert [e.milestone_id for e in events] == ["fanbase_1k"]
        assert again is recorded
        assert more_events == []

    def test_new_milestones_skips_recorded(self, artist):
        star = replace(artist, current_fame=85, milestones=("superstar",))
        assert milestones.new_milestones(star) == []


class TestCertifications:

    def test_total_sales_counts_every_format(self, artist):
        seller = replace(artist, physical_copies=1000, digital_downloads=20000, total_streams=300000)
        assert milestones.total_sales(seller) == 321000

    def test_gold_at_half_a_million(self, artist):
        below = replace(artist, digital_downloads=200000, total_streams=299999)
        gold = replace(below, physical_copies=1)

        assert "gold_record" not in [m.id for m in milestones.check_milestones(below)]
        assert [m.id for m in milestones.new_milestones(gold)] == ["rising_star", "gold_record"]

    def test_every_level_reached_in_order(self, artist):
        """A diamond seller holds all three certifications, listed lowest first."""
        diamond = replace(artist, physical_copies=4_000_000, digital_downloads=6_000_000)

        recorded, events = milestones.record_milestones(diamond)

        assert recorded.milestones == ("gold_record", "platinum_record", "diamond_record")
        assert [e.milestone_id for e in events] == ["gold_record", "platinum_record", "diamond_record"]
