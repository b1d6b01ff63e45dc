"""
Unit tests for the credit ledger.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from virtual_artist.errors import InsufficientCredits, InvalidAmount, RenewalNotEligible
from virtual_artist.events import CreditsGranted, CreditsRenewed, CreditsSpent
from virtual_artist.models import SubscriptionTier
from virtual_artist.progression import economy


class TestLedger:
    """Balance bookkeeping for grants and spends."""

    def test_new_progression_books_welcome_credits(self, settings):
        user = economy.new_progression("u1", config=settings.economy)

        assert user.credits == 500
        assert user.total_credits_earned == 500
        assert user.total_credits_spent == 0
        assert economy.is_consistent(user)

    def test_invariant_holds_across_operations(self, free_user):
        user = free_user
        for amount in (100, 0, 250):
            user, _ = economy.grant(user, amount)
            assert economy.is_consistent(user)
        for amount in (300, 0, 550):
            user, _ = economy.spend(user, amount)
            assert economy.is_consistent(user)
        assert user.credits == 0

    def test_grant_emits_event(self, free_user):
        updated, events = economy.grant(free_user, 100)
        assert events == [CreditsGranted("user-free", 100, 600)]

    def test_spend_emits_event(self, free_user):
        updated, events = economy.spend(free_user, 200)
        assert updated.credits == 300
        assert updated.total_credits_spent == 200
        assert events == [CreditsSpent("user-free", 200, 300)]

    def test_overspend_rejected_and_state_unchanged(self, free_user):
        with pytest.raises(InsufficientCredits) as exc_info:
            economy.spend(free_user, 600)

        assert exc_info.value.requested == 600
        assert exc_info.value.available == 500
        assert free_user.credits == 500

    def test_negative_amounts_rejected(self, free_user):
        with pytest.raises(InvalidAmount):
            economy.grant(free_user, -1)
        with pytest.raises(InvalidAmount):
            economy.spend(free_user, -1)


class TestRenewal:
    """30-day renewal window for paid tiers."""

    def test_first_renewal_is_available(self, paid_user, now, settings):
        updated, granted, events = economy.renew(paid_user, now, 1000, settings.economy)

        assert granted == 1000
        assert updated.credits == 1500
        assert updated.last_credit_renewal == now
        assert isinstance(events[-1], CreditsRenewed)
        assert economy.is_consistent(updated)

    def test_second_renewal_within_window_rejected(self, paid_user, now, settings):
        renewed, _, _ = economy.renew(paid_user, now, 1000, settings.economy)

        with pytest.raises(RenewalNotEligible) as exc_info:
            economy.renew(renewed, now + timedelta(days=29, hours=23), 1000, settings.economy)

        assert exc_info.value.next_renewal_at == now + timedelta(days=30)

    def test_renewal_after_exactly_thirty_days(self, paid_user, now, settings):
        renewed, _, _ = economy.renew(paid_user, now, 1000, settings.economy)

        again, granted, _ = economy.renew(renewed, now + timedelta(days=30), 1000, settings.economy)

        assert granted == 1000
        assert again.credits == 2500

    def test_free_tier_never_renews(self, free_user, now, settings):
        assert not economy.renewal_eligible(free_user, now, settings.economy)
        with pytest.raises(RenewalNotEligible):
            economy.renew(free_user, now, 0, settings.economy)

    def test_monthly_allocation(self, settings):
        assert economy.monthly_allocation(SubscriptionTier.FREE, settings.economy) == 0
        assert economy.monthly_allocation(SubscriptionTier.TIER3, settings.economy) == 3000

    def test_next_renewal_at(self, paid_user, now, settings):
        assert economy.next_renewal_at(paid_user, settings.economy) is None
        renewed = replace(paid_user, last_credit_renewal=now)
        assert economy.next_renewal_at(renewed, settings.economy) == now + timedelta(days=30)


class TestGenerationAllowance:

    def test_free_generations_first(self, free_user, settings):
        allowance = economy.generation_allowance(free_user, 0, settings.economy)
        assert allowance.allowed
        assert allowance.free_remaining == 2
        assert not allowance.requires_credits

    def test_paid_generation_after_free_ones(self, free_user, settings):
        allowance = economy.generation_allowance(free_user, 2, settings.economy)
        assert allowance.allowed
        assert allowance.requires_credits
        assert allowance.credit_cost == 500

    def test_not_allowed_without_credits(self, free_user, settings):
        poor = replace(free_user, credits=100, total_credits_spent=400)
        assert not economy.generation_allowance(poor, 5, settings.economy).allowed

    def test_pro_is_unlimited(self, paid_user, settings):
        pro = replace(paid_user, subscription_tier=SubscriptionTier.PRO)
        allowance = economy.generation_allowance(pro, 500, settings.economy)
        assert allowance.allowed
        assert allowance.free_remaining == -1

    def test_charge_generation(self, free_user, settings):
        free, events = economy.charge_generation(free_user, 1, settings.economy)
        assert free is free_user
        assert events == []

        charged, events = economy.charge_generation(free_user, 2, settings.economy)
        assert charged.credits == 0
        assert charged.total_credits_spent == 500

        with pytest.raises(InsufficientCredits):
            economy.charge_generation(charged, 3, settings.economy)
