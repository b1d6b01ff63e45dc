"""
Credit ledger for user progression.

Every operation preserves:
    credits == total_credits_earned - total_credits_spent
and never lets credits go negative.

RENEWAL:
--------
Paid tiers receive their monthly allocation once per renewal period. The
period is a fixed 30 x 24h duration, not a calendar month. Renewing inside
the window raises RenewalNotEligible rather than being silently absorbed.

GENERATION ALLOWANCE:
---------------------
Each tier includes a number of free artist generations. Beyond that, every
generation costs a fixed number of credits. Pro is unlimited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..config import EconomySettings, settings
from ..errors import InsufficientCredits, InvalidAmount, RenewalNotEligible
from ..events import CreditsGranted, CreditsRenewed, CreditsSpent
from ..models import SubscriptionTier, UserProgression
from ..utils import to_utc_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationAllowance:
    """Whether a user may generate another artist, and what it costs."""
    allowed: bool
    free_remaining: int  # -1 = unlimited
    requires_credits: bool
    credit_cost: int
    credits: int


def _economy(config: Optional[EconomySettings]) -> EconomySettings:
    return config or settings.economy


def new_progression(
    user_id: str,
    tier: SubscriptionTier = SubscriptionTier.FREE,
    config: Optional[EconomySettings] = None,
) -> UserProgression:
    """Create a progression for a new account, booking the welcome credits."""
    progression = UserProgression(user_id=user_id, subscription_tier=tier)
    progression, _ = grant(progression, _economy(config).welcome_credits)
    return progression


def is_consistent(progression: UserProgression) -> bool:
    """Check the ledger invariant and non-negativity."""
    return (
        progression.credits >= 0
        and progression.total_credits_earned >= 0
        and progression.total_credits_spent >= 0
        and progression.credits == progression.total_credits_earned - progression.total_credits_spent
    )


def grant(progression: UserProgression, amount: int) -> Tuple[UserProgression, List[CreditsGranted]]:
    """Add credits to the balance and to lifetime earnings."""
    if amount < 0:
        raise InvalidAmount(f"Grant amount must be non-negative, got {amount}")

    updated = replace(
        progression,
        credits=progression.credits + amount,
        total_credits_earned=progression.total_credits_earned + amount,
    )
    return updated, [CreditsGranted(progression.user_id, amount, updated.credits)]


def spend(progression: UserProgression, amount: int) -> Tuple[UserProgression, List[CreditsSpent]]:
    """Remove credits from the balance and add them to lifetime spending."""
    if amount < 0:
        raise InvalidAmount(f"Spend amount must be non-negative, got {amount}")
    if amount > progression.credits:
        raise InsufficientCredits(amount, progression.credits)

    updated = replace(
        progression,
        credits=progression.credits - amount,
        total_credits_spent=progression.total_credits_spent + amount,
    )
    logger.info("User %s spent %d credits (%d remaining)", progression.user_id, amount, updated.credits)
    return updated, [CreditsSpent(progression.user_id, amount, updated.credits)]


def monthly_allocation(tier: SubscriptionTier, config: Optional[EconomySettings] = None) -> int:
    """Monthly credit allocation for a subscription tier."""
    return _economy(config).monthly_credits.get(tier.value, 0)


def next_renewal_at(progression: UserProgression, config: Optional[EconomySettings] = None) -> Optional[datetime]:
    """When the next renewal becomes available, or None if available now."""
    if progression.last_credit_renewal is None:
        return None
    period = timedelta(days=_economy(config).renewal_period_days)
    return to_utc_datetime(progression.last_credit_renewal) + period


def renewal_eligible(
    progression: UserProgression,
    now: datetime,
    config: Optional[EconomySettings] = None,
) -> bool:
    """True for paid tiers whose last renewal is unset or at least one period ago."""
    if progression.subscription_tier == SubscriptionTier.FREE:
        return False
    next_at = next_renewal_at(progression, config)
    return next_at is None or to_utc_datetime(now) >= next_at


def renew(
    progression: UserProgression,
    now: datetime,
    tier_monthly_amount: int,
    config: Optional[EconomySettings] = None,
) -> Tuple[UserProgression, int, List[object]]:
    """
    Grant the monthly allocation if eligible.

    Args:
        progression: Current user progression
        now: Time of the request
        tier_monthly_amount: Credits the tier grants per period
        config: Economy settings (defaults to global settings)

    Returns:
        Tuple of (updated progression, credits granted, events)
    """
    if progression.subscription_tier == SubscriptionTier.FREE:
        raise RenewalNotEligible("Credit renewal is only available for paid subscribers")
    if not renewal_eligible(progression, now, config):
        raise RenewalNotEligible(
            "Credits already renewed this period",
            next_renewal_at=next_renewal_at(progression, config),
        )

    updated, events = grant(progression, tier_monthly_amount)
    updated = replace(updated, last_credit_renewal=now)

    logger.info(
        "User %s credits renewed: %d credits for %s tier",
        progression.user_id, tier_monthly_amount, progression.subscription_tier.value,
    )
    renewed = CreditsRenewed(
        user_id=progression.user_id,
        tier=progression.subscription_tier.value,
        amount=tier_monthly_amount,
        renewed_at=now,
    )
    return updated, tier_monthly_amount, [*events, renewed]


def generation_allowance(
    progression: UserProgression,
    cards_owned: int,
    config: Optional[EconomySettings] = None,
) -> GenerationAllowance:
    """Check whether the user may generate another artist."""
    config = _economy(config)
    cost = config.additional_generation_cost
    limit = config.free_generations.get(progression.subscription_tier.value, 0)

    if limit < 0:
        return GenerationAllowance(True, -1, False, 0, progression.credits)

    free_remaining = max(0, limit - cards_owned)
    if free_remaining > 0:
        return GenerationAllowance(True, free_remaining, False, 0, progression.credits)

    return GenerationAllowance(
        allowed=progression.credits >= cost,
        free_remaining=0,
        requires_credits=True,
        credit_cost=cost,
        credits=progression.credits,
    )


def charge_generation(
    progression: UserProgression,
    cards_owned: int,
    config: Optional[EconomySettings] = None,
) -> Tuple[UserProgression, List[CreditsSpent]]:
    """Spend the generation cost when no free generation remains."""
    allowance = generation_allowance(progression, cards_owned, config)
    if not allowance.requires_credits:
        return progression, []
    if not allowance.allowed:
        raise InsufficientCredits(allowance.credit_cost, progression.credits)
    return spend(progression, allowance.credit_cost)
