"""
Progression module for user experience levels and the credit economy.
"""

from .experience import (
    CAPABILITIES,
    band_for,
    level_for,
    title_for,
    progress_fraction,
    experience_to_next_level,
    capabilities_for,
    add_experience,
    award_card_created,
)
from .economy import (
    GenerationAllowance,
    new_progression,
    is_consistent,
    grant,
    spend,
    monthly_allocation,
    next_renewal_at,
    renewal_eligible,
    renew,
    generation_allowance,
    charge_generation,
)

__version__ = "1.0.0"

__all__ = [
    # experience.py
    "CAPABILITIES",
    "band_for",
    "level_for",
    "title_for",
    "progress_fraction",
    "experience_to_next_level",
    "capabilities_for",
    "add_experience",
    "award_card_created",
    # economy.py
    "GenerationAllowance",
    "new_progression",
    "is_consistent",
    "grant",
    "spend",
    "monthly_allocation",
    "next_renewal_at",
    "renewal_eligible",
    "renew",
    "generation_allowance",
    "charge_generation",
]
