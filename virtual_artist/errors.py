"""Error taxonomy for the career engine.

Every error here is a local, recoverable condition raised to the caller.
The engine never retries; callers decide how to surface or retry.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional


class EngineError(Exception):
    """Base class for career engine errors."""


class InvalidAmount(EngineError):
    """Raised when a credit grant or spend amount is negative."""


class InsufficientCredits(EngineError):
    """Raised when a spend exceeds the current balance."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(f"Requested {requested} credits but only {available} available")
        self.requested = requested
        self.available = available


class RenewalNotEligible(EngineError):
    """Raised when renewal is requested on a Free tier or inside the renewal window."""

    def __init__(self, message: str, next_renewal_at: Optional[datetime] = None) -> None:
        super().__init__(message)
        self.next_renewal_at = next_renewal_at


class AlreadyAppliedToday(EngineError):
    """Raised when daily growth was already applied for the current UTC day."""

    def __init__(self, artist_id: str, day: date) -> None:
        super().__init__(f"Daily growth already applied to {artist_id} for {day.isoformat()}")
        self.artist_id = artist_id
        self.day = day


class InvalidDelta(EngineError):
    """Raised when a counter delta (experience, influence, streams, likes) is negative."""


class EntityNotFound(EngineError):
    """Raised when a repository has no entity under the requested id."""


class VersionConflict(EngineError):
    """Raised by a repository when an optimistic write finds a newer version."""

    def __init__(self, entity_id: str, expected: int, actual: Optional[int]) -> None:
        super().__init__(
            f"Version conflict on {entity_id}: expected {expected}, found {actual}"
        )
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual


class BillingAPIError(RuntimeError):
    """Raised when the billing service returns an error response."""
