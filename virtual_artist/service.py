"""
Unified facade for the career engine - the calling layer.

Each method loads entity state from the repository, runs one pure engine
operation, and saves the result with the version it loaded. A concurrent
write surfaces as VersionConflict from the repository; the whole
load -> transform -> save sequence is then retried. The engine operations
themselves never retry.

Events returned by engine operations are forwarded to the event sink.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .billing_client import BillingClient, BillingResult, billing_client
from .career import aggregator, charts, growth, scoring
from .career.aggregator import CareerStats
from .career.growth import GrowthResult
from .career.scoring import ReleaseOutcome
from .config import Settings, settings as default_settings
from .errors import RenewalNotEligible, VersionConflict
from .events import Event, TierChanged, event_entity_id, event_to_dict
from .models import ArtistEntity, ArtistEvolution, Release, ReleaseSubmission, SubscriptionTier, UserProgression
from .progression import economy, experience
from .storage import Repository

logger = logging.getLogger(__name__)

EventSink = Callable[[Sequence[Event]], None]

# Retry decorator for optimistic write conflicts
_retry_on_conflict = retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
    retry=retry_if_exception_type(VersionConflict),
    reraise=True,
)


def log_events(events: Sequence[Event]) -> None:
    """Default event sink: log each event."""
    for event in events:
        logger.info("Event: %s", event_to_dict(event))


@dataclass
class ProgressionSummary:
    """Read model for a user's progression screen."""
    user_id: str
    level: str
    title: str
    experience: int
    influence: int
    progress: float
    experience_to_next_level: Optional[int]
    capabilities: Dict[str, bool]
    credits: int
    total_credits_earned: int
    total_credits_spent: int
    subscription_tier: str
    renewal_available: bool
    next_renewal_at: Optional[datetime]


@dataclass
class CareerOverview:
    releases: List[Release]
    evolutions: List[ArtistEvolution]
    stats: CareerStats


@dataclass
class ReleaseReport:
    outcome: ReleaseOutcome
    summary: str


class CareerService:
    """Runs engine operations against a repository."""

    def __init__(
        self,
        repository: Repository,
        billing: Optional[BillingClient] = None,
        event_sink: Optional[EventSink] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.repository = repository
        self.billing = billing or billing_client
        self.event_sink = event_sink or log_events
        self.settings = config or default_settings

    def _emit(self, events: Sequence[Event]) -> None:
        if events:
            self.event_sink(list(events))

    # ========== Users & credits ==========

    def create_user(self, user_id: str, tier: SubscriptionTier = SubscriptionTier.FREE) -> UserProgression:
        """Create a progression for a new account with its welcome credits."""
        progression = economy.new_progression(user_id, tier, self.settings.economy)
        saved = self.repository.save_progression(progression, expected_version=0)
        logger.info("New user %s signed up and received %d welcome credits", user_id, saved.credits)
        return saved

    def progression_summary(self, user_id: str, now: datetime) -> ProgressionSummary:
        p = self.repository.load_progression(user_id)
        config = self.settings.progression
        level = experience.level_for(p.experience, config)
        caps = experience.capabilities_for(level)
        return ProgressionSummary(
            user_id=p.user_id,
            level=level.value,
            title=experience.title_for(p.experience, config),
            experience=p.experience,
            influence=p.influence,
            progress=experience.progress_fraction(p.experience, config),
            experience_to_next_level=experience.experience_to_next_level(p.experience, config),
            capabilities={
                "can_customize_style": caps.can_customize_style,
                "can_set_philosophy": caps.can_set_philosophy,
                "can_upload_images": caps.can_upload_images,
                "can_hardcode_parameters": caps.can_hardcode_parameters,
            },
            credits=p.credits,
            total_credits_earned=p.total_credits_earned,
            total_credits_spent=p.total_credits_spent,
            subscription_tier=p.subscription_tier.value,
            renewal_available=economy.renewal_eligible(p, now, self.settings.economy),
            next_renewal_at=economy.next_renewal_at(p, self.settings.economy),
        )

    @_retry_on_conflict
    def add_experience(self, user_id: str, experience_gained: int, influence_gained: int = 0) -> UserProgression:
        p = self.repository.load_progression(user_id)
        updated, events = experience.add_experience(p, experience_gained, influence_gained, self.settings.progression)
        saved = self.repository.save_progression(updated, p.version)
        self._emit(events)
        return saved

    @_retry_on_conflict
    def grant_credits(self, user_id: str, amount: int) -> UserProgression:
        p = self.repository.load_progression(user_id)
        updated, events = economy.grant(p, amount)
        saved = self.repository.save_progression(updated, p.version)
        self._emit(events)
        return saved

    @_retry_on_conflict
    def spend_credits(self, user_id: str, amount: int) -> UserProgression:
        p = self.repository.load_progression(user_id)
        updated, events = economy.spend(p, amount)
        saved = self.repository.save_progression(updated, p.version)
        self._emit(events)
        return saved

    @_retry_on_conflict
    def renew_credits(self, user_id: str, now: datetime) -> int:
        """Renew monthly credits. RenewalNotEligible propagates to the caller."""
        p = self.repository.load_progression(user_id)
        amount = economy.monthly_allocation(p.subscription_tier, self.settings.economy)
        updated, granted, events = economy.renew(p, now, amount, self.settings.economy)
        self.repository.save_progression(updated, p.version)
        self._emit(events)
        return granted

    def process_monthly_renewals(self, now: datetime) -> List[str]:
        """Renew every eligible paid user. Returns the ids that were renewed."""
        renewed = []
        for p in self.repository.list_progressions():
            if not economy.renewal_eligible(p, now, self.settings.economy):
                continue
            if economy.monthly_allocation(p.subscription_tier, self.settings.economy) <= 0:
                continue
            try:
                self.renew_credits(p.user_id, now)
            except RenewalNotEligible:
                logger.warning("User %s was renewed concurrently, skipping", p.user_id)
                continue
            renewed.append(p.user_id)
        logger.info("Monthly credit renewal processed for %d users", len(renewed))
        return renewed

    def change_tier(self, user_id: str, target: SubscriptionTier) -> BillingResult:
        """Submit a tier-change intent and record the tier billing reports back."""
        current = self.repository.load_progression(user_id)
        result = self.billing.request_tier_change(user_id, current.subscription_tier, target)
        if not result.success:
            logger.warning("Tier change for %s to %s declined: %s", user_id, target.value, result.message)
            return result
        self._record_tier(user_id, result.tier)
        return result

    @_retry_on_conflict
    def _record_tier(self, user_id: str, tier: SubscriptionTier) -> UserProgression:
        p = self.repository.load_progression(user_id)
        if p.subscription_tier == tier:
            return p
        saved = self.repository.save_progression(replace(p, subscription_tier=tier), p.version)
        self._emit([TierChanged(user_id, p.subscription_tier.value, tier.value)])
        return saved

    # ========== Artists ==========

    @_retry_on_conflict
    def _charge_and_award(self, user_id: str) -> UserProgression:
        p = self.repository.load_progression(user_id)
        # total_cards is read and bumped in the same versioned write
        charged, spend_events = economy.charge_generation(p, p.total_cards, self.settings.economy)
        awarded, level_events = experience.award_card_created(charged, self.settings.progression)
        saved = self.repository.save_progression(awarded, p.version)
        self._emit([*spend_events, *level_events])
        return saved

    def generate_artist(
        self,
        user_id: str,
        name: str,
        genre: str,
        now: datetime,
        starting_fame: int = 5,
    ) -> ArtistEntity:
        """Create an artist, charging credits once the tier's free generations are used."""
        self._charge_and_award(user_id)

        artist = ArtistEntity(
            artist_id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            genre=genre,
            created_at=now,
            current_fame=starting_fame,
            last_daily_update=None,
        )
        return self.repository.save_artist(artist, expected_version=0)

    @_retry_on_conflict
    def apply_daily_growth(self, artist_id: str, now: datetime) -> GrowthResult:
        """Apply today's growth. AlreadyAppliedToday propagates to the caller."""
        artist = self.repository.load_artist(artist_id)
        updated, result, events = growth.apply_daily_growth(artist, now, self.settings.growth)
        self.repository.save_artist(updated, artist.version)
        self._emit(events)
        return result

    @_retry_on_conflict
    def release_music(self, artist_id: str, submission: ReleaseSubmission, now: datetime) -> ReleaseReport:
        """Publish a release: score it, update the artist, store release and evolution."""
        artist = self.repository.load_artist(artist_id)
        history = self.repository.list_releases(artist_id)
        outcome = scoring.release_new_music(artist, submission, history, now, self.settings.scoring)

        outcome.artist = self.repository.save_artist(outcome.artist, artist.version)
        outcome.release = self.repository.append_release(outcome.release)
        self.repository.append_evolution(outcome.evolution)
        self._emit(outcome.events)

        summary = aggregator.career_summary(
            artist.name, artist.genre, outcome.release, outcome.evolution, len(history) + 1,
        )
        return ReleaseReport(outcome=outcome, summary=summary)

    @_retry_on_conflict
    def record_engagement(self, release_id: str, streams: int = 0, likes: int = 0) -> Release:
        release = self.repository.load_release(release_id)
        updated = scoring.record_engagement(release, streams, likes)
        return self.repository.save_release(updated, release.version)

    def career_overview(self, artist_id: str) -> CareerOverview:
        releases = self.repository.list_releases(artist_id)
        evolutions = self.repository.list_evolutions(artist_id)
        return CareerOverview(
            releases=releases,
            evolutions=evolutions,
            stats=aggregator.aggregate(releases, evolutions, self.settings.scoring),
        )

    # ========== Charts ==========

    def update_rankings(self) -> Dict[str, int]:
        """
        Recompute chart positions for the whole population.

        Works from a snapshot. An artist written concurrently keeps its old
        position until the next run.
        """
        snapshot = self.repository.list_artists()
        positions = charts.rank(snapshot, self.settings.charts)
        updated, events = charts.apply_rankings(snapshot, positions)

        by_id = {a.artist_id: a for a in snapshot}
        stale = set()
        for artist in updated:
            before = by_id[artist.artist_id]
            if artist is before:
                continue
            try:
                self.repository.save_artist(artist, before.version)
            except VersionConflict:
                logger.warning("Artist %s changed during ranking, skipping until next run", artist.artist_id)
                stale.add(artist.artist_id)
                continue
            self._update_release_peak(artist)

        emitted = [e for e in events if event_entity_id(e) not in stale]
        self._emit(emitted)
        return positions

    @_retry_on_conflict
    def _update_release_peak(self, artist: ArtistEntity) -> None:
        """Record the chart position on the artist's latest release."""
        if artist.chart_position <= 0:
            return
        releases = self.repository.list_releases(artist.artist_id)
        if not releases:
            return
        latest = releases[-1]
        peaked = scoring.record_chart_position(latest, artist.chart_position)
        if peaked is not latest:
            self.repository.save_release(peaked, latest.version)

    def leaderboard(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        df = charts.leaderboard(self.repository.list_artists(), limit, self.settings.charts)
        return df.to_dict(orient="records")
