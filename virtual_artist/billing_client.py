"""Billing collaborator client for subscription tier changes.

The engine never takes payment. This client only posts a tier-change intent
and reports the billing service's verdict; the ledger reacts to the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from .config import BillingSettings, EconomySettings, settings
from .errors import BillingAPIError
from .models import SubscriptionTier
from .progression.economy import monthly_allocation

logger = logging.getLogger(__name__)

# Retry decorator for transient failures
_retry_on_network_error = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.RequestError, httpx.TimeoutException)),
    reraise=True,
)


@dataclass(frozen=True)
class BillingResult:
    """Outcome of a tier-change intent."""
    success: bool
    tier: SubscriptionTier
    monthly_credits: int
    message: str = ""


class BillingClient:
    """Posts tier-change intents to the billing service."""

    def __init__(
        self,
        billing: Optional[BillingSettings] = None,
        economy: Optional[EconomySettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._billing = billing or settings.billing
        self._economy = economy or settings.economy
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self._billing.configured

    def _get_headers(self) -> dict:
        """Get request headers with authentication."""
        token = self._billing.api_token
        if not token:
            raise BillingAPIError(
                "Billing credentials not configured. "
                f"Set the {self._billing.api_token_env_var} environment variable."
            )
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    @_retry_on_network_error
    def _post(self, url: str, payload: dict) -> httpx.Response:
        """Make HTTP request with retry logic for transient failures."""
        with httpx.Client(timeout=self._billing.timeout_seconds, transport=self._transport) as client:
            return client.post(url, json=payload, headers=self._get_headers())

    def request_tier_change(self, user_id: str, current: SubscriptionTier, target: SubscriptionTier) -> BillingResult:
        """
        Submit a tier-change intent.

        Args:
            user_id: User requesting the change
            current: The user's current tier
            target: Requested tier

        Returns:
            BillingResult with the tier now in effect and its monthly allocation
        """
        if not self.configured:
            logger.warning("Billing not configured, approving %s -> %s locally", current.value, target.value)
            return BillingResult(
                success=True,
                tier=target,
                monthly_credits=monthly_allocation(target, self._economy),
                message="Approved without billing service",
            )

        url = f"{self._billing.api_base_url.rstrip('/')}/subscriptions/intents"
        payload = {"user_id": user_id, "current_tier": current.value, "target_tier": target.value}
        response = self._post(url, payload)

        logger.info("Billing intent API: %s %s", response.status_code, url)

        if response.status_code in (401, 403):
            raise BillingAPIError("Billing service rejected credentials")

        if response.status_code == 402:
            return BillingResult(
                success=False,
                tier=current,
                monthly_credits=monthly_allocation(current, self._economy),
                message="Payment required",
            )

        if response.status_code >= 400:
            raise BillingAPIError(f"Billing API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise BillingAPIError(f"Billing API returned invalid JSON: {e}") from e

        approved = bool(data.get("approved", False))
        tier = SubscriptionTier(data.get("tier", target.value if approved else current.value))
        monthly = data.get("monthly_credits")
        if monthly is None:
            monthly = monthly_allocation(tier, self._economy)

        return BillingResult(
            success=approved,
            tier=tier,
            monthly_credits=int(monthly),
            message=data.get("message", ""),
        )


# Global client instance
billing_client = BillingClient()
