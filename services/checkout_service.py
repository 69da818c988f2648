"""
Checkout service: turns a poster's draft into a payable ad.

Handles:
- Field validation with a per-field error map
- Pricing per targeted county
- Persisting the pending_payment record BEFORE the gateway is called, so the
  payment session only has to carry the record id
- Hosted checkout session creation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List
from uuid import UUID, uuid4

from domain.ad import AdCategory, AdDraft, AdRecord, AdStatus, validate_draft
from domain.errors import GatewayError, RecordStoreError, ValidationError
from domain.locations import dedupe_locations
from domain.pricing import PRICE_PER_COUNTY_CENTS, TAX_RATE, Pricing, calculate_pricing
from domain.time import utc_now
from gateways.base import LineItem, PaymentGateway
from repositories.base import AdStore

logger = logging.getLogger(__name__)

# Metadata key carrying the ad id through the payment gateway.
AD_ID_METADATA_KEY = "ad_id"


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    """
    Result of a started checkout.

    url: hosted payment page to redirect the poster to
    """
    ad_id: UUID
    session_id: str
    url: str
    pricing: Pricing


def build_line_items(record: AdRecord) -> List[LineItem]:
    """One line per targeted county, plus a sales tax line when tax applies."""

    items = [
        LineItem(
            name=f"Ad Posting - {loc.county}, {loc.state}",
            description=f"{record.category.value} ad in {loc.county}, {loc.state}",
            unit_amount=PRICE_PER_COUNTY_CENTS,
        )
        for loc in record.locations
    ]
    if record.tax > 0:
        items.append(
            LineItem(
                name="Sales Tax",
                description=f"Sales tax ({TAX_RATE * 100:g}%)",
                unit_amount=record.tax,
            )
        )
    return items


class CheckoutOrchestrator:
    """Creates pending_payment ads and their hosted checkout sessions."""

    def __init__(
        self,
        store: AdStore,
        payments: PaymentGateway,
        *,
        site_url: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._payments = payments
        self._site_url = site_url.rstrip("/")
        self._clock = clock

    def start_checkout(self, draft: AdDraft) -> CheckoutResult:
        """
        Validate, price, persist, then open a checkout session.

        Process:
        1. Validate every draft field (no side effects on failure)
        2. Price by number of distinct targeted counties
        3. Insert the record as pending_payment
        4. Create the checkout session with the record id as its only metadata
        5. Return the session's redirect URL

        Raises:
            ValidationError: the draft is invalid (field -> message map)
            RecordStoreError: the record could not be persisted; no session was opened
            GatewayError: the session could not be created; the record stays
                pending_payment and is later swept as an abandoned checkout
        """
        errors = validate_draft(draft)
        if errors:
            raise ValidationError(errors)

        locations = tuple(dedupe_locations(draft.locations))
        pricing = calculate_pricing(len(locations))
        now = self._clock()

        record = AdRecord(
            ad_id=uuid4(),
            content=draft.content.strip(),
            category=AdCategory(draft.category),
            locations=locations,
            email=draft.email.strip(),
            status=AdStatus.PENDING_PAYMENT,
            subtotal=pricing.subtotal,
            tax=pricing.tax,
            total=pricing.total,
            created_at=now,
            phone=draft.phone or None,
            address=draft.address or None,
            attachment=draft.attachment,
        )

        # A store failure propagates before any gateway call is made.
        record = self._store.insert(record)
        logger.info(
            "Created pending_payment ad %s (%d counties, total %d cents)",
            record.ad_id, pricing.county_count, pricing.total,
        )

        try:
            session = self._payments.create_checkout_session(
                line_items=build_line_items(record),
                success_url=f"{self._site_url}?success=true&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self._site_url}?canceled=true",
                customer_email=record.email,
                metadata={AD_ID_METADATA_KEY: str(record.ad_id)},
            )
        except GatewayError:
            logger.warning("Checkout session failed; ad %s left as abandoned pending_payment", record.ad_id)
            raise

        self._remember_session(record.ad_id, session.session_id)

        return CheckoutResult(
            ad_id=record.ad_id,
            session_id=session.session_id,
            url=session.url,
            pricing=pricing,
        )

    def _remember_session(self, ad_id: UUID, session_id: str) -> None:
        # Informational only; the webhook finds the ad through metadata.
        try:
            updated = self._store.conditional_update(
                ad_id,
                AdStatus.PENDING_PAYMENT,
                {"checkout_session_id": session_id, "updated_at": self._clock()},
            )
        except RecordStoreError as e:
            logger.warning("Could not store session %s on ad %s: %s", session_id, ad_id, e)
            return
        if updated is None:
            logger.info("Ad %s already left pending_payment; session id not stored", ad_id)


__all__ = [
    "AD_ID_METADATA_KEY",
    "CheckoutResult",
    "CheckoutOrchestrator",
    "build_line_items",
]
