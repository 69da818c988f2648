"""
Payment webhook handling.

The only place a payment confirmation becomes a status change. Every
delivery is verified against the raw body before anything is interpreted,
and every transition is a single conditional update from pending_payment,
so redelivered events are harmless.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from domain.ad import AdRecord, AdStatus
from domain.errors import AnomalyError
from domain.time import utc_now
from gateways.base import CHECKOUT_COMPLETED, CHECKOUT_EXPIRED, GatewayEvent, NotificationGateway, PaymentGateway
from repositories.base import AdStore
from services.checkout_service import AD_ID_METADATA_KEY
from services.email_templates import render_receipt
from services.notifications import send_best_effort

logger = logging.getLogger(__name__)


class WebhookOutcome(str, Enum):
    CONFIRMED = "confirmed"      # pending_payment -> pending applied
    DUPLICATE = "duplicate"      # ad already past pending_payment; no-op
    UNKNOWN_AD = "unknown_ad"    # anomaly; acknowledged, nothing changed
    EXPIRED = "expired"          # checkout abandoned; nothing changed
    IGNORED = "ignored"          # event kind we do not act on


def _confirmed_amounts(record: AdRecord, event: GatewayEvent) -> Dict[str, int]:
    """
    Amounts to store once payment is confirmed.

    The gateway's charged total wins over our quote. The subtotal always stays
    at the quoted county price; any difference from the quote is booked to
    tax as an adjustment, which can be negative.
    """

    if event.amount_total is None or event.amount_total == record.total:
        return {"subtotal": record.subtotal, "tax": record.tax, "total": record.total}

    total = event.amount_total
    logger.warning(
        "Gateway charged %d cents for ad %s, quoted %d; storing the charged amount",
        total, record.ad_id, record.total,
    )
    return {"subtotal": record.subtotal, "tax": total - record.subtotal, "total": total}


class PaymentWebhookHandler:
    """Applies verified payment events to ad records."""

    def __init__(
        self,
        store: AdStore,
        payments: PaymentGateway,
        notifier: NotificationGateway,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._payments = payments
        self._notifier = notifier
        self._clock = clock

    def handle(self, payload: bytes, signature: str) -> WebhookOutcome:
        """
        Verify and apply one webhook delivery.

        Raises:
            SignatureVerificationError: the delivery is not authentic; nothing was read
            RecordStoreError: the store failed; the caller must report failure so
                the gateway redelivers
        """
        event = self._payments.parse_event(payload, signature)
        logger.info("Webhook event %s (%s)", event.event_id, event.kind)

        if event.kind == CHECKOUT_COMPLETED:
            return self._handle_completed(event)

        if event.kind == CHECKOUT_EXPIRED:
            logger.info("Checkout session %s expired; ad left as pending_payment", event.session_id)
            return WebhookOutcome.EXPIRED

        logger.info("Unhandled event type: %s", event.kind)
        return WebhookOutcome.IGNORED

    def _handle_completed(self, event: GatewayEvent) -> WebhookOutcome:
        try:
            ad_id = self._ad_id_from(event)
            record = self._store.get_by_id(ad_id)
            if record is None:
                raise AnomalyError(f"No ad {ad_id} for completed session {event.session_id}")
        except AnomalyError as e:
            logger.error("Webhook anomaly (event %s): %s", event.event_id, e)
            return WebhookOutcome.UNKNOWN_AD

        if record.status != AdStatus.PENDING_PAYMENT:
            logger.info("Ad %s already %s; duplicate delivery of %s", ad_id, record.status.value, event.event_id)
            return WebhookOutcome.DUPLICATE

        now = self._clock()
        patch: Dict[str, Any] = {
            "status": AdStatus.PENDING,
            "payment_reference": event.payment_reference,
            "updated_at": now,
            **_confirmed_amounts(record, event),
        }
        if event.session_id:
            patch["checkout_session_id"] = event.session_id

        updated = self._store.conditional_update(ad_id, AdStatus.PENDING_PAYMENT, patch)
        if updated is None:
            # A concurrent delivery applied the transition first.
            logger.info("Ad %s confirmed by a concurrent delivery of %s", ad_id, event.event_id)
            return WebhookOutcome.DUPLICATE

        logger.info("Ad %s paid (payment %s); queued for moderation", ad_id, event.payment_reference)

        send_best_effort(self._notifier, updated.email, render_receipt(updated, paid_at=now))
        return WebhookOutcome.CONFIRMED

    @staticmethod
    def _ad_id_from(event: GatewayEvent) -> UUID:
        raw: Optional[str] = event.metadata.get(AD_ID_METADATA_KEY)
        if not raw:
            raise AnomalyError(f"Completed session {event.session_id} carries no {AD_ID_METADATA_KEY}")
        try:
            return UUID(raw)
        except ValueError:
            raise AnomalyError(f"Completed session {event.session_id} has malformed ad id {raw!r}") from None


__all__ = ["WebhookOutcome", "PaymentWebhookHandler"]
