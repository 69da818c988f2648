"""
Moderation service: operator approval or rejection of paid ads.

Handles:
- Action validation (approve | reject)
- Mutual exclusion between concurrent moderators via a moderation claim
- Refund-before-reject: an ad only becomes rejected after the gateway has
  accepted a full refund
- Best-effort notification emails

The claim is taken with one conditional update (status must be pending and
no live claim held). Only the claim holder can apply the terminal update,
which clears the claim in the same statement. A failed operation releases
the claim; a crashed one leaves a claim that goes stale after the TTL.

A rejection stamps refund_requested_at under its claim before calling the
gateway. Approval refuses stamped ads, so an operator who takes over a stale
claim cannot publish an ad whose payment is already being refunded.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Union
from uuid import UUID, uuid4

from domain.ad import AdRecord, AdStatus, ModerationAction, require_transition
from domain.errors import PreconditionError, RecordStoreError, ValidationError
from domain.time import utc_now
from gateways.base import NotificationGateway, PaymentGateway
from repositories.base import AdStore
from services.email_templates import render_live, render_rejection
from services.notifications import send_best_effort

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH: int = 500

# Closest Stripe refund reason for a moderation rejection.
REFUND_REASON = "requested_by_customer"


def parse_action(action: Union[ModerationAction, str]) -> ModerationAction:
    try:
        return ModerationAction(action)
    except ValueError:
        raise ValidationError({"action": "Action must be 'approve' or 'reject'"}) from None


def refund_idempotency_key(ad_id: UUID) -> str:
    """One refund per ad, however many times a rejection is retried."""
    return f"refund-{ad_id}"


class ModerationService:
    """Operator-facing moderation of pending ads."""

    def __init__(
        self,
        store: AdStore,
        payments: PaymentGateway,
        notifier: NotificationGateway,
        *,
        site_url: str,
        claim_ttl_seconds: int = 300,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._payments = payments
        self._notifier = notifier
        self._site_url = site_url
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)
        self._clock = clock

    def list_pending(self) -> List[AdRecord]:
        """Ads awaiting moderation, newest first."""
        return self._store.query_by_status(AdStatus.PENDING)

    def moderate(
        self,
        ad_id: UUID,
        action: Union[ModerationAction, str],
        comment: Optional[str] = None,
    ) -> AdRecord:
        """
        Approve or reject a pending ad.

        Raises:
            ValidationError: unknown action or over-long comment; nothing changed
            PreconditionError: ad missing, not pending, being moderated by
                someone else, or approving an ad whose refund was requested
            GatewayError: refund failed; the ad is still pending and the
                rejection can be retried
            RecordStoreError: the store failed
        """
        moderation_action = parse_action(action)
        comment = comment.strip() if comment and comment.strip() else None
        if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError({"comment": f"Comment must be {MAX_COMMENT_LENGTH} characters or less"})

        token = uuid4().hex
        now = self._clock()
        claimed = self._store.claim_for_moderation(
            ad_id, token, now=now, stale_before=now - self._claim_ttl
        )
        if claimed is None:
            raise self._claim_refused(ad_id)

        try:
            if moderation_action is ModerationAction.APPROVE:
                updated = self._approve(claimed, token, comment)
            else:
                updated = self._reject(claimed, token, comment)
        except Exception:
            self._release(ad_id, token)
            raise

        return updated

    def _approve(self, record: AdRecord, token: str, comment: Optional[str]) -> AdRecord:
        require_transition(record.status, AdStatus.APPROVED)
        if record.refund_requested_at is not None:
            raise PreconditionError(f"A refund was already requested for ad {record.ad_id}; it can only be rejected")

        updated = self._store.conditional_update(
            record.ad_id,
            AdStatus.PENDING,
            {"status": AdStatus.APPROVED, "moderation_comment": comment, "updated_at": self._clock()},
            claim_token=token,
            require_no_refund=True,
        )
        if updated is None:
            raise PreconditionError(f"Ad {record.ad_id} was moderated concurrently")

        logger.info("Ad %s approved", record.ad_id)
        send_best_effort(
            self._notifier, updated.email, render_live(updated, site_url=self._site_url, comment=comment)
        )
        return updated

    def _reject(self, record: AdRecord, token: str, comment: Optional[str]) -> AdRecord:
        require_transition(record.status, AdStatus.REJECTED)

        if not record.payment_reference:
            raise PreconditionError(f"Ad {record.ad_id} has no payment reference to refund")

        if record.refund_requested_at is None:
            marked = self._store.mark_refund_requested(record.ad_id, token, at=self._clock())
            if marked is None:
                raise PreconditionError(f"Ad {record.ad_id} was moderated concurrently")

        # GatewayError propagates: the ad stays pending.
        receipt = self._payments.refund(
            record.payment_reference,
            record.total,
            REFUND_REASON,
            refund_idempotency_key(record.ad_id),
        )
        logger.info("Refund %s issued for ad %s (%d cents)", receipt.refund_id, record.ad_id, record.total)

        updated = self._store.conditional_update(
            record.ad_id,
            AdStatus.PENDING,
            {"status": AdStatus.REJECTED, "moderation_comment": comment, "updated_at": self._clock()},
            claim_token=token,
        )
        if updated is None:
            logger.error(
                "Refund %s issued but ad %s could not be marked rejected (claim lost)",
                receipt.refund_id, record.ad_id,
            )
            raise PreconditionError(
                f"Ad {record.ad_id} was moderated concurrently; the refund stands, retry the rejection"
            )

        logger.info("Ad %s rejected", record.ad_id)
        send_best_effort(self._notifier, updated.email, render_rejection(updated, comment=comment))
        return updated

    def _claim_refused(self, ad_id: UUID) -> PreconditionError:
        record = self._store.get_by_id(ad_id)
        if record is None:
            return PreconditionError(f"Ad not found: {ad_id}", not_found=True)
        if record.status != AdStatus.PENDING:
            return PreconditionError(f"Ad is not pending review (status: {record.status.value})")
        return PreconditionError(f"Ad {ad_id} is being moderated by another operator")

    def _release(self, ad_id: UUID, token: str) -> None:
        try:
            self._store.release_claim(ad_id, token)
        except RecordStoreError as e:
            logger.warning("Could not release moderation claim on ad %s (expires after TTL): %s", ad_id, e)


__all__ = [
    "MAX_COMMENT_LENGTH",
    "REFUND_REASON",
    "ModerationService",
    "parse_action",
    "refund_idempotency_key",
]
