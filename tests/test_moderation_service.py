"""
Tests for `services/moderation_service.py`.

Covers contract rules:
- approve / reject only from pending; terminal states never change.
- A rejection refunds the full total before the ad becomes rejected.
- A failed refund leaves the ad pending and retryable.
- Once a refund has been requested the ad can only be rejected, even by an
  operator who took over a stale claim.
- Concurrent moderators: exactly one wins, no refund for an approved ad.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from conftest import make_draft
from domain.ad import AdStatus, ModerationAction
from domain.errors import GatewayError, PreconditionError, ValidationError
from services.moderation_service import ModerationService, refund_idempotency_key


def test_list_pending_shows_only_paid_ads(moderation, orchestrator, paid_ad) -> None:
    orchestrator.start_checkout(make_draft())  # unpaid, must not appear

    assert [ad.ad_id for ad in moderation.list_pending()] == [paid_ad.ad_id]


def test_approve(moderation, store, payments, notifier, paid_ad) -> None:
    notifier.sent.clear()

    updated = moderation.moderate(paid_ad.ad_id, "approve", "  Looks good  ")

    assert updated.status == AdStatus.APPROVED
    assert updated.moderation_comment == "Looks good"
    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.APPROVED
    assert store.claim_of(paid_ad.ad_id) is None
    assert payments.refunds == []
    assert notifier.subjects() == ["Your Ad is Live! - PostBudgetAds.com"]


def test_reject_refunds_full_total_first(moderation, store, payments, notifier, paid_ad) -> None:
    notifier.sent.clear()

    updated = moderation.moderate(paid_ad.ad_id, ModerationAction.REJECT, "Prohibited item")

    assert updated.status == AdStatus.REJECTED
    assert payments.refunds == [
        {
            "payment_reference": "pi_test_1",
            "amount": 1063,
            "reason": "requested_by_customer",
            "idempotency_key": refund_idempotency_key(paid_ad.ad_id),
        }
    ]
    assert notifier.subjects() == ["Update regarding your Ad - PostBudgetAds.com"]
    assert "Prohibited item" in notifier.sent[0]["text"]


def test_refund_failure_leaves_ad_pending_and_retryable(moderation, store, payments, paid_ad) -> None:
    payments.fail_refund = True

    with pytest.raises(GatewayError):
        moderation.moderate(paid_ad.ad_id, "reject")

    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.PENDING
    assert store.claim_of(paid_ad.ad_id) is None

    payments.fail_refund = False
    assert moderation.moderate(paid_ad.ad_id, "reject").status == AdStatus.REJECTED
    assert len(payments.refunds) == 1


def test_failed_refund_attempt_blocks_later_approval(moderation, store, payments, paid_ad) -> None:
    payments.fail_refund = True
    with pytest.raises(GatewayError):
        moderation.moderate(paid_ad.ad_id, "reject")

    assert store.get_by_id(paid_ad.ad_id).refund_requested_at is not None

    with pytest.raises(PreconditionError) as exc:
        moderation.moderate(paid_ad.ad_id, "approve")
    assert "can only be rejected" in str(exc.value)
    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.PENDING
    assert store.claim_of(paid_ad.ad_id) is None


def test_terminal_states_are_final(moderation, store, payments, paid_ad) -> None:
    moderation.moderate(paid_ad.ad_id, "approve")

    with pytest.raises(PreconditionError) as exc:
        moderation.moderate(paid_ad.ad_id, "approve")
    assert "not pending" in str(exc.value)

    with pytest.raises(PreconditionError):
        moderation.moderate(paid_ad.ad_id, "reject")

    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.APPROVED
    assert payments.refunds == []


def test_unpaid_ad_cannot_be_moderated(moderation, orchestrator, store) -> None:
    result = orchestrator.start_checkout(make_draft())

    with pytest.raises(PreconditionError):
        moderation.moderate(result.ad_id, "approve")

    assert store.get_by_id(result.ad_id).status == AdStatus.PENDING_PAYMENT


def test_unknown_ad_is_not_found(moderation) -> None:
    with pytest.raises(PreconditionError) as exc:
        moderation.moderate(uuid4(), "approve")

    assert exc.value.not_found


def test_invalid_action(moderation, store, paid_ad) -> None:
    with pytest.raises(ValidationError) as exc:
        moderation.moderate(paid_ad.ad_id, "delete")

    assert exc.value.field_errors == {"action": "Action must be 'approve' or 'reject'"}
    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.PENDING


def test_overlong_comment(moderation, paid_ad) -> None:
    with pytest.raises(ValidationError):
        moderation.moderate(paid_ad.ad_id, "approve", "x" * 501)


def test_live_claim_blocks_second_moderator(moderation, store, payments, clock, paid_ad) -> None:
    store.hold_claim(paid_ad.ad_id, "other-operator", clock.now)

    with pytest.raises(PreconditionError) as exc:
        moderation.moderate(paid_ad.ad_id, "reject")

    assert "another operator" in str(exc.value)
    assert payments.refunds == []
    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.PENDING


def test_stale_claim_can_be_taken_over(moderation, store, clock, paid_ad) -> None:
    store.hold_claim(paid_ad.ad_id, "crashed-operator", clock.now - timedelta(seconds=301))

    assert moderation.moderate(paid_ad.ad_id, "approve").status == AdStatus.APPROVED


def test_ad_without_payment_reference_is_not_rejected(moderation, store, paid_ad) -> None:
    store.put(replace(paid_ad, payment_reference=None))

    with pytest.raises(PreconditionError):
        moderation.moderate(paid_ad.ad_id, "reject")

    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.PENDING
    assert store.claim_of(paid_ad.ad_id) is None


def test_notification_failure_does_not_revert(moderation, store, notifier, paid_ad) -> None:
    notifier.fail = True

    assert moderation.moderate(paid_ad.ad_id, "approve").status == AdStatus.APPROVED
    assert store.get_by_id(paid_ad.ad_id).status == AdStatus.APPROVED


def test_concurrent_approve_and_reject_have_one_winner(store, payments, notifier, paid_ad) -> None:
    service = ModerationService(store, payments, notifier, site_url="https://www.postbudgetads.com")
    barrier = threading.Barrier(2)
    results = {}

    def run(action: str) -> None:
        barrier.wait()
        try:
            results[action] = service.moderate(paid_ad.ad_id, action).status
        except PreconditionError as e:
            results[action] = e

    threads = [threading.Thread(target=run, args=(a,)) for a in ("approve", "reject")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [a for a, r in results.items() if isinstance(r, AdStatus)]
    assert len(winners) == 1

    final = store.get_by_id(paid_ad.ad_id).status
    if winners == ["approve"]:
        assert final == AdStatus.APPROVED
        assert payments.refunds == []
    else:
        assert final == AdStatus.REJECTED
        assert len(payments.refunds) == 1


def test_takeover_during_refund_cannot_approve(moderation, store, payments, clock, paid_ad) -> None:
    # The first operator's refund call outlives its claim; a second operator
    # takes over and tries to approve while the refund is in flight.
    issue_refund = payments.refund
    takeover = {}

    def slow_refund(*args, **kwargs):
        clock.advance(seconds=301)
        try:
            takeover["approve"] = moderation.moderate(paid_ad.ad_id, "approve")
        except PreconditionError as e:
            takeover["approve"] = e
        return issue_refund(*args, **kwargs)

    payments.refund = slow_refund

    with pytest.raises(PreconditionError) as exc:
        moderation.moderate(paid_ad.ad_id, "reject")

    assert "retry the rejection" in str(exc.value)
    assert isinstance(takeover["approve"], PreconditionError)
    stored = store.get_by_id(paid_ad.ad_id)
    assert stored.status == AdStatus.PENDING
    assert stored.refund_requested_at is not None
    assert len(payments.refunds) == 1

    payments.refund = issue_refund
    assert moderation.moderate(paid_ad.ad_id, "reject").status == AdStatus.REJECTED
    assert len(payments.refunds) == 1


def test_approval_won_before_refund_marker_means_no_refund(moderation, store, payments, clock, paid_ad) -> None:
    mark = store.mark_refund_requested

    def approve_first(ad_id, token, *, at):
        clock.advance(seconds=301)
        moderation.moderate(paid_ad.ad_id, "approve")
        return mark(ad_id, token, at=at)

    store.mark_refund_requested = approve_first

    with pytest.raises(PreconditionError):
        moderation.moderate(paid_ad.ad_id, "reject")

    stored = store.get_by_id(paid_ad.ad_id)
    assert stored.status == AdStatus.APPROVED
    assert stored.refund_requested_at is None
    assert payments.refunds == []
