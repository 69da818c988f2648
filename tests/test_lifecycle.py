"""
End-to-end lifecycle through the services: checkout, payment, moderation.
"""

from __future__ import annotations

from conftest import make_draft
from domain.ad import AdStatus
from fakes import completed_event, sign_payload
from services.listing_service import list_approved_ads
from services.webhook_service import WebhookOutcome


def _submit_and_pay(orchestrator, webhook_handler, store):
    result = orchestrator.start_checkout(make_draft(content="Free firewood"))
    assert (result.pricing.subtotal, result.pricing.tax, result.pricing.total) == (1000, 63, 1063)
    assert store.get_by_id(result.ad_id).status == AdStatus.PENDING_PAYMENT

    payload = completed_event(result.ad_id, payment_intent="pi_firewood", amount_total=1063)
    assert webhook_handler.handle(payload, sign_payload(payload)) is WebhookOutcome.CONFIRMED

    record = store.get_by_id(result.ad_id)
    assert record.status == AdStatus.PENDING
    assert record.payment_reference == "pi_firewood"
    return record


def test_approve_path(orchestrator, webhook_handler, moderation, store, notifier) -> None:
    record = _submit_and_pay(orchestrator, webhook_handler, store)

    approved = moderation.moderate(record.ad_id, "approve")

    assert approved.status == AdStatus.APPROVED
    assert notifier.subjects()[-1] == "Your Ad is Live! - PostBudgetAds.com"
    assert [ad.ad_id for ad in list_approved_ads(store, "Maryland", "Montgomery")] == [record.ad_id]


def test_reject_path(orchestrator, webhook_handler, moderation, store, payments, notifier) -> None:
    record = _submit_and_pay(orchestrator, webhook_handler, store)

    rejected = moderation.moderate(record.ad_id, "reject", "spam")

    assert rejected.status == AdStatus.REJECTED
    assert rejected.moderation_comment == "spam"
    assert [(r["payment_reference"], r["amount"]) for r in payments.refunds] == [("pi_firewood", 1063)]
    assert "spam" in notifier.sent[-1]["text"]
    assert list_approved_ads(store, "Maryland", "Montgomery") == []
