"""
Tests for `services/checkout_service.py`.

Covers contract rules:
- The record is persisted as pending_payment before the gateway is called.
- The session carries the ad id as its only metadata.
- Invalid drafts and store failures never reach the gateway.
- A gateway failure leaves an abandoned pending_payment record behind.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

import pytest

from conftest import SITE_URL, make_draft
from domain.ad import AdStatus
from domain.errors import GatewayError, RecordStoreError, ValidationError
from domain.locations import GeoLocation
from services.checkout_service import AD_ID_METADATA_KEY, build_line_items


def test_start_checkout_persists_pending_payment_record(orchestrator, store, payments, clock) -> None:
    result = orchestrator.start_checkout(make_draft())

    record = store.get_by_id(result.ad_id)
    assert record is not None
    assert record.status == AdStatus.PENDING_PAYMENT
    assert (record.subtotal, record.tax, record.total) == (1000, 63, 1063)
    assert record.created_at == clock.now
    assert record.payment_reference is None
    assert record.checkout_session_id == result.session_id
    assert result.url.startswith("https://checkout.stripe.com/")


def test_session_metadata_is_only_the_ad_id(orchestrator, payments) -> None:
    result = orchestrator.start_checkout(make_draft())

    (session,) = payments.sessions
    assert session["metadata"] == {AD_ID_METADATA_KEY: str(result.ad_id)}
    assert session["customer_email"] == "a@b.com"
    assert session["success_url"] == f"{SITE_URL}?success=true&session_id={{CHECKOUT_SESSION_ID}}"
    assert session["cancel_url"] == f"{SITE_URL}?canceled=true"


def test_line_items_sum_to_total(orchestrator, payments, store) -> None:
    result = orchestrator.start_checkout(make_draft())

    items = payments.sessions[0]["line_items"]
    assert [item.name for item in items] == [
        "Ad Posting - Montgomery, Maryland",
        "Ad Posting - Howard, Maryland",
        "Sales Tax",
    ]
    assert sum(item.unit_amount * item.quantity for item in items) == result.pricing.total
    assert build_line_items(store.get_by_id(result.ad_id)) == items


def test_duplicate_locations_are_billed_once(orchestrator, store) -> None:
    montgomery = GeoLocation(county="Montgomery", state="Maryland")
    result = orchestrator.start_checkout(make_draft(locations=(montgomery, montgomery)))

    record = store.get_by_id(result.ad_id)
    assert record.locations == (montgomery,)
    assert result.pricing.total == 531


def test_invalid_draft_has_no_side_effects(orchestrator, store, payments) -> None:
    with pytest.raises(ValidationError) as exc:
        orchestrator.start_checkout(make_draft(email="nope", content=""))

    assert set(exc.value.field_errors) == {"email", "content"}
    assert len(store) == 0
    assert payments.sessions == []


def test_store_failure_skips_gateway(orchestrator, store, payments) -> None:
    store.fail_on.add("insert")

    with pytest.raises(RecordStoreError):
        orchestrator.start_checkout(make_draft())

    assert payments.sessions == []


def test_gateway_failure_leaves_orphan_record(orchestrator, store, payments, clock) -> None:
    payments.fail_checkout = True

    with pytest.raises(GatewayError):
        orchestrator.start_checkout(make_draft())

    (orphan,) = store.list_abandoned(clock.now + timedelta(seconds=1))
    assert orphan.status == AdStatus.PENDING_PAYMENT
    assert orphan.checkout_session_id is None


def test_session_id_store_failure_is_not_fatal(orchestrator, store) -> None:
    store.fail_on.add("conditional_update")

    result = orchestrator.start_checkout(make_draft())

    assert isinstance(result.ad_id, UUID)
    assert store.get_by_id(result.ad_id).checkout_session_id is None
