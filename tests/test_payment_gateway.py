"""
Tests for `gateways/payment_gateway.py` webhook verification.

Signatures are produced with the same HMAC-SHA256 scheme Stripe uses and
checked by the real stripe library; no network calls are made.
"""

from __future__ import annotations

import time

import pytest

from domain.errors import SignatureVerificationError
from fakes import WEBHOOK_SECRET, sign_payload, stripe_event
from gateways.base import CHECKOUT_COMPLETED, CHECKOUT_EXPIRED
from gateways.payment_gateway import WEBHOOK_TOLERANCE_SECONDS, StripePaymentGateway


@pytest.fixture
def gateway() -> StripePaymentGateway:
    return StripePaymentGateway("sk_test_unused", WEBHOOK_SECRET)


def test_parse_completed_event(gateway) -> None:
    payload = stripe_event(
        "checkout.session.completed",
        event_id="evt_123",
        session_id="cs_test_abc",
        metadata={"ad_id": "11111111-1111-1111-1111-111111111111"},
        payment_intent="pi_abc",
        amount_subtotal=1063,
        amount_total=1063,
    )

    event = gateway.parse_event(payload, sign_payload(payload))

    assert event.event_id == "evt_123"
    assert event.kind == CHECKOUT_COMPLETED
    assert event.session_id == "cs_test_abc"
    assert event.payment_reference == "pi_abc"
    assert event.amount_total == 1063
    assert event.customer_email == "a@b.com"
    assert event.metadata == {"ad_id": "11111111-1111-1111-1111-111111111111"}


def test_expanded_payment_intent_is_reduced_to_its_id(gateway) -> None:
    payload = stripe_event("checkout.session.completed", payment_intent={"id": "pi_expanded", "object": "payment_intent"})

    event = gateway.parse_event(payload, sign_payload(payload))

    assert event.payment_reference == "pi_expanded"


def test_expired_and_unknown_kinds(gateway) -> None:
    expired = stripe_event("checkout.session.expired")
    other = stripe_event("charge.refunded")

    assert gateway.parse_event(expired, sign_payload(expired)).kind == CHECKOUT_EXPIRED
    assert gateway.parse_event(other, sign_payload(other)).kind == "charge.refunded"


def test_wrong_secret_fails(gateway) -> None:
    payload = stripe_event("checkout.session.completed")

    with pytest.raises(SignatureVerificationError):
        gateway.parse_event(payload, sign_payload(payload, secret="whsec_other"))


def test_modified_body_fails(gateway) -> None:
    payload = stripe_event("checkout.session.completed", amount_total=1063)
    header = sign_payload(payload)

    with pytest.raises(SignatureVerificationError):
        gateway.parse_event(payload.replace(b"1063", b"1"), header)


def test_missing_or_garbled_header_fails(gateway) -> None:
    payload = stripe_event("checkout.session.completed")

    with pytest.raises(SignatureVerificationError):
        gateway.parse_event(payload, "")

    with pytest.raises(SignatureVerificationError):
        gateway.parse_event(payload, "not-a-signature")


def test_stale_signature_fails(gateway) -> None:
    payload = stripe_event("checkout.session.completed")
    old = int(time.time()) - WEBHOOK_TOLERANCE_SECONDS - 60

    with pytest.raises(SignatureVerificationError):
        gateway.parse_event(payload, sign_payload(payload, timestamp=old))


def test_signed_non_json_body_fails(gateway) -> None:
    payload = b"definitely not json"

    with pytest.raises(SignatureVerificationError):
        gateway.parse_event(payload, sign_payload(payload))
