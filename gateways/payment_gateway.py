"""
Stripe payment gateway.

Wraps the three Stripe capabilities the ad lifecycle needs:
- hosted Checkout sessions (one line item per targeted county)
- refunds against a payment intent, keyed by an idempotency key
- webhook signature verification over the raw request body

Stripe's own exceptions never leave this module; they are re-raised as
GatewayError (or SignatureVerificationError) with the original chained.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

import stripe

from domain.errors import GatewayError, SignatureVerificationError
from domain.pricing import CURRENCY
from gateways.base import (
    CHECKOUT_COMPLETED,
    CHECKOUT_EXPIRED,
    CheckoutSession,
    GatewayEvent,
    LineItem,
    RefundReceipt,
)

logger = logging.getLogger(__name__)

# Stripe event type -> lifecycle event kind.
_EVENT_KINDS: Dict[str, str] = {
    "checkout.session.completed": CHECKOUT_COMPLETED,
    "checkout.session.expired": CHECKOUT_EXPIRED,
}

# Maximum age of a signed webhook, matching Stripe's library default.
WEBHOOK_TOLERANCE_SECONDS: int = 300


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _event_from_payload(data: Mapping[str, Any]) -> GatewayEvent:
    """Normalise a decoded Stripe event into a GatewayEvent."""

    event_type = str(data.get("type", ""))
    obj = (data.get("data") or {}).get("object") or {}

    payment_intent = obj.get("payment_intent")
    if isinstance(payment_intent, Mapping):
        payment_intent = payment_intent.get("id")

    customer_email = obj.get("customer_email") or (obj.get("customer_details") or {}).get("email")

    return GatewayEvent(
        event_id=str(data.get("id", "")),
        kind=_EVENT_KINDS.get(event_type, event_type),
        session_id=obj.get("id"),
        payment_reference=payment_intent,
        customer_email=customer_email,
        amount_subtotal=_optional_int(obj.get("amount_subtotal")),
        amount_tax=_optional_int((obj.get("total_details") or {}).get("amount_tax")),
        amount_total=_optional_int(obj.get("amount_total")),
        metadata={str(k): str(v) for k, v in (obj.get("metadata") or {}).items()},
    )


class StripePaymentGateway:
    """PaymentGateway backed by the Stripe API."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        *,
        timeout_seconds: float = 10.0,
        currency: str = CURRENCY,
    ) -> None:
        client = stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout_seconds),
            max_network_retries=0,
        )
        # Newer clients group the v1 API under `.v1`.
        self._api = getattr(client, "v1", client)
        self._webhook_secret = webhook_secret
        self._currency = currency

    def create_checkout_session(
        self,
        line_items: List[LineItem],
        success_url: str,
        cancel_url: str,
        customer_email: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        """Create a hosted Checkout session in payment mode."""

        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self._currency,
                        "product_data": {"name": item.name, "description": item.description},
                        "unit_amount": item.unit_amount,
                    },
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "customer_email": customer_email,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
        }

        try:
            session = self._api.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            logger.error("Stripe session creation failed: %s", e)
            raise GatewayError(f"Failed to create checkout session: {e}") from e

        if not session.url:
            raise GatewayError(f"Checkout session {session.id} has no redirect URL")

        return CheckoutSession(session_id=session.id, url=session.url)

    def refund(
        self, payment_reference: str, amount: int, reason: str, idempotency_key: str
    ) -> RefundReceipt:
        """
        Refund `amount` cents of a payment intent.

        Repeating a call with the same idempotency_key returns the first
        refund instead of issuing a second one.
        """

        try:
            refund = self._api.refunds.create(
                params={"payment_intent": payment_reference, "amount": amount, "reason": reason},
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as e:
            logger.error("Stripe refund failed for %s: %s", payment_reference, e)
            raise GatewayError(f"Failed to refund payment {payment_reference}: {e}") from e

        if refund.status in ("failed", "canceled"):
            raise GatewayError(f"Refund {refund.id} was not accepted (status: {refund.status})")

        return RefundReceipt(refund_id=refund.id, status=str(refund.status), amount=refund.amount)

    def parse_event(self, payload: bytes, signature: str) -> GatewayEvent:
        """
        Verify a webhook delivery and decode it.

        The signature is checked against the raw body exactly as received;
        the JSON is only parsed once the signature holds.
        """

        if not signature:
            raise SignatureVerificationError("Missing Stripe-Signature header")

        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                text, signature, self._webhook_secret, WEBHOOK_TOLERANCE_SECONDS
            )
        except (UnicodeDecodeError, stripe.SignatureVerificationError) as e:
            raise SignatureVerificationError(f"Webhook signature verification failed: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SignatureVerificationError(f"Signed webhook payload is not valid JSON: {e}") from e

        if not isinstance(data, Mapping):
            raise SignatureVerificationError("Signed webhook payload is not a JSON object")

        return _event_from_payload(data)


__all__ = ["StripePaymentGateway", "WEBHOOK_TOLERANCE_SECONDS"]
