"""
External collaborator interfaces and the values they exchange.

PaymentGateway: hosted checkout, refunds, signed inbound events.
NotificationGateway: transactional email.

Implementations must bound every network call with a timeout and must not
retry internally; a failed or timed-out call raises once (GatewayError or
NotificationError) and the caller decides what happens next.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

CHECKOUT_COMPLETED: str = "checkout.completed"
CHECKOUT_EXPIRED: str = "checkout.expired"


@dataclass(frozen=True, slots=True)
class LineItem:
    name: str
    description: str
    unit_amount: int  # cents
    quantity: int = 1


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True, slots=True)
class RefundReceipt:
    refund_id: str
    status: str
    amount: Optional[int] = None


@dataclass(frozen=True, slots=True)
class GatewayEvent:
    """
    A verified inbound payment event, normalised away from the gateway's
    own naming. `kind` is CHECKOUT_COMPLETED, CHECKOUT_EXPIRED, or the
    gateway's raw event type for anything else.
    """

    event_id: str
    kind: str
    session_id: Optional[str] = None
    payment_reference: Optional[str] = None
    customer_email: Optional[str] = None
    amount_subtotal: Optional[int] = None
    amount_tax: Optional[int] = None
    amount_total: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)


class PaymentGateway(Protocol):
    def create_checkout_session(
        self,
        line_items: List[LineItem],
        success_url: str,
        cancel_url: str,
        customer_email: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        ...

    def refund(
        self, payment_reference: str, amount: int, reason: str, idempotency_key: str
    ) -> RefundReceipt:
        ...

    def parse_event(self, payload: bytes, signature: str) -> GatewayEvent:
        ...


class NotificationGateway(Protocol):
    def send(self, to_address: str, subject: str, html_body: str, text_body: str) -> None:
        ...


__all__ = [
    "CHECKOUT_COMPLETED",
    "CHECKOUT_EXPIRED",
    "LineItem",
    "CheckoutSession",
    "RefundReceipt",
    "GatewayEvent",
    "PaymentGateway",
    "NotificationGateway",
]
