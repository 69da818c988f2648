"""
Pytest configuration and shared fixtures.

Adds the project root (and this directory, for `fakes`) to the Python path
so tests can import domain, services, gateways, etc.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from domain.ad import AdDraft
from domain.locations import GeoLocation
from fakes import FakeNotificationGateway, FakePaymentGateway, InMemoryAdStore, completed_event, sign_payload
from services.checkout_service import CheckoutOrchestrator
from services.moderation_service import ModerationService
from services.webhook_service import PaymentWebhookHandler

SITE_URL = "https://www.postbudgetads.com"


class FixedClock:
    """Deterministic UTC clock; advance() moves it forward."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryAdStore:
    return InMemoryAdStore()


@pytest.fixture
def payments() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def notifier() -> FakeNotificationGateway:
    return FakeNotificationGateway()


@pytest.fixture
def orchestrator(store, payments, clock) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(store, payments, site_url=SITE_URL, clock=clock)


@pytest.fixture
def webhook_handler(store, payments, notifier, clock) -> PaymentWebhookHandler:
    return PaymentWebhookHandler(store, payments, notifier, clock=clock)


@pytest.fixture
def moderation(store, payments, notifier, clock) -> ModerationService:
    return ModerationService(store, payments, notifier, site_url=SITE_URL, clock=clock)


def make_draft(**overrides) -> AdDraft:
    fields = {
        "locations": (
            GeoLocation(county="Montgomery", state="Maryland"),
            GeoLocation(county="Howard", state="Maryland"),
        ),
        "category": "FOR SALE",
        "content": "Bike for sale, $50",
        "email": "a@b.com",
    }
    fields.update(overrides)
    return AdDraft(**fields)


@pytest.fixture
def draft() -> AdDraft:
    return make_draft()


@pytest.fixture
def paid_ad(orchestrator, webhook_handler, store):
    """An ad whose payment has been confirmed (status pending, payment pi_test_1)."""

    result = orchestrator.start_checkout(make_draft())
    payload = completed_event(result.ad_id, amount_total=result.pricing.total)
    webhook_handler.handle(payload, sign_payload(payload))
    return store.get_by_id(result.ad_id)
