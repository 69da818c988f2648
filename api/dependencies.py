"""
FastAPI dependency injection.

Provides settings, the record store, the payment and email gateways, the
lifecycle services built from them, and operator authentication. Tests
replace the collaborators through `app.dependency_overrides`.
"""

import hmac
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from config.settings import Settings, load_settings
from gateways.base import NotificationGateway, PaymentGateway
from gateways.email_gateway import SesNotificationGateway
from gateways.payment_gateway import StripePaymentGateway
from repositories.ad_repository import SupabaseAdRepository
from repositories.base import AdStore
from repositories.client import create_supabase_client
from services.checkout_service import CheckoutOrchestrator
from services.moderation_service import ModerationService
from services.webhook_service import PaymentWebhookHandler


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def _ad_store(settings: Settings) -> SupabaseAdRepository:
    return SupabaseAdRepository(create_supabase_client(settings))


@lru_cache
def _payment_gateway(settings: Settings) -> StripePaymentGateway:
    return StripePaymentGateway(
        settings.stripe_secret_key,
        settings.stripe_webhook_secret,
        timeout_seconds=settings.gateway_timeout_seconds,
    )


@lru_cache
def _notification_gateway(settings: Settings) -> SesNotificationGateway:
    return SesNotificationGateway(
        settings.ses_sender_email,
        region=settings.aws_region,
        timeout_seconds=settings.gateway_timeout_seconds,
    )


def get_ad_store(settings: Settings = Depends(get_settings)) -> AdStore:
    return _ad_store(settings)


def get_payment_gateway(settings: Settings = Depends(get_settings)) -> PaymentGateway:
    return _payment_gateway(settings)


def get_notification_gateway(settings: Settings = Depends(get_settings)) -> NotificationGateway:
    return _notification_gateway(settings)


def get_checkout_orchestrator(
    settings: Settings = Depends(get_settings),
    store: AdStore = Depends(get_ad_store),
    payments: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(store, payments, site_url=settings.public_site_url)


def get_webhook_handler(
    store: AdStore = Depends(get_ad_store),
    payments: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationGateway = Depends(get_notification_gateway),
) -> PaymentWebhookHandler:
    return PaymentWebhookHandler(store, payments, notifier)


def get_moderation_service(
    settings: Settings = Depends(get_settings),
    store: AdStore = Depends(get_ad_store),
    payments: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationGateway = Depends(get_notification_gateway),
) -> ModerationService:
    return ModerationService(
        store,
        payments,
        notifier,
        site_url=settings.public_site_url,
        claim_ttl_seconds=settings.moderation_claim_ttl_seconds,
    )


async def verify_admin_token(
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Verify the operator token.

    If ADMIN_API_TOKEN is not set, every operator request is refused.
    """
    expected = settings.admin_api_token
    if not expected or x_admin_token is None or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token",
        )
