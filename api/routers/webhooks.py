"""
Payment Webhook Endpoint.

Receives signed Stripe events. The body is read raw and handed to the
handler untouched; signature verification happens on those exact bytes.
"""

from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_webhook_handler
from api.models import WebhookAck
from services.webhook_service import PaymentWebhookHandler

router = APIRouter()


@router.post(
    "/webhooks/stripe",
    response_model=WebhookAck,
    summary="Stripe Webhook",
    description="Signed payment events from Stripe. Returns 400 for bad signatures, 503 when storage fails."
)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
    handler: PaymentWebhookHandler = Depends(get_webhook_handler),
):
    payload = await request.body()
    # Store and email calls block; keep them off the event loop.
    outcome = await run_in_threadpool(handler.handle, payload, stripe_signature)
    return WebhookAck(received=True, outcome=outcome.value)
