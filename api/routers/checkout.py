"""
Checkout API Endpoints.

Endpoint for starting the paid submission of a new ad.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_checkout_orchestrator
from api.models import CheckoutRequest, CheckoutResponse, PricingResponse
from services.checkout_service import CheckoutOrchestrator

router = APIRouter()


@router.post(
    "/checkout-sessions",
    response_model=CheckoutResponse,
    summary="Start Checkout",
    description="Create a pending ad and a hosted payment session for it."
)
def create_checkout_session(
    request: CheckoutRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_checkout_orchestrator),
):
    """
    Start checkout for a new ad.

    **Process:**
    1. Validates every field (422 with `field_errors` if anything is wrong)
    2. Prices the ad per targeted county
    3. Stores the ad as `pending_payment`
    4. Opens a hosted checkout session and returns its `url`

    The ad enters moderation only once the payment gateway confirms payment.
    """
    result = orchestrator.start_checkout(request.to_draft())

    return CheckoutResponse(
        ad_id=result.ad_id,
        session_id=result.session_id,
        url=result.url,
        pricing=PricingResponse.from_pricing(result.pricing),
    )
