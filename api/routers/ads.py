"""
Ads API Endpoints.

Public listing of live ads, plus the operator moderation queue.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_ad_store, get_moderation_service, verify_admin_token
from api.models import (
    AdminAdListResponse,
    AdminAdResponse,
    LocationModel,
    ModerationRequest,
    PublicAdListResponse,
    PublicAdResponse,
)
from repositories.base import AdStore
from services.listing_service import list_approved_ads
from services.moderation_service import ModerationService

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(verify_admin_token)])


@router.get(
    "/ads",
    response_model=PublicAdListResponse,
    summary="List Live Ads",
    description="Approved ads targeting one county, newest first."
)
def list_live_ads(
    state: str = Query(..., description="State name, e.g. 'Maryland'"),
    county: str = Query(..., description="County name, e.g. 'Montgomery'"),
    store: AdStore = Depends(get_ad_store),
):
    ads = list_approved_ads(store, state, county)
    return PublicAdListResponse(
        items=[PublicAdResponse.from_record(ad) for ad in ads],
        total_count=len(ads),
        location=LocationModel(county=county, state=state),
    )


@admin_router.get(
    "/admin/ads/pending",
    response_model=AdminAdListResponse,
    summary="List Pending Ads",
    description="Paid ads awaiting moderation. Requires X-Admin-Token."
)
def list_pending_ads(service: ModerationService = Depends(get_moderation_service)):
    ads = service.list_pending()
    return AdminAdListResponse(
        items=[AdminAdResponse.from_record(ad) for ad in ads],
        total_count=len(ads),
    )


@admin_router.post(
    "/admin/ads/{ad_id}/moderation",
    response_model=AdminAdResponse,
    summary="Moderate Ad",
    description="Approve or reject a pending ad. Rejection refunds the full amount first."
)
def moderate_ad(
    ad_id: UUID,
    request: ModerationRequest,
    service: ModerationService = Depends(get_moderation_service),
):
    """
    Approve or reject a pending ad.

    **Responses:**
    - 200: the updated ad
    - 404: no such ad
    - 409: the ad is not pending, or another operator is moderating it
    - 422: unknown action
    - 502: refund failed; the ad is still pending, retry the rejection
    """
    updated = service.moderate(ad_id, request.action, request.comment)
    return AdminAdResponse.from_record(updated)
