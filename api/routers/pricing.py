"""
Pricing and Locations API Endpoints.

Endpoints for quoting an ad and browsing the county reference list.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Query

from api.models import PricingResponse
from domain.locations import all_states, counties_for_state
from domain.pricing import calculate_pricing

router = APIRouter()


@router.get(
    "/pricing",
    response_model=PricingResponse,
    summary="Quote Ad Price",
    description="Price an ad targeting the given number of counties ($5.00 each plus 6.25% sales tax)."
)
def quote_price(county_count: int = Query(..., description="Number of counties the ad targets")):
    """
    Calculate subtotal, tax and total for an ad.

    **Example:** `GET /api/v1/pricing?county_count=2` returns
    subtotal 1000, tax 63, total 1063 (cents).
    """
    return PricingResponse.from_pricing(calculate_pricing(county_count))


@router.get(
    "/locations/states",
    response_model=List[str],
    summary="List States",
)
def list_states():
    """States that have at least one county available for targeting."""
    return all_states()


@router.get(
    "/locations/states/{state}/counties",
    response_model=List[str],
    summary="List Counties",
)
def list_counties(state: str):
    """Counties of one state, in reference-list order."""
    counties = counties_for_state(state)
    if not counties:
        raise HTTPException(status_code=404, detail=f"Unknown state: {state}")
    return counties
