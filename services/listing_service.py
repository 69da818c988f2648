"""
Public listing of live ads for one county.
"""

from __future__ import annotations

from typing import List

from domain.ad import AdRecord, AdStatus
from domain.errors import ValidationError
from domain.locations import GeoLocation, is_valid_location
from repositories.base import AdStore


def list_approved_ads(store: AdStore, state: str, county: str) -> List[AdRecord]:
    """
    Approved ads targeting (county, state), newest first.

    Raises:
        ValidationError: the pair is not on the reference list
    """
    if not is_valid_location(state, county):
        raise ValidationError({"location": f"Unknown location: {county}, {state}"})

    location = GeoLocation(county=county, state=state)
    # Filter again locally: only approved ads are ever public.
    return [
        ad for ad in store.query_by_location(location)
        if ad.status == AdStatus.APPROVED and ad.targets(location)
    ]


__all__ = ["list_approved_ads"]
