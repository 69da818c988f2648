"""
Record store interface.

Services depend on this protocol, not on Supabase, so the lifecycle can run
against any store that offers the same atomic guarantees:

- conditional_update and claim_for_moderation are single compare-and-set
  operations keyed on the expected prior status. They never read, decide in
  Python, then write.
- A `None` return means the precondition did not hold and nothing changed.
- Transport or database failures raise RecordStoreError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Protocol
from uuid import UUID

from domain.ad import AdRecord, AdStatus
from domain.locations import GeoLocation


class AdStore(Protocol):
    def insert(self, record: AdRecord) -> AdRecord:
        ...

    def get_by_id(self, ad_id: UUID) -> Optional[AdRecord]:
        ...

    def conditional_update(
        self,
        ad_id: UUID,
        expected_status: AdStatus,
        patch: Mapping[str, Any],
        *,
        claim_token: Optional[str] = None,
        require_no_refund: bool = False,
    ) -> Optional[AdRecord]:
        ...

    def query_by_status(self, status: AdStatus) -> List[AdRecord]:
        ...

    def query_by_location(self, location: GeoLocation) -> List[AdRecord]:
        ...

    def claim_for_moderation(
        self, ad_id: UUID, token: str, *, now: datetime, stale_before: datetime
    ) -> Optional[AdRecord]:
        ...

    def mark_refund_requested(self, ad_id: UUID, token: str, *, at: datetime) -> Optional[AdRecord]:
        ...

    def release_claim(self, ad_id: UUID, token: str) -> bool:
        ...

    def list_abandoned(self, older_than: datetime) -> List[AdRecord]:
        ...

    def delete_abandoned(self, ad_id: UUID, older_than: datetime) -> bool:
        ...


__all__ = ["AdStore"]
