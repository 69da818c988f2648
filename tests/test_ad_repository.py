"""
Tests for `repositories/ad_repository.py`.

The Supabase client is replaced with a recording query builder so the
filters each operation sends can be asserted without a database.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, List, Optional, Tuple
from uuid import UUID

import pytest
from postgrest.exceptions import APIError

from domain.ad import AdCategory, AdRecord, AdStatus, Attachment, AttachmentKind
from domain.errors import RecordStoreError
from domain.locations import GeoLocation
from repositories.ad_repository import SupabaseAdRepository, _patch_to_row, _record_to_row, _row_to_record

AD_ID = UUID("00000000-0000-0000-0000-0000000000aa")
CREATED = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(**overrides) -> AdRecord:
    fields = {
        "ad_id": AD_ID,
        "content": "Bike for sale",
        "category": AdCategory.FOR_SALE,
        "locations": (GeoLocation(county="Montgomery", state="Maryland"),),
        "email": "a@b.com",
        "status": AdStatus.PENDING,
        "subtotal": 500,
        "tax": 31,
        "total": 531,
        "created_at": CREATED,
        "payment_reference": "pi_1",
        "attachment": Attachment(url="https://cdn.example.com/a.png", kind=AttachmentKind.IMAGE),
    }
    fields.update(overrides)
    return AdRecord(**fields)


class RecordingQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, client: "RecordingClient") -> None:
        self._client = client

    def __getattr__(self, name: str):
        def method(*args: Any, **kwargs: Any) -> "RecordingQuery":
            self._client.calls.append((name, args))
            return self
        return method

    def execute(self) -> SimpleNamespace:
        if self._client.raise_error is not None:
            raise self._client.raise_error
        return SimpleNamespace(data=self._client.rows, error=None)


class RecordingClient:
    def __init__(self, rows: Optional[List[dict]] = None) -> None:
        self.rows = rows or []
        self.calls: List[Tuple[str, tuple]] = []
        self.raise_error: Optional[Exception] = None

    def table(self, name: str) -> RecordingQuery:
        self.calls.append(("table", (name,)))
        return RecordingQuery(self)


def test_row_mapping_uses_column_names() -> None:
    row = _record_to_row(_record())

    assert row["id"] == str(AD_ID)
    assert row["total_amount"] == 531
    assert row["payment_intent_id"] == "pi_1"
    assert row["locations"] == [{"county": "Montgomery", "state": "Maryland"}]
    assert row["attachment_url"] == "https://cdn.example.com/a.png"
    assert row["created_at"] == "2025-06-01T12:00:00+00:00"
    assert _row_to_record({**row, "created_at": "2025-06-01T12:00:00Z"}) == _record()


def test_patch_mapping() -> None:
    row = _patch_to_row({
        "status": AdStatus.APPROVED,
        "moderation_comment": "ok",
        "updated_at": CREATED,
        "total": 531,
    })

    assert row == {
        "status": "approved",
        "admin_comment": "ok",
        "updated_at": "2025-06-01T12:00:00+00:00",
        "total_amount": 531,
    }


def test_conditional_update_filters_on_expected_status() -> None:
    client = RecordingClient(rows=[_record_to_row(_record(status=AdStatus.APPROVED))])
    repo = SupabaseAdRepository(client)

    updated = repo.conditional_update(AD_ID, AdStatus.PENDING, {"status": AdStatus.APPROVED}, claim_token="tok")

    assert updated.status == AdStatus.APPROVED
    assert ("eq", ("id", str(AD_ID))) in client.calls
    assert ("eq", ("status", "pending")) in client.calls
    assert ("eq", ("review_claim", "tok")) in client.calls
    (update_call,) = [args for name, args in client.calls if name == "update"]
    assert update_call[0] == {"status": "approved", "review_claim": None, "review_claimed_at": None}


def test_conditional_update_returns_none_when_no_row_matched() -> None:
    repo = SupabaseAdRepository(RecordingClient(rows=[]))

    assert repo.conditional_update(AD_ID, AdStatus.PENDING_PAYMENT, {"status": AdStatus.PENDING}) is None


def test_claim_accepts_unclaimed_or_stale() -> None:
    client = RecordingClient(rows=[_record_to_row(_record())])
    repo = SupabaseAdRepository(client)
    now = datetime(2025, 6, 1, 12, 5, 0, 123456, tzinfo=timezone.utc)

    repo.claim_for_moderation(AD_ID, "tok", now=now, stale_before=CREATED)

    assert ("or_", ("review_claim.is.null,review_claimed_at.lt.2025-06-01T12:00:00+00:00",)) in client.calls
    (update_call,) = [args for name, args in client.calls if name == "update"]
    assert update_call[0] == {"review_claim": "tok", "review_claimed_at": "2025-06-01T12:05:00+00:00"}



def test_approval_update_requires_no_refund_request() -> None:
    client = RecordingClient(rows=[])
    repo = SupabaseAdRepository(client)

    updated = repo.conditional_update(
        AD_ID, AdStatus.PENDING, {"status": AdStatus.APPROVED}, claim_token="tok", require_no_refund=True
    )

    assert updated is None
    assert ("is_", ("refund_requested_at", "null")) in client.calls


def test_refund_request_is_stamped_under_the_claim() -> None:
    marked_at = datetime(2025, 6, 1, 12, 1, 0, tzinfo=timezone.utc)
    client = RecordingClient(rows=[_record_to_row(_record(refund_requested_at=marked_at))])
    repo = SupabaseAdRepository(client)

    marked = repo.mark_refund_requested(AD_ID, "tok", at=marked_at)

    assert marked.refund_requested_at == marked_at
    assert ("eq", ("status", "pending")) in client.calls
    assert ("eq", ("review_claim", "tok")) in client.calls
    (update_call,) = [args for name, args in client.calls if name == "update"]
    assert update_call[0] == {"refund_requested_at": "2025-06-01T12:01:00+00:00"}

def test_api_error_becomes_record_store_error() -> None:
    client = RecordingClient()
    client.raise_error = APIError({"message": "connection refused", "code": "500"})
    repo = SupabaseAdRepository(client)

    with pytest.raises(RecordStoreError):
        repo.get_by_id(AD_ID)
