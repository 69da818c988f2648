"""
Ad repository (persistence).

This module provides *only* persistence operations for the AdRecord domain
entity over the Supabase `ads` table. It does not decide which transitions
are legal; callers pass the status they expect and the update only applies
when the row still has it.

Table layout (amounts are integer cents):
    id uuid primary key, content text, category text, locations jsonb
    ([{"county": ..., "state": ...}, ...] in targeting order), email text,
    phone text, address text, attachment_url text, attachment_kind text,
    status text, subtotal int, tax int, total_amount int,
    checkout_session_id text, payment_intent_id text, admin_comment text,
    review_claim text, review_claimed_at timestamptz, refund_requested_at timestamptz,
    created_at timestamptz, updated_at timestamptz
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

import httpx
from postgrest.exceptions import APIError

from domain.ad import AdCategory, AdRecord, AdStatus, Attachment, AttachmentKind
from domain.errors import RecordStoreError
from domain.locations import GeoLocation
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.client import Client

logger = logging.getLogger(__name__)

# Supabase table name for ad records.
# Keep this aligned with your database schema.
_ADS_TABLE: str = "ads"

# AdRecord field -> column, for fields whose names differ.
_COLUMN_NAMES: Dict[str, str] = {
    "ad_id": "id",
    "total": "total_amount",
    "payment_reference": "payment_intent_id",
    "moderation_comment": "admin_comment",
}


def _timestamp(dt: datetime) -> str:
    # Whole seconds keep the value free of '.' inside PostgREST filter strings.
    return to_iso_utc(dt.replace(microsecond=0), name="timestamp")


def _record_to_row(record: AdRecord) -> Dict[str, Any]:
    """Serialize an AdRecord into a Supabase row payload."""

    return {
        "id": str(record.ad_id),
        "content": record.content,
        "category": record.category.value,
        "locations": [loc.to_dict() for loc in record.locations],
        "email": record.email,
        "phone": record.phone,
        "address": record.address,
        "attachment_url": record.attachment.url if record.attachment else None,
        "attachment_kind": record.attachment.kind.value if record.attachment else None,
        "status": record.status.value,
        "subtotal": record.subtotal,
        "tax": record.tax,
        "total_amount": record.total,
        "checkout_session_id": record.checkout_session_id,
        "payment_intent_id": record.payment_reference,
        "admin_comment": record.moderation_comment,
        "refund_requested_at": (
            to_iso_utc(record.refund_requested_at, name="refund_requested_at")
            if record.refund_requested_at
            else None
        ),
        "created_at": to_iso_utc(record.created_at, name="created_at"),
        "updated_at": to_iso_utc(record.updated_at, name="updated_at") if record.updated_at else None,
    }


def _patch_to_row(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate an AdRecord field patch into column values."""

    row: Dict[str, Any] = {}
    for name, value in patch.items():
        if isinstance(value, (AdStatus, AdCategory)):
            value = value.value
        elif isinstance(value, datetime):
            value = to_iso_utc(value, name=name)
        elif name == "locations":
            value = [loc.to_dict() for loc in value]
        elif name == "attachment":
            row["attachment_url"] = value.url if value else None
            row["attachment_kind"] = value.kind.value if value else None
            continue
        row[_COLUMN_NAMES.get(name, name)] = value
    return row


def _row_to_record(row: Mapping[str, Any]) -> AdRecord:
    """Convert a Supabase row into an AdRecord."""

    attachment = None
    if row.get("attachment_url"):
        attachment = Attachment(
            url=str(row["attachment_url"]),
            kind=AttachmentKind(str(row.get("attachment_kind") or AttachmentKind.IMAGE.value)),
        )

    locations = row.get("locations") or []
    if isinstance(locations, str):
        locations = json.loads(locations)

    return AdRecord(
        ad_id=UUID(str(row["id"])),
        content=str(row["content"]),
        category=AdCategory(str(row["category"])),
        locations=tuple(GeoLocation(county=str(loc["county"]), state=str(loc["state"])) for loc in locations),
        email=str(row["email"]),
        status=AdStatus(str(row["status"])),
        subtotal=int(row["subtotal"]),
        tax=int(row["tax"]),
        total=int(row["total_amount"]),
        created_at=parse_utc_datetime(row["created_at"]),
        phone=row.get("phone") or None,
        address=row.get("address") or None,
        attachment=attachment,
        checkout_session_id=row.get("checkout_session_id"),
        payment_reference=row.get("payment_intent_id"),
        moderation_comment=row.get("admin_comment"),
        refund_requested_at=(
            parse_utc_datetime(row["refund_requested_at"]) if row.get("refund_requested_at") else None
        ),
        updated_at=parse_utc_datetime(row["updated_at"]) if row.get("updated_at") else None,
    )


class SupabaseAdRepository:
    """AdStore backed by the Supabase `ads` table."""

    def __init__(self, client: Client, table: str = _ADS_TABLE) -> None:
        self._client = client
        self._table = table

    def _execute(self, query: Any, action: str) -> List[Mapping[str, Any]]:
        try:
            response = query.execute()
        except (APIError, httpx.HTTPError) as e:
            raise RecordStoreError(f"Failed to {action}: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise RecordStoreError(f"Failed to {action}: {error}")

        return getattr(response, "data", None) or []

    def insert(self, record: AdRecord) -> AdRecord:
        """Insert a new ad row and return the stored record."""

        rows = self._execute(
            self._client.table(self._table).insert(_record_to_row(record)),
            "insert ad",
        )
        return _row_to_record(rows[0]) if rows else record

    def get_by_id(self, ad_id: UUID) -> Optional[AdRecord]:
        rows = self._execute(
            self._client.table(self._table).select("*").eq("id", str(ad_id)).limit(1),
            "fetch ad",
        )
        return _row_to_record(rows[0]) if rows else None

    def conditional_update(
        self,
        ad_id: UUID,
        expected_status: AdStatus,
        patch: Mapping[str, Any],
        *,
        claim_token: Optional[str] = None,
        require_no_refund: bool = False,
    ) -> Optional[AdRecord]:
        """
        Apply `patch` only if the row still has `expected_status`.

        With `claim_token`, the row must also hold that moderation claim, and
        the claim is cleared by the same update.
        With `require_no_refund`, the row must not carry a refund request.

        Returns:
            The updated record, or None when the precondition did not hold.
        """

        values = _patch_to_row(patch)
        if claim_token is not None:
            values["review_claim"] = None
            values["review_claimed_at"] = None

        query = self._client.table(self._table).update(values)
        query = query.eq("id", str(ad_id)).eq("status", expected_status.value)
        if claim_token is not None:
            query = query.eq("review_claim", claim_token)
        if require_no_refund:
            query = query.is_("refund_requested_at", "null")

        rows = self._execute(query, "update ad")
        return _row_to_record(rows[0]) if rows else None

    def query_by_status(self, status: AdStatus) -> List[AdRecord]:
        """All ads in `status`, newest first."""

        rows = self._execute(
            self._client.table(self._table)
            .select("*")
            .eq("status", status.value)
            .order("created_at", desc=True),
            "list ads by status",
        )
        return [_row_to_record(row) for row in rows]

    def query_by_location(self, location: GeoLocation) -> List[AdRecord]:
        """Approved ads whose locations include `location`, newest first."""

        rows = self._execute(
            self._client.table(self._table)
            .select("*")
            .eq("status", AdStatus.APPROVED.value)
            .filter("locations", "cs", json.dumps([location.to_dict()]))
            .order("created_at", desc=True),
            "list ads by location",
        )
        return [_row_to_record(row) for row in rows]

    def claim_for_moderation(
        self, ad_id: UUID, token: str, *, now: datetime, stale_before: datetime
    ) -> Optional[AdRecord]:
        """
        Take the moderation claim on a pending ad.

        Succeeds only when the ad is pending and unclaimed, or its claim was
        taken before `stale_before` (a moderator that crashed mid-action).
        """

        query = (
            self._client.table(self._table)
            .update({"review_claim": token, "review_claimed_at": _timestamp(now)})
            .eq("id", str(ad_id))
            .eq("status", AdStatus.PENDING.value)
            .or_(f"review_claim.is.null,review_claimed_at.lt.{_timestamp(stale_before)}")
        )
        rows = self._execute(query, "claim ad for moderation")
        return _row_to_record(rows[0]) if rows else None

    def mark_refund_requested(self, ad_id: UUID, token: str, *, at: datetime) -> Optional[AdRecord]:
        """Stamp the refund request on a pending ad while `token` still holds its claim."""

        rows = self._execute(
            self._client.table(self._table)
            .update({"refund_requested_at": to_iso_utc(at, name="at")})
            .eq("id", str(ad_id))
            .eq("status", AdStatus.PENDING.value)
            .eq("review_claim", token),
            "mark refund requested",
        )
        return _row_to_record(rows[0]) if rows else None

    def release_claim(self, ad_id: UUID, token: str) -> bool:
        rows = self._execute(
            self._client.table(self._table)
            .update({"review_claim": None, "review_claimed_at": None})
            .eq("id", str(ad_id))
            .eq("review_claim", token),
            "release moderation claim",
        )
        return bool(rows)

    def list_abandoned(self, older_than: datetime) -> List[AdRecord]:
        """pending_payment ads created before `older_than`, oldest first."""

        rows = self._execute(
            self._client.table(self._table)
            .select("*")
            .eq("status", AdStatus.PENDING_PAYMENT.value)
            .lt("created_at", _timestamp(older_than))
            .order("created_at"),
            "list abandoned checkouts",
        )
        return [_row_to_record(row) for row in rows]

    def delete_abandoned(self, ad_id: UUID, older_than: datetime) -> bool:
        """Delete one abandoned checkout if it is still pending_payment and old enough."""

        rows = self._execute(
            self._client.table(self._table)
            .delete()
            .eq("id", str(ad_id))
            .eq("status", AdStatus.PENDING_PAYMENT.value)
            .lt("created_at", _timestamp(older_than)),
            "delete abandoned checkout",
        )
        if rows:
            logger.info("Deleted abandoned checkout %s", ad_id)
        return bool(rows)


__all__ = ["SupabaseAdRepository"]
