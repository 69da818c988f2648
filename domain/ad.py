"""
Domain: classified ad submissions and their lifecycle.

Lifecycle (the only legal edges):

    pending_payment -> pending -> approved
                               -> rejected

- pending_payment: created at checkout; invisible to everyone. May stay here
  forever when the checkout is abandoned.
- pending: payment confirmed by the gateway; visible to moderators only.
- approved: terminal; visible to readers of any targeted county.
- rejected: terminal; the full total has been refunded.

Records are immutable values. A status change produces a new AdRecord; the
record store applies it as a conditional update on the prior status.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
from uuid import UUID

from .errors import PreconditionError
from .locations import GeoLocation, is_valid_location
from .time import require_utc_timestamp

MAX_CONTENT_LENGTH: int = 140

# Same acceptance rule as the posting form: something@something.tld, no spaces.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AdStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdCategory(str, Enum):
    FOR_SALE = "FOR SALE"
    SERVICE = "SERVICE"
    WANTED = "WANTED"
    COMMUNITY = "COMMUNITY"
    FARM = "FARM"
    LOST = "LOST"
    HELP_WANTED = "HELP WANTED"
    FREE = "FREE"
    EVENT = "EVENT"
    OTHER = "OTHER"


class AttachmentKind(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


class ModerationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


ALLOWED_TRANSITIONS: Mapping[AdStatus, Tuple[AdStatus, ...]] = {
    AdStatus.PENDING_PAYMENT: (AdStatus.PENDING,),
    AdStatus.PENDING: (AdStatus.APPROVED, AdStatus.REJECTED),
    AdStatus.APPROVED: (),
    AdStatus.REJECTED: (),
}


def can_transition(current: AdStatus, target: AdStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def require_transition(current: AdStatus, target: AdStatus) -> None:
    """Raise PreconditionError unless current -> target is a lifecycle edge."""

    if not can_transition(current, target):
        raise PreconditionError(
            f"Ad cannot move from {current.value} to {target.value}"
        )


@dataclass(frozen=True, slots=True)
class Attachment:
    url: str
    kind: AttachmentKind

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "kind": self.kind.value}


@dataclass(frozen=True, slots=True)
class AdDraft:
    """
    A poster's submission before anything is persisted.

    Fields are kept as received (category is a raw string) so that
    validate_draft can report every problem at once.
    """

    locations: Tuple[GeoLocation, ...]
    category: str
    content: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    attachment: Optional[Attachment] = None


@dataclass(frozen=True, slots=True)
class AdRecord:
    """
    Durable state of one ad submission.

    Amounts are integer cents. payment_reference is the gateway's payment
    intent id, set when payment is confirmed; checkout_session_id is the
    hosted checkout the poster was sent to. refund_requested_at is set, under
    the moderation claim, before a refund is sent; from then on the ad can
    only be rejected.
    """

    ad_id: UUID
    content: str
    category: AdCategory
    locations: Tuple[GeoLocation, ...]
    email: str
    status: AdStatus
    subtotal: int
    tax: int
    total: int
    created_at: datetime
    phone: Optional[str] = None
    address: Optional[str] = None
    attachment: Optional[Attachment] = None
    checkout_session_id: Optional[str] = None
    payment_reference: Optional[str] = None
    moderation_comment: Optional[str] = None
    refund_requested_at: Optional[datetime] = None
    updated_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if not self.locations:
            raise ValueError("locations must not be empty")
        if self.total != self.subtotal + self.tax:
            raise ValueError("total must equal subtotal + tax")
        require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)
        if self.refund_requested_at is not None:
            require_utc_timestamp("refund_requested_at", self.refund_requested_at)

    @property
    def county_count(self) -> int:
        return len(self.locations)

    def targets(self, location: GeoLocation) -> bool:
        return location in self.locations

    def transitioned(self, target: AdStatus, *, at: datetime, **changes: Any) -> "AdRecord":
        """Return a copy moved to `target`, enforcing the lifecycle edges."""

        require_transition(self.status, target)
        require_utc_timestamp("at", at)
        return replace(self, status=target, updated_at=at, **changes)


def validate_draft(draft: AdDraft) -> Dict[str, str]:
    """
    Check every field of a draft and return field -> message for each problem.

    An empty dict means the draft is acceptable. This function has no side
    effects and never raises for bad input.
    """

    errors: Dict[str, str] = {}

    if not draft.locations:
        errors["locations"] = "Please select at least one location"
    else:
        invalid = [
            loc.label for loc in draft.locations
            if not is_valid_location(loc.state, loc.county)
        ]
        if invalid:
            errors["locations"] = f"Unknown location(s): {'; '.join(invalid)}"

    valid_categories = {c.value for c in AdCategory}
    if not draft.category:
        errors["category"] = "Please select a category"
    elif draft.category not in valid_categories:
        errors["category"] = f"Unknown category: {draft.category}"

    if not draft.content or not draft.content.strip():
        errors["content"] = "Please enter ad content"
    elif len(draft.content) > MAX_CONTENT_LENGTH:
        errors["content"] = f"Content must be {MAX_CONTENT_LENGTH} characters or less"

    if not draft.email or not draft.email.strip():
        errors["email"] = "Email address is required"
    elif not EMAIL_PATTERN.match(draft.email.strip()):
        errors["email"] = "Please enter a valid email address"

    if draft.phone:
        digits = re.sub(r"\D", "", draft.phone)
        if not 7 <= len(digits) <= 15:
            errors["phone"] = "Please enter a valid phone number"

    if draft.attachment is not None:
        if not draft.attachment.url.lower().startswith(("http://", "https://")):
            errors["attachment"] = "Attachment URL must be http(s)"

    return errors


__all__ = [
    "MAX_CONTENT_LENGTH",
    "AdStatus",
    "AdCategory",
    "AttachmentKind",
    "ModerationAction",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "require_transition",
    "Attachment",
    "AdDraft",
    "AdRecord",
    "validate_draft",
]
