"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Business validation (content length, email format, known counties) happens
in the domain layer so that every problem is reported as a field error map.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.ad import AdDraft, AdRecord, Attachment, AttachmentKind
from domain.locations import GeoLocation
from domain.pricing import CURRENCY, Pricing, format_cents


# ============================================================================
# Shared Models
# ============================================================================

class LocationModel(BaseModel):
    """A (county, state) targeting pair."""
    county: str
    state: str

    class Config:
        json_schema_extra = {
            "example": {"county": "Montgomery", "state": "Maryland"}
        }


class AttachmentModel(BaseModel):
    """Single optional attachment on an ad."""
    url: str
    kind: AttachmentKind = AttachmentKind.IMAGE


# ============================================================================
# Pricing Models
# ============================================================================

class PricingResponse(BaseModel):
    """Price breakdown in cents, with display strings."""
    county_count: int
    subtotal: int
    tax: int
    total: int
    currency: str = CURRENCY
    formatted: Dict[str, str]

    @classmethod
    def from_pricing(cls, pricing: Pricing) -> "PricingResponse":
        return cls(
            county_count=pricing.county_count,
            subtotal=pricing.subtotal,
            tax=pricing.tax,
            total=pricing.total,
            formatted={
                "subtotal": format_cents(pricing.subtotal),
                "tax": format_cents(pricing.tax),
                "total": format_cents(pricing.total),
            },
        )

    class Config:
        json_schema_extra = {
            "example": {
                "county_count": 2,
                "subtotal": 1000,
                "tax": 63,
                "total": 1063,
                "currency": "usd",
                "formatted": {"subtotal": "$10.00", "tax": "$0.63", "total": "$10.63"},
            }
        }


# ============================================================================
# Checkout Models
# ============================================================================

class CheckoutRequest(BaseModel):
    """Ad submission to be paid for."""
    locations: List[LocationModel] = Field(
        default_factory=list,
        description="Counties to post the ad in (billed per county)"
    )
    category: str = ""
    content: str = Field("", description="Ad text, 140 characters max")
    email: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
    attachment: Optional[AttachmentModel] = None

    def to_draft(self) -> AdDraft:
        return AdDraft(
            locations=tuple(GeoLocation(county=loc.county, state=loc.state) for loc in self.locations),
            category=self.category,
            content=self.content,
            email=self.email,
            phone=self.phone,
            address=self.address,
            attachment=(
                Attachment(url=self.attachment.url, kind=self.attachment.kind)
                if self.attachment else None
            ),
        )

    class Config:
        json_schema_extra = {
            "example": {
                "locations": [
                    {"county": "Montgomery", "state": "Maryland"},
                    {"county": "Howard", "state": "Maryland"}
                ],
                "category": "FOR SALE",
                "content": "Free firewood",
                "email": "a@b.com"
            }
        }


class CheckoutResponse(BaseModel):
    """Hosted checkout to redirect the poster to."""
    ad_id: UUID
    session_id: str
    url: str
    pricing: PricingResponse


# ============================================================================
# Ad Models
# ============================================================================

class PublicAdResponse(BaseModel):
    """Live ad as shown to readers."""
    ad_id: UUID
    category: str
    content: str
    contact_email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    attachment: Optional[AttachmentModel] = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: AdRecord) -> "PublicAdResponse":
        return cls(
            ad_id=record.ad_id,
            category=record.category.value,
            content=record.content,
            contact_email=record.email,
            phone=record.phone,
            address=record.address,
            attachment=(
                AttachmentModel(url=record.attachment.url, kind=record.attachment.kind)
                if record.attachment else None
            ),
            created_at=record.created_at,
        )


class PublicAdListResponse(BaseModel):
    """Live ads for one county."""
    items: List[PublicAdResponse]
    total_count: int
    location: LocationModel


class AdminAdResponse(BaseModel):
    """Full ad record as shown to moderators."""
    ad_id: UUID
    status: str
    category: str
    content: str
    locations: List[LocationModel]
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    attachment: Optional[AttachmentModel] = None
    subtotal: int
    tax: int
    total: int
    payment_reference: Optional[str] = None
    moderation_comment: Optional[str] = None
    refund_requested_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: AdRecord) -> "AdminAdResponse":
        return cls(
            ad_id=record.ad_id,
            status=record.status.value,
            category=record.category.value,
            content=record.content,
            locations=[LocationModel(county=loc.county, state=loc.state) for loc in record.locations],
            email=record.email,
            phone=record.phone,
            address=record.address,
            attachment=(
                AttachmentModel(url=record.attachment.url, kind=record.attachment.kind)
                if record.attachment else None
            ),
            subtotal=record.subtotal,
            tax=record.tax,
            total=record.total,
            payment_reference=record.payment_reference,
            moderation_comment=record.moderation_comment,
            refund_requested_at=record.refund_requested_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class AdminAdListResponse(BaseModel):
    items: List[AdminAdResponse]
    total_count: int


class ModerationRequest(BaseModel):
    """Operator decision on a pending ad."""
    action: str = Field(..., description="'approve' or 'reject'")
    comment: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {"action": "reject", "comment": "spam"}
        }


# ============================================================================
# Webhook Models
# ============================================================================

class WebhookAck(BaseModel):
    """Acknowledgement returned to the payment gateway."""
    received: bool = True
    outcome: str


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
    field_errors: Optional[Dict[str, str]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Invalid input",
                "detail": "content: Content must be 140 characters or less",
                "status_code": 422,
                "field_errors": {"content": "Content must be 140 characters or less"}
            }
        }
