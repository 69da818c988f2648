"""
Tests for `services/email_templates.py`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from domain.ad import AdCategory, AdRecord, AdStatus
from domain.locations import GeoLocation
from services.email_templates import render_live, render_receipt, render_rejection

PAID_AT = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(content: str = "Bike for sale") -> AdRecord:
    return AdRecord(
        ad_id=UUID("00000000-0000-0000-0000-000000000042"),
        content=content,
        category=AdCategory.FOR_SALE,
        locations=(
            GeoLocation(county="Montgomery", state="Maryland"),
            GeoLocation(county="Prince George's", state="Maryland"),
        ),
        email="a@b.com",
        status=AdStatus.PENDING,
        subtotal=1000,
        tax=63,
        total=1063,
        created_at=PAID_AT,
        payment_reference="pi_1",
    )


def test_receipt_lists_amounts_and_locations() -> None:
    message = render_receipt(_record(), paid_at=PAID_AT)

    assert message.subject == "Receipt: Ad Submission - PostBudgetAds.com"
    for expected in ("$10.00", "$0.63", "$10.63", "2025-06-01", "Montgomery, Maryland"):
        assert expected in message.text_body
    assert "Prince George&#x27;s, Maryland" in message.html_body


def test_user_content_is_escaped_in_html() -> None:
    message = render_receipt(_record(content="<script>alert(1)</script>"), paid_at=PAID_AT)

    assert "<script>" not in message.html_body
    assert "&lt;script&gt;" in message.html_body
    assert "<script>alert(1)</script>" in message.text_body


def test_live_includes_site_link_and_note() -> None:
    message = render_live(_record(), site_url="https://www.postbudgetads.com", comment="Nice bike")

    assert message.subject == "Your Ad is Live! - PostBudgetAds.com"
    assert 'href="https://www.postbudgetads.com"' in message.html_body
    assert "Admin Note: Nice bike" in message.text_body


def test_rejection_states_reason_and_refund() -> None:
    default = render_rejection(_record())
    custom = render_rejection(_record(), comment="Prohibited item")

    assert default.subject == "Update regarding your Ad - PostBudgetAds.com"
    assert "Violation of community guidelines" in default.text_body
    assert "Prohibited item" in custom.text_body
    assert "$10.63" in custom.text_body
