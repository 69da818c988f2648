"""
Transactional email content.

Three messages are sent over an ad's lifecycle:
- receipt: payment confirmed, ad queued for moderation
- live: ad approved
- rejection: ad rejected and refunded

All user-supplied text is HTML-escaped in the HTML body.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional

from domain.ad import AdRecord
from domain.pricing import format_cents

SITE_NAME = "PostBudgetAds.com"
TAGLINE = "The Community's Paper"

_STYLE = """
    body { font-family: Arial, sans-serif; background-color: #FDFBF7; color: #1a1a1a; padding: 20px; }
    .container { max-width: 600px; margin: 0 auto; background: white; border: 4px solid #000; padding: 30px; }
    .header { text-align: center; border-bottom: 2px solid #000; padding-bottom: 20px; margin-bottom: 20px; }
    .header h1 { color: #006464; margin: 0; }
    .receipt-box { border: 2px dashed #000; padding: 15px; margin: 20px 0; background: #f0f0f0; }
    .ad-details { background: #f9f9f9; border-left: 4px solid #006464; padding: 15px; margin: 20px 0; }
    .category { background: #006464; color: white; padding: 5px 10px; display: inline-block; font-weight: bold; }
    .important { background: #fff3cd; border: 2px solid #ffc107; padding: 15px; margin: 20px 0; }
    .footer { text-align: center; margin-top: 30px; padding-top: 20px; border-top: 2px solid #000; color: #666; }
"""


@dataclass(frozen=True, slots=True)
class EmailMessage:
    subject: str
    html_body: str
    text_body: str


def _locations_list(record: AdRecord) -> str:
    return "; ".join(loc.label for loc in record.locations)


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<style>"
        f"{_STYLE}"
        "</style>\n</head>\n<body>\n<div class=\"container\">\n"
        f"<div class=\"header\"><h1>{SITE_NAME}</h1><p>{escape(title)}</p></div>\n"
        f"{body}\n"
        f"<div class=\"footer\"><p>{SITE_NAME} - {escape(TAGLINE)}</p>"
        "<p>This is an automated message. Please do not reply.</p></div>\n"
        "</div>\n</body>\n</html>\n"
    )


def _ad_details_html(record: AdRecord) -> str:
    return (
        "<div class=\"ad-details\">"
        f"<div class=\"category\">{escape(record.category.value)}</div>"
        f"<p><strong>Ad Content:</strong><br>{escape(record.content)}</p>"
        f"<p><strong>Locations:</strong> {escape(_locations_list(record))}</p>"
        "</div>"
    )


def render_receipt(record: AdRecord, *, paid_at: datetime) -> EmailMessage:
    """Payment receipt sent once the gateway confirms the checkout."""

    total = format_cents(record.total)
    date = paid_at.strftime("%Y-%m-%d")

    html_body = _page(
        "Order Confirmation & Receipt",
        "<p>Hello,</p>"
        "<p>Thank you for your order. We have received your payment and ad submission.</p>"
        "<div class=\"receipt-box\"><h3>Payment Receipt</h3>"
        f"<p><strong>Subtotal:</strong> {format_cents(record.subtotal)}</p>"
        f"<p><strong>Tax:</strong> {format_cents(record.tax)}</p>"
        f"<p><strong>Total Paid:</strong> {total}</p>"
        f"<p><strong>Date:</strong> {date}</p></div>"
        f"{_ad_details_html(record)}"
        "<div class=\"important\"><p><strong>Moderation Notice</strong></p>"
        "<p>Your post is currently under review. Please allow <strong>up to 2 hours</strong> "
        "for your post to go live on the site.</p>"
        "<p><strong>Refund Policy:</strong> If your post is rejected for any reason during "
        "moderation, you will automatically receive a <strong>100% refund</strong> to your "
        "original payment method.</p></div>",
    )

    text_body = (
        f"{SITE_NAME} - Order Confirmation & Receipt\n\n"
        "Thank you for your order. We have received your payment and ad submission.\n\n"
        "PAYMENT RECEIPT\n"
        f"Subtotal: {format_cents(record.subtotal)}\n"
        f"Tax: {format_cents(record.tax)}\n"
        f"Total Paid: {total}\n"
        f"Date: {date}\n\n"
        "AD DETAILS\n"
        f"Category: {record.category.value}\n"
        f"Ad Content: {record.content}\n"
        f"Locations: {_locations_list(record)}\n\n"
        "MODERATION NOTICE:\n"
        "Your post is currently under review. Please allow up to 2 hours for your post to go live on the site.\n\n"
        "REFUND POLICY:\n"
        "If your post is rejected for any reason during moderation, you will automatically "
        "receive a 100% refund to your original payment method.\n\n"
        "---\n"
        f"{SITE_NAME} - {TAGLINE}\n"
    )

    return EmailMessage(
        subject=f"Receipt: Ad Submission - {SITE_NAME}",
        html_body=html_body,
        text_body=text_body,
    )


def render_live(record: AdRecord, *, site_url: str, comment: Optional[str] = None) -> EmailMessage:
    """Approval notice: the ad is now visible in its counties."""

    note_html = f"<p><strong>Admin Note:</strong> {escape(comment)}</p>" if comment else ""
    note_text = f"Admin Note: {comment}\n\n" if comment else ""

    html_body = _page(
        "Your Ad is Live!",
        "<h2>Your Ad has been Approved!</h2>"
        f"<p>Great news! Your ad has been approved and is now live on {SITE_NAME}.</p>"
        f"{_ad_details_html(record)}"
        f"{note_html}"
        f"<p><a href=\"{escape(site_url, quote=True)}\">View your ad here</a></p>",
    )

    text_body = (
        "Your Ad has been Approved!\n\n"
        f"Great news! Your ad has been approved and is now live on {SITE_NAME}.\n\n"
        f"Ad Content: {record.content}\n"
        f"Locations: {_locations_list(record)}\n\n"
        f"{note_text}"
        f"View your ad here: {site_url}\n"
    )

    return EmailMessage(
        subject=f"Your Ad is Live! - {SITE_NAME}",
        html_body=html_body,
        text_body=text_body,
    )


def render_rejection(record: AdRecord, *, comment: Optional[str] = None) -> EmailMessage:
    """Rejection notice including the refund that was issued."""

    reason = comment or "Violation of community guidelines"
    refund = format_cents(record.total)

    html_body = _page(
        "Ad Submission Update",
        "<h2>Ad Submission Update</h2>"
        "<p>We reviewed your ad submission and unfortunately it could not be approved at this time.</p>"
        f"{_ad_details_html(record)}"
        f"<p><strong>Reason:</strong> {escape(reason)}</p>"
        f"<p><strong>Refund Status:</strong> A full refund of {refund} has been initiated to your "
        "original payment method. Please allow 5-10 business days for it to appear.</p>",
    )

    text_body = (
        "Ad Submission Update\n\n"
        "We reviewed your ad submission and unfortunately it could not be approved at this time.\n\n"
        f"Ad Content: {record.content}\n"
        f"Reason: {reason}\n\n"
        f"Refund Status: A full refund of {refund} has been initiated to your original payment "
        "method. Please allow 5-10 business days for it to appear.\n"
    )

    return EmailMessage(
        subject=f"Update regarding your Ad - {SITE_NAME}",
        html_body=html_body,
        text_body=text_body,
    )


__all__ = ["EmailMessage", "render_receipt", "render_live", "render_rejection"]
