"""
Best-effort email dispatch.

Lifecycle transitions never depend on email delivery: a failed send is
logged and reported as False, and the transition that triggered it stands.
"""

from __future__ import annotations

import logging

from domain.errors import NotificationError
from gateways.base import NotificationGateway
from services.email_templates import EmailMessage

logger = logging.getLogger(__name__)


def send_best_effort(notifier: NotificationGateway, to_address: str, message: EmailMessage) -> bool:
    """Send `message`; log and return False on any failure."""

    try:
        notifier.send(to_address, message.subject, message.html_body, message.text_body)
    except NotificationError as e:
        logger.warning("Email '%s' to %s not sent: %s", message.subject, to_address, e)
        return False
    except Exception:
        # The transition is already committed at this point.
        logger.exception("Unexpected error sending '%s' to %s", message.subject, to_address)
        return False
    return True


__all__ = ["send_best_effort"]
