"""
AWS SES email gateway.

Sends one multipart (HTML + plain text) message per call. Any boto/botocore
failure, including timeouts, is raised as NotificationError; callers treat
email as best effort and decide whether to log or propagate.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from domain.errors import NotificationError

logger = logging.getLogger(__name__)


class SesNotificationGateway:
    """NotificationGateway backed by Amazon SES."""

    def __init__(
        self,
        sender: str,
        *,
        region: str = "us-east-1",
        timeout_seconds: float = 10.0,
        client: Optional[Any] = None,
    ) -> None:
        self._sender = sender
        self._client = client or boto3.client(
            "ses",
            region_name=region,
            config=Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )

    def send(self, to_address: str, subject: str, html_body: str, text_body: str) -> None:
        try:
            result = self._client.send_email(
                Source=self._sender,
                Destination={"ToAddresses": [to_address]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (BotoCoreError, ClientError) as e:
            raise NotificationError(f"Failed to send email to {to_address}: {e}") from e

        logger.info("Email sent via SES to %s (MessageId: %s)", to_address, result.get("MessageId"))


__all__ = ["SesNotificationGateway"]
