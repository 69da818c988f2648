"""
Domain: error taxonomy.

Every failure the ad lifecycle can report is one of these classes. The HTTP
layer maps them to status codes; services raise them and never return error
flags for these cases.

- ValidationError: malformed input, no side effects performed.
- PreconditionError: the record exists (or not) in a state that does not
  allow the requested action.
- GatewayError: the payment processor refused or failed a call.
- NotificationError: an email could not be sent. Best effort only.
- AnomalyError: the outside world referenced something we do not know about.
- RecordStoreError: the database call itself failed.
"""

from __future__ import annotations

from typing import Mapping


class AdPlatformError(Exception):
    """Base class for all lifecycle errors."""


class ValidationError(AdPlatformError):
    """Input was malformed. Carries a field -> message map."""

    def __init__(self, field_errors: Mapping[str, str]) -> None:
        self.field_errors: dict[str, str] = dict(field_errors)
        summary = "; ".join(f"{k}: {v}" for k, v in self.field_errors.items())
        super().__init__(f"Invalid input ({summary})")


class PreconditionError(AdPlatformError):
    """The record is not in a state where the action is allowed."""

    def __init__(self, message: str, *, not_found: bool = False) -> None:
        self.not_found = not_found
        super().__init__(message)


class GatewayError(AdPlatformError):
    """A payment gateway call failed or was refused."""


class SignatureVerificationError(GatewayError):
    """An inbound gateway event failed signature verification."""


class NotificationError(AdPlatformError):
    """A transactional email could not be delivered to the email gateway."""


class AnomalyError(AdPlatformError):
    """An inbound event referenced a record that does not exist."""


class RecordStoreError(AdPlatformError):
    """The record store failed to execute a call."""


def field_error(field: str, message: str) -> ValidationError:
    """Shorthand for a single-field ValidationError."""

    return ValidationError({field: message})


__all__ = [
    "AdPlatformError",
    "ValidationError",
    "PreconditionError",
    "GatewayError",
    "SignatureVerificationError",
    "NotificationError",
    "AnomalyError",
    "RecordStoreError",
    "field_error",
]
