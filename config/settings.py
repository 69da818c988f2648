"""
Application settings.

Values are read from environment variables. A `.env` file in the project
root is loaded first (without overriding variables already set), so local
development works the same way as the deployed service.

Required:
- SUPABASE_URL, SUPABASE_KEY: Supabase project URL and server-side key
- STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET: Stripe API key and webhook signing secret

Optional (defaults in parentheses):
- AWS_REGION (us-east-1), AWS_SES_SENDER_EMAIL (noreply@postbudgetads.com)
- PUBLIC_SITE_URL (https://www.postbudgetads.com)
- ADMIN_API_TOKEN (unset: operator endpoints refuse every request)
- GATEWAY_TIMEOUT_SECONDS (10), MODERATION_CLAIM_TTL_SECONDS (300)
- ABANDONED_CHECKOUT_HOURS (96, must exceed the 72 hour webhook retry window)
- LOG_LEVEL (INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).parent.parent / ".env"

DEFAULT_PUBLIC_SITE_URL = "https://www.postbudgetads.com"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ABANDONED_CHECKOUT_HOURS = 96


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: str
    supabase_key: str
    stripe_secret_key: str
    stripe_webhook_secret: str
    aws_region: str = "us-east-1"
    ses_sender_email: str = "noreply@postbudgetads.com"
    public_site_url: str = DEFAULT_PUBLIC_SITE_URL
    admin_api_token: Optional[str] = None
    gateway_timeout_seconds: float = 10.0
    moderation_claim_ttl_seconds: int = 300
    abandoned_checkout_hours: int = DEFAULT_ABANDONED_CHECKOUT_HOURS
    log_level: str = DEFAULT_LOG_LEVEL


def _require(env: Mapping[str, str], name: str, hint: str) -> str:
    value = env.get(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


def _number(env: Mapping[str, str], name: str, default: float, cast: type) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return cast(default)
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (default: the process environment after .env).

    Raises:
        RuntimeError: a required variable is missing or a number is malformed
    """
    if env is None:
        load_dotenv(dotenv_path=ENV_PATH)
        env = os.environ

    return Settings(
        supabase_url=_require(env, "SUPABASE_URL", "Set SUPABASE_URL to your Supabase project URL."),
        supabase_key=_require(env, "SUPABASE_KEY", "Set SUPABASE_KEY to your Supabase service-role key."),
        stripe_secret_key=_require(env, "STRIPE_SECRET_KEY", "Set STRIPE_SECRET_KEY to your Stripe secret API key."),
        stripe_webhook_secret=_require(
            env, "STRIPE_WEBHOOK_SECRET", "Set STRIPE_WEBHOOK_SECRET to the endpoint's signing secret."
        ),
        aws_region=env.get("AWS_REGION") or "us-east-1",
        ses_sender_email=env.get("AWS_SES_SENDER_EMAIL") or "noreply@postbudgetads.com",
        public_site_url=(env.get("PUBLIC_SITE_URL") or DEFAULT_PUBLIC_SITE_URL).rstrip("/"),
        admin_api_token=env.get("ADMIN_API_TOKEN") or None,
        gateway_timeout_seconds=_number(env, "GATEWAY_TIMEOUT_SECONDS", 10.0, float),
        moderation_claim_ttl_seconds=int(_number(env, "MODERATION_CLAIM_TTL_SECONDS", 300, int)),
        abandoned_checkout_hours=int(_number(env, "ABANDONED_CHECKOUT_HOURS", DEFAULT_ABANDONED_CHECKOUT_HOURS, int)),
        log_level=(env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


__all__ = [
    "DEFAULT_ABANDONED_CHECKOUT_HOURS",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_PUBLIC_SITE_URL",
    "ENV_PATH",
    "Settings",
    "load_settings",
]
