"""
Supabase client initialization.

This module contains *only* the database connection setup. Repositories take
the client as a constructor argument instead of importing a module-level
instance, so nothing connects at import time.

Settings required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use the service-role key, backend only)
"""

from __future__ import annotations

from supabase import Client, create_client  # type: ignore[import-not-found]

from config.settings import Settings


def create_supabase_client(settings: Settings) -> Client:
    """Official Supabase Python client for the configured project."""

    return create_client(settings.supabase_url, settings.supabase_key)


__all__ = ["Client", "create_supabase_client"]
