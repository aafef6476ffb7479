"""
Database Module - Supabase client

Provides a singleton async Supabase client for PostgreSQL and Auth calls.
"""

from typing import Optional

from supabase._async.client import AsyncClient, create_client as acreate_client

from storefront import config

_async_supabase_client: Optional[AsyncClient] = None


async def get_supabase() -> AsyncClient:
    """
    Get async Supabase client (singleton).

    Uses SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _async_supabase_client = await acreate_client(
            config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY
        )

    return _async_supabase_client


def reset_supabase() -> None:
    """Drop the cached client (used on shutdown and in tests)."""
    global _async_supabase_client
    _async_supabase_client = None
