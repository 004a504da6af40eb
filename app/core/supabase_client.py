# app/core/supabase_client.py
from functools import lru_cache
from supabase import AsyncClient, Client, acreate_client, create_client

from app.core.config import get_settings

settings = get_settings()


@lru_cache
def supabase_public() -> Client:
    """
    Create a Supabase client with the anon/public key.

    Use cases:
      - calling public edge functions (payment order creation / verification)
      - reading public tables

    Note: This client still respects RLS.
    """
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


async def supabase_async(access_token: str | None = None) -> AsyncClient:
    """
    Create an async Supabase client for the storefront sync layer.

    The async client carries the realtime socket, so callers own it for the
    lifetime of a signed-in session. When `access_token` is given, table
    queries and realtime channels run as that user (RLS applies).
    """
    client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    if access_token:
        client.postgrest.auth(access_token)
        await client.realtime.set_auth(access_token)
    return client
