"""
CuisineDuo - Supabase Client.

Low-level database access. Handlers use the service client for writes
that span households (swipe generation, push fan-out) and an authenticated
client when acting on behalf of a signed-in member.
"""

import asyncio
import logging

from supabase import AsyncClient, Client, acreate_client, create_client

from cuisineduo.config import settings

logger = logging.getLogger(__name__)

# Singleton client instances
_service_client: Client | None = None
_realtime_client: AsyncClient | None = None
_realtime_lock = asyncio.Lock()


def get_service_client() -> Client:
    """Get the service-role client (bypasses row level security)."""
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def get_authenticated_client(access_token: str) -> Client:
    """
    Build a client that runs queries as the signed-in user.

    Not cached: each request carries its own token.
    """
    client = create_client(settings.supabase_url, settings.supabase_anon_key)
    client.postgrest.auth(access_token)
    return client


async def get_realtime_client() -> AsyncClient:
    """Get the async client used for realtime channels."""
    global _realtime_client

    async with _realtime_lock:
        if _realtime_client is None:
            _realtime_client = await acreate_client(
                settings.supabase_url,
                settings.supabase_service_role_key,
            )
            logger.info("Realtime client connected")

    return _realtime_client
