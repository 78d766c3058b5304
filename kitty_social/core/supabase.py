"""Supabase client singleton for database operations."""

import logging
from functools import lru_cache
from typing import Any

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from kitty_social.api.middleware.error_handler import StoreUnavailableError
from kitty_social.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key, which bypasses RLS at the PostgREST level. Callers
    must have verified the acting user before touching another user's rows
    (accept and remove write the peer's mirror edge).

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def execute_query(query: Any, operation: str) -> Any:
    """Execute a PostgREST query, mapping transport and remote failures.

    Args:
        query: A built query (anything with ``execute()``).
        operation: Short description used in logs.

    Returns:
        The query response.

    Raises:
        StoreUnavailableError: If Supabase rejected the query or could not be reached.
    """
    try:
        return query.execute()
    except (PostgrestAPIError, httpx.HTTPError) as e:
        logger.error("Store call failed during %s: %s", operation, e)
        raise StoreUnavailableError() from e


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        settings = get_settings()
        client.table(settings.profiles_table).select("user_id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
