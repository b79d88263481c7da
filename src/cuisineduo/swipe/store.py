"""
Swipe session storage.

The aggregator only needs six row operations. `SwipeStore` names them so
the aggregator can run against Supabase in production and a fake in tests.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from supabase import Client

logger = logging.getLogger(__name__)

VOTE_CONFLICT_TARGET = "session_recipe_id,profile_id"


@runtime_checkable
class SwipeStore(Protocol):
    """Row access for one household's swipe sessions."""

    async def fetch_session(self, session_id: str) -> dict[str, Any] | None:
        ...

    async def fetch_recipes(self, session_id: str) -> list[dict[str, Any]]:
        """Session recipes, ascending sort_order."""
        ...

    async def fetch_votes(self, session_recipe_ids: list[str]) -> list[dict[str, Any]]:
        ...

    async def fetch_members(self, household_id: str) -> list[dict[str, Any]]:
        ...

    async def upsert_vote(self, session_recipe_id: str, profile_id: str, liked: bool) -> dict[str, Any]:
        """Insert or overwrite the (session_recipe_id, profile_id) vote."""
        ...

    async def update_session_status(
        self, session_id: str, status: str, only_from: list[str] | None = None
    ) -> dict[str, Any] | None:
        """Write the status; None when no row matched (missing, or not in `only_from`)."""
        ...


class SupabaseSwipeStore:
    """SwipeStore over the Supabase REST client."""

    def __init__(self, client: Client):
        self.client = client

    async def fetch_session(self, session_id: str) -> dict[str, Any] | None:
        response = (
            self.client.table("swipe_sessions")
            .select("*")
            .eq("id", session_id)
            .maybe_single()
            .execute()
        )
        # maybe_single() returns None instead of a response on zero rows
        return response.data if response else None

    async def fetch_recipes(self, session_id: str) -> list[dict[str, Any]]:
        response = (
            self.client.table("swipe_session_recipes")
            .select("*")
            .eq("session_id", session_id)
            .order("sort_order")
            .execute()
        )
        return response.data or []

    async def fetch_votes(self, session_recipe_ids: list[str]) -> list[dict[str, Any]]:
        if not session_recipe_ids:
            return []
        response = (
            self.client.table("swipe_votes")
            .select("*")
            .in_("session_recipe_id", session_recipe_ids)
            .execute()
        )
        return response.data or []

    async def fetch_members(self, household_id: str) -> list[dict[str, Any]]:
        response = (
            self.client.table("profiles")
            .select("id, display_name")
            .eq("household_id", household_id)
            .execute()
        )
        return response.data or []

    async def upsert_vote(self, session_recipe_id: str, profile_id: str, liked: bool) -> dict[str, Any]:
        row = {
            "session_recipe_id": session_recipe_id,
            "profile_id": profile_id,
            "vote": liked,
        }
        response = (
            self.client.table("swipe_votes")
            .upsert(row, on_conflict=VOTE_CONFLICT_TARGET)
            .execute()
        )
        return response.data[0] if response.data else row

    async def update_session_status(
        self, session_id: str, status: str, only_from: list[str] | None = None
    ) -> dict[str, Any] | None:
        query = (
            self.client.table("swipe_sessions")
            .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", session_id)
        )
        if only_from is not None:
            query = query.in_("status", only_from)
        response = query.execute()
        return response.data[0] if response.data else None
