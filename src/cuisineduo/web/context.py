"""
Per-request context.

Handlers receive the caller and their profile explicitly through
`get_request_context` instead of reaching for ambient state. Profiles are
cached in process for a few minutes; the cache is read, written and
cleared through explicit calls.
"""

import logging
import time
from dataclasses import dataclass, field
from threading import Lock

from fastapi import Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from supabase import Client

from cuisineduo.db.client import get_authenticated_client
from cuisineduo.web.auth import AuthenticatedUser, get_current_user

logger = logging.getLogger(__name__)

PROFILE_TTL_SECONDS = 300.0


class Profile(BaseModel):
    """A profiles row; id is the auth user id."""

    model_config = ConfigDict(extra="allow")

    id: str
    household_id: str | None = None
    display_name: str | None = None


class ProfileCache:
    """In-process profile cache keyed by user id."""

    def __init__(self, ttl: float = PROFILE_TTL_SECONDS):
        self.ttl = ttl
        self._entries: dict[str, tuple[float, Profile]] = {}
        self._lock = Lock()

    def read(self, user_id: str) -> Profile | None:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            stored_at, profile = entry
            if time.monotonic() - stored_at > self.ttl:
                del self._entries[user_id]
                return None
            return profile

    def write(self, profile: Profile) -> None:
        with self._lock:
            self._entries[profile.id] = (time.monotonic(), profile)

    def clear(self, user_id: str | None = None) -> None:
        """Drop one user's entry, or everything when no id is given."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
            else:
                self._entries.pop(user_id, None)


profile_cache = ProfileCache()


@dataclass
class RequestContext:
    """Who is calling, and as whom we talk to the store."""

    user: AuthenticatedUser
    profile: Profile
    _client: Client | None = field(default=None, repr=False)

    @property
    def profile_id(self) -> str:
        return self.profile.id

    @property
    def household_id(self) -> str | None:
        return self.profile.household_id

    @property
    def client(self) -> Client:
        """Supabase client acting as the user (RLS applies)."""
        if self._client is None:
            self._client = get_authenticated_client(self.user.access_token)
        return self._client


def load_profile(client: Client, user_id: str, cache: ProfileCache = profile_cache) -> Profile | None:
    """Cached profile, else fetched from `profiles` and cached."""
    cached = cache.read(user_id)
    if cached is not None:
        return cached

    response = client.table("profiles").select("*").eq("id", user_id).maybe_single().execute()
    if not response or not response.data:
        return None

    profile = Profile.model_validate(response.data)
    cache.write(profile)
    return profile


async def get_request_context(user: AuthenticatedUser = Depends(get_current_user)) -> RequestContext:
    client = get_authenticated_client(user.access_token)
    try:
        profile = load_profile(client, user.id)
    except Exception as e:
        logger.exception(f"Profile load failed for {user.id}")
        raise HTTPException(status_code=500, detail="profile_load_failed") from e

    if profile is None:
        raise HTTPException(status_code=403, detail="profile_not_found")
    return RequestContext(user=user, profile=profile, _client=client)
