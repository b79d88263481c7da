"""
Authentication for FastAPI routes.

Bearer tokens are Supabase access tokens, validated against Supabase Auth.
"""

import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel

from cuisineduo.db.client import get_service_client

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Authenticated user info from a Supabase JWT."""
    id: str
    email: str | None
    access_token: str


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """
    Validate the Supabase JWT and extract user info.

    Expects Authorization header: "Bearer <access_token>"
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="missing_authorization")

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="invalid_authorization")

    access_token = authorization[7:]

    try:
        user_response = get_service_client().auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Auth validation failed: {e}")
        raise HTTPException(status_code=401, detail="invalid_token")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="invalid_token")

    user = user_response.user
    return AuthenticatedUser(id=user.id, email=user.email, access_token=access_token)
