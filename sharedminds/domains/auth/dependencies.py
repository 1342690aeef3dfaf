import logging
from typing import Any, Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWKClient

from sharedminds.core.database import StorageClient, get_db
from sharedminds.core.settings import settings
from sharedminds.shared.exceptions import (
    InvalidTokenError,
    NotAuthorizedError,
    StorageOperationError,
    UnlinkedProfileError,
)

from .models import Profile
from .types import SupabaseJwtPayload

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"

_jwks_client: Optional[PyJWKClient] = (
    PyJWKClient(f"{settings.SUPABASE_URL}/auth/v1/jwks") if settings.SUPABASE_URL else None
)


def _signing_key(token: str) -> tuple[Any, str]:
    """Shared secret (HS256) when JWT_SECRET is set, else the project's JWKS key (RS256)."""
    if settings.JWT_SECRET:
        return settings.JWT_SECRET, "HS256"
    if _jwks_client is None:
        raise StorageOperationError("verify token", "Supabase is not configured")
    return _jwks_client.get_signing_key_from_jwt(token).key, "RS256"


def decode_supabase_jwt(token: str) -> SupabaseJwtPayload:
    """
    Verify a Supabase access token and return its claims.

    Audience is not checked; Supabase issues every user token for
    "authenticated".
    """
    try:
        key, algorithm = _signing_key(token)
        claims = jwt.decode(
            token, key, algorithms=[algorithm], options={"verify_aud": False}
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected access token: {e}")
        raise InvalidTokenError()
    return SupabaseJwtPayload.model_validate(claims)


def get_auth_id(authorization: Optional[str] = Header(None)) -> str:
    """Auth user id (the ``sub`` claim) of the bearer token."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token:
        raise InvalidTokenError()
    payload = decode_supabase_jwt(token)
    if not payload.sub:
        raise InvalidTokenError()
    return payload.sub


async def get_current_profile(
    auth_id: str = Depends(get_auth_id), db: StorageClient = Depends(get_db)
) -> Profile:
    row = await db.select_one(PROFILES_TABLE, filters={"user_id": auth_id})
    if not row:
        raise UnlinkedProfileError()
    return Profile.from_row(row)


async def require_platform_admin(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Only platform admins may manage providers, models and routes."""
    if not profile.is_platform_admin:
        raise NotAuthorizedError("Only platform admins can manage AI routing")
    return profile
