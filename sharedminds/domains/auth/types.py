"""Auth domain type definitions for type safety."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class SupabaseJwtPayload(BaseModel):
    """Supabase JWT token payload structure."""

    # Standard JWT claims
    sub: Optional[str] = Field(None, description="Subject (auth user ID)")
    iss: Optional[str] = Field(None, description="Token issuer")
    aud: Optional[str | list[str]] = Field(None, description="Token audience")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")

    # Supabase-specific claims
    email: Optional[str] = Field(None, description="User email address")
    role: Optional[Literal["authenticated", "anon", "service_role"]] = Field(
        None, description="Postgres role the token maps to"
    )
    session_id: Optional[str] = Field(None, description="Session identifier")
    is_anonymous: Optional[bool] = Field(None, description="Whether user is anonymous")

    model_config = {"extra": "allow"}
