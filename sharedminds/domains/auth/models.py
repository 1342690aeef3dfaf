from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class Profile(BaseModel):
    """Row from the ``profiles`` table linked to a Supabase auth user."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str = "user"

    @property
    def is_platform_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Unknown user"

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Profile":
        return cls.model_validate(row)


class PublicProfile(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    is_platform_admin: bool = False

    @classmethod
    def from_profile(cls, profile: Profile) -> "PublicProfile":
        return cls(
            id=profile.id,
            name=profile.display_name,
            email=profile.email,
            is_platform_admin=profile.is_platform_admin,
        )
