from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PermissionRole(str, Enum):
    """
    Coarse role used for display and for native storage that only knows roles.

    Roles map deterministically onto PermissionFlags templates; flags do not
    map back losslessly.
    """

    OWNER = "owner"
    EDITOR = "editor"
    COMMENTER = "commenter"
    VIEWER = "viewer"


class DetailLevel(str, Enum):
    OVERVIEW = "overview"
    DETAILED = "detailed"


class ShareScope(str, Enum):
    THIS_ONLY = "this_only"
    INCLUDE_CHILDREN = "include_children"


class AccessLevel(str, Enum):
    VIEW = "view"
    COMMENT = "comment"
    EDIT = "edit"
    MANAGE = "manage"


class PermissionSubjectType(str, Enum):
    USER = "user"
    CONTACT = "contact"
    GROUP = "group"
    SPACE = "space"
    LINK = "link"


class PermissionFlags(BaseModel):
    """
    Canonical permission value object.

    A resolution produces one immutable instance. Consumers must hide an
    entity entirely when ``can_view`` is False.
    """

    model_config = ConfigDict(frozen=True)

    can_view: bool = False
    can_comment: bool = False
    can_edit: bool = False
    can_manage: bool = False
    detail_level: DetailLevel = DetailLevel.DETAILED
    scope: ShareScope = ShareScope.THIS_ONLY
    is_inherited: bool = False
    source_context_id: Optional[str] = None


NO_ACCESS = PermissionFlags()


ROLE_FLAG_TEMPLATES: dict[PermissionRole, dict[str, bool]] = {
    PermissionRole.OWNER: {
        "can_view": True,
        "can_comment": True,
        "can_edit": True,
        "can_manage": True,
    },
    PermissionRole.EDITOR: {
        "can_view": True,
        "can_comment": True,
        "can_edit": True,
        "can_manage": False,
    },
    PermissionRole.COMMENTER: {
        "can_view": True,
        "can_comment": True,
        "can_edit": False,
        "can_manage": False,
    },
    PermissionRole.VIEWER: {
        "can_view": True,
        "can_comment": False,
        "can_edit": False,
        "can_manage": False,
    },
}

ROLE_HIERARCHY: dict[PermissionRole, int] = {
    PermissionRole.OWNER: 4,
    PermissionRole.EDITOR: 3,
    PermissionRole.COMMENTER: 2,
    PermissionRole.VIEWER: 1,
}


class GrantSubject(BaseModel):
    subject_type: PermissionSubjectType
    subject_id: str


class PermissionGrant(BaseModel):
    """One grant per (entity_type, entity_id, subject_type, subject_id)."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    entity_type: str
    entity_id: str
    subject_type: PermissionSubjectType
    subject_id: str
    flags: PermissionFlags
    permission_role: PermissionRole
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None


class GrantWithDisplay(BaseModel):
    """A grant already resolved to canonical flags plus display info."""

    subject_type: PermissionSubjectType
    subject_id: str
    flags: PermissionFlags
    role: PermissionRole
    display_name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    status: Optional[str] = Field(
        None, description="Native lifecycle status, e.g. pending or accepted"
    )
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None


class ScopeImpact(BaseModel):
    scope: ShareScope
    affected_count: int = 0
    description: str


class EffectiveAccessSummary(BaseModel):
    total: int = 0
    can_view: int = 0
    can_edit: int = 0
    can_manage: int = 0
