from typing import Optional

from pydantic import BaseModel, Field

from sharedminds.shared.permissions.models import (
    DetailLevel,
    EffectiveAccessSummary,
    GrantWithDisplay,
    PermissionFlags,
    PermissionRole,
    PermissionSubjectType,
    ShareScope,
)


class SharingOverview(BaseModel):
    entity_type: str
    entity_id: str
    title: str
    grants: list[GrantWithDisplay]
    can_manage: bool
    summary: EffectiveAccessSummary


class UpsertGrantRequest(BaseModel):
    """Either a role or explicit flags; flags take precedence when both are sent."""

    subject_type: PermissionSubjectType
    subject_id: str = Field(..., min_length=1)
    role: Optional[PermissionRole] = None
    flags: Optional[PermissionFlags] = None
    detail_level: DetailLevel = DetailLevel.DETAILED
    scope: ShareScope = ShareScope.THIS_ONLY


class RevokeGrantResponse(BaseModel):
    subject_type: PermissionSubjectType
    subject_id: str
    revoked: bool
