from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from sharedminds.shared.permissions.models import DetailLevel, ShareScope


class ProjectionStatus(str, Enum):
    SUGGESTED = "suggested"
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REVOKED = "revoked"


ACTIVE_STATUSES = (ProjectionStatus.PENDING, ProjectionStatus.ACCEPTED)
REOFFERABLE_STATUSES = (ProjectionStatus.REVOKED, ProjectionStatus.DECLINED)
RESPONDABLE_STATUSES = (ProjectionStatus.SUGGESTED, ProjectionStatus.PENDING)


class ProjectionScope(str, Enum):
    DATE_ONLY = "date_only"
    TITLE = "title"
    FULL = "full"


class NestedScope(str, Enum):
    CONTAINER = "container"
    CONTAINER_ITEMS = "container+items"


class Projection(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    event_id: str
    target_user_id: str
    scope: ProjectionScope = ProjectionScope.TITLE
    nested_scope: NestedScope = NestedScope.CONTAINER
    detail_level: DetailLevel = DetailLevel.OVERVIEW
    can_edit: bool = False
    status: ProjectionStatus = ProjectionStatus.PENDING
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None


def detail_level_for_scope(scope: ProjectionScope) -> DetailLevel:
    return (
        DetailLevel.DETAILED
        if ProjectionScope(scope) == ProjectionScope.FULL
        else DetailLevel.OVERVIEW
    )


def scope_for_detail_level(detail_level: DetailLevel) -> ProjectionScope:
    return (
        ProjectionScope.FULL
        if DetailLevel(detail_level) == DetailLevel.DETAILED
        else ProjectionScope.TITLE
    )


def nested_scope_for_share_scope(scope: ShareScope) -> NestedScope:
    return (
        NestedScope.CONTAINER_ITEMS
        if ShareScope(scope) == ShareScope.INCLUDE_CHILDREN
        else NestedScope.CONTAINER
    )


def share_scope_for_nested_scope(nested_scope: NestedScope) -> ShareScope:
    return (
        ShareScope.INCLUDE_CHILDREN
        if NestedScope(nested_scope) == NestedScope.CONTAINER_ITEMS
        else ShareScope.THIS_ONLY
    )
