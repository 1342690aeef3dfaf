"""
Entity-level permission resolution for Guardrails tracks and subtracks.

The owning project's role is both the gate and the ceiling: no project access
means no entity access, and nothing granted on the entity can exceed the
project role. Within that ceiling, creator rights and entity grants (direct
or via team groups) can raise the effective role.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from sharedminds.core.database import StorageClient
from sharedminds.core.settings import settings

from .grant_store import GrantStore
from .models import NO_ACCESS, PermissionFlags, PermissionRole, PermissionSubjectType
from .services import (
    cap_role_at_ceiling,
    compare_roles,
    max_role,
    merge_permission_flags,
    role_to_flags,
)

logger = logging.getLogger(__name__)


class ResolvableEntityType(str, Enum):
    TRACK = "track"
    SUBTRACK = "subtrack"


class PermissionSource(BaseModel):
    project_role: Optional[PermissionRole] = None
    creator_role: Optional[PermissionRole] = None
    grant_role: Optional[PermissionRole] = None
    ceiling_applied: bool = False


class ResolvedEntityPermission(BaseModel):
    entity_type: ResolvableEntityType
    entity_id: str
    master_project_id: Optional[str] = None
    role: Optional[PermissionRole] = None
    flags: PermissionFlags = NO_ACCESS
    source: PermissionSource = PermissionSource()


class EntityPermissionResolver:
    def __init__(
        self,
        db: StorageClient,
        enable_entity_grants: Optional[bool] = None,
        enable_creator_rights: Optional[bool] = None,
    ):
        self.db = db
        self.grants = GrantStore(db)
        self.enable_entity_grants = (
            settings.ENABLE_ENTITY_GRANTS
            if enable_entity_grants is None
            else enable_entity_grants
        )
        self.enable_creator_rights = (
            settings.ENABLE_CREATOR_RIGHTS
            if enable_creator_rights is None
            else enable_creator_rights
        )

    async def resolve(
        self, entity_type: ResolvableEntityType, entity_id: str, profile_id: str
    ) -> ResolvedEntityPermission:
        entity_type = ResolvableEntityType(entity_type)
        result = ResolvedEntityPermission(entity_type=entity_type, entity_id=entity_id)

        entity = await self._load_entity(entity_type, entity_id)
        if entity is None:
            return result

        project_id = await self._project_id_for(entity_type, entity)
        result.master_project_id = project_id
        if project_id is None:
            return result

        project_role = await self._get_project_role(project_id, profile_id)
        if project_role is None:
            return result

        creator_role, grant_role = await asyncio.gather(
            self._get_creator_role(entity_type, entity, profile_id),
            self._get_grant_role(entity_type, entity_id, profile_id),
        )

        combined = max_role(project_role, creator_role, grant_role) or project_role
        role = cap_role_at_ceiling(combined, project_role)

        result.role = role
        result.flags = merge_permission_flags(
            role_to_flags(project_role), role_to_flags(combined)
        )
        result.source = PermissionSource(
            project_role=project_role,
            creator_role=creator_role,
            grant_role=grant_role,
            ceiling_applied=compare_roles(combined, project_role) > 0,
        )
        logger.debug(
            f"Resolved {entity_type.value}:{entity_id} for {profile_id} to {role.value}"
        )
        return result

    async def _load_entity(
        self, entity_type: ResolvableEntityType, entity_id: str
    ) -> Optional[dict]:
        table = (
            "guardrails_tracks"
            if entity_type == ResolvableEntityType.TRACK
            else "guardrails_subtracks"
        )
        return await self.db.select_one(table, filters={"id": entity_id})

    async def _project_id_for(
        self, entity_type: ResolvableEntityType, entity: dict
    ) -> Optional[str]:
        if entity_type == ResolvableEntityType.TRACK:
            return entity.get("master_project_id")

        track = await self.db.select_one(
            "guardrails_tracks", filters={"id": entity.get("track_id")}
        )
        return track.get("master_project_id") if track else None

    async def _get_project_role(
        self, project_id: str, profile_id: str
    ) -> Optional[PermissionRole]:
        row = await self.db.select_one(
            "project_users",
            filters={
                "master_project_id": project_id,
                "user_id": profile_id,
                "archived_at": None,
            },
        )
        return PermissionRole(row["role"]) if row else None

    async def _get_creator_role(
        self, entity_type: ResolvableEntityType, entity: dict, profile_id: str
    ) -> Optional[PermissionRole]:
        if not self.enable_creator_rights or entity.get("created_by") != profile_id:
            return None

        revoked = await self.db.select_one(
            "creator_rights_revocations",
            filters={
                "entity_type": entity_type.value,
                "entity_id": entity["id"],
                "creator_user_id": profile_id,
            },
        )
        return None if revoked else PermissionRole.EDITOR

    async def _get_grant_role(
        self, entity_type: ResolvableEntityType, entity_id: str, profile_id: str
    ) -> Optional[PermissionRole]:
        if not self.enable_entity_grants:
            return None

        memberships = await self.db.select(
            "team_group_members", filters={"user_id": profile_id}
        )
        group_ids = [m["group_id"] for m in memberships]

        direct, via_groups = await asyncio.gather(
            self.grants.list_for_subjects(
                entity_type.value, PermissionSubjectType.USER, [profile_id], [entity_id]
            ),
            self.grants.list_for_subjects(
                entity_type.value, PermissionSubjectType.GROUP, group_ids, [entity_id]
            ),
        )
        return max_role(*(g.permission_role for g in direct + via_groups))
