from typing import Optional

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.domains.trackers.permissions import (
    TrackerPermissionService,
    tracker_role_for_flags,
)
from sharedminds.shared.exceptions import NotAuthorizedError
from sharedminds.shared.permissions.models import (
    GrantWithDisplay,
    PermissionFlags,
    PermissionRole,
    PermissionSubjectType,
    ScopeImpact,
    ShareScope,
)
from sharedminds.shared.permissions.services import role_to_flags

from .base import ShareAdapter


class TrackerShareAdapter(ShareAdapter):
    """Trackers store grants in the shared soft-revocation grant table."""

    entity_type = "tracker"
    entity_label = "tracker"

    def __init__(
        self, db: StorageClient, entity_id: str, actor: Optional[Profile] = None
    ):
        super().__init__(db, entity_id, actor)
        self.service = TrackerPermissionService(db)

    async def get_entity_title(self) -> str:
        tracker = await self.service.get_tracker(self.entity_id, include_archived=True)
        if tracker is None:
            return "Tracker"
        return tracker.get("name") or "Untitled tracker"

    async def list_grants(self) -> list[GrantWithDisplay]:
        entries = await self.service.list_tracker_permissions(self.entity_id)
        grants = []
        for entry in entries:
            role = PermissionRole(entry.access_role.value)
            grants.append(
                GrantWithDisplay(
                    subject_type=PermissionSubjectType.USER,
                    subject_id=entry.profile_id,
                    flags=role_to_flags(role),
                    role=role,
                    display_name=entry.display_name,
                    email=entry.email,
                    granted_by=entry.granted_by,
                    granted_at=entry.granted_at,
                )
            )
        return grants

    async def upsert_grant(
        self,
        subject_type: PermissionSubjectType,
        subject_id: str,
        flags: PermissionFlags,
    ) -> GrantWithDisplay:
        self._require_supported_subject(subject_type)
        self._require_view_access(flags)
        if self.actor is None:
            raise NotAuthorizedError("Only the tracker owner can manage sharing")

        access_role = tracker_role_for_flags(flags)
        entry = await self.service.grant_tracker_permission(
            self.entity_id, subject_id, access_role, self.actor
        )
        role = PermissionRole(access_role.value)
        return GrantWithDisplay(
            subject_type=PermissionSubjectType.USER,
            subject_id=subject_id,
            flags=role_to_flags(role),
            role=role,
            display_name=entry.display_name,
            email=entry.email,
            granted_by=entry.granted_by,
            granted_at=entry.granted_at,
        )

    async def revoke_grant(
        self, subject_type: PermissionSubjectType, subject_id: str
    ) -> bool:
        self._require_supported_subject(subject_type)
        if self.actor is None:
            raise NotAuthorizedError("Only the tracker owner can manage sharing")
        return await self.service.revoke_tracker_permission(
            self.entity_id, subject_id, self.actor
        )

    async def preview_scope_impact(self, scope: ShareScope) -> ScopeImpact:
        # Trackers have no nested entities
        return ScopeImpact(
            scope=scope,
            affected_count=0,
            description="Only this tracker will be shared",
        )

    async def resolve_actor_flags(self) -> Optional[PermissionFlags]:
        if self.actor is None:
            return None
        resolved = await self.service.resolve_tracker_permissions(
            self.entity_id, self.actor
        )
        return resolved.flags
