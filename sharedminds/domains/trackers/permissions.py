import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.domains.sharing.directory import SubjectDirectory
from sharedminds.shared.exceptions import (
    EntityNotFoundError,
    InvalidDataError,
    NotAuthorizedError,
)
from sharedminds.shared.permissions.grant_store import GrantStore
from sharedminds.shared.permissions.models import (
    NO_ACCESS,
    AccessLevel,
    PermissionFlags,
    PermissionRole,
    PermissionSubjectType,
)
from sharedminds.shared.permissions.services import has_access, role_to_flags

logger = logging.getLogger(__name__)

TRACKER_ENTITY_TYPE = "tracker"


class TrackerAccessRole(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"


class TrackerPermissions(BaseModel):
    tracker_id: str
    flags: PermissionFlags = NO_ACCESS
    role: Optional[PermissionRole] = None
    is_owner: bool = False


class TrackerPermissionEntry(BaseModel):
    profile_id: str
    access_role: TrackerAccessRole
    display_name: str
    email: Optional[str] = None
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None


def tracker_role_for_flags(flags: PermissionFlags) -> TrackerAccessRole:
    """Trackers only know viewer and editor; manage collapses to editor."""
    if flags.can_edit or flags.can_manage:
        return TrackerAccessRole.EDITOR
    return TrackerAccessRole.VIEWER


class TrackerPermissionService:
    def __init__(self, db: StorageClient):
        self.db = db
        self.grants = GrantStore(db)
        self.directory = SubjectDirectory(db)

    async def get_tracker(
        self, tracker_id: str, include_archived: bool = False
    ) -> Optional[dict[str, Any]]:
        filters: dict[str, Any] = {"id": tracker_id}
        if not include_archived:
            filters["archived_at"] = None
        return await self.db.select_one("trackers", filters=filters)

    async def resolve_tracker_permissions(
        self, tracker_id: str, profile: Profile
    ) -> TrackerPermissions:
        """
        Resolve a profile's effective access to a tracker.

        The owner has full access; anyone else gets the flags of their active
        grant, or no access at all.
        """
        tracker = await self.get_tracker(tracker_id)
        if tracker is None:
            return TrackerPermissions(tracker_id=tracker_id)

        if tracker.get("owner_id") == profile.user_id:
            return TrackerPermissions(
                tracker_id=tracker_id,
                flags=role_to_flags(PermissionRole.OWNER),
                role=PermissionRole.OWNER,
                is_owner=True,
            )

        grant = await self.grants.get(
            TRACKER_ENTITY_TYPE, tracker_id, PermissionSubjectType.USER, profile.id
        )
        if grant is None:
            return TrackerPermissions(tracker_id=tracker_id)
        return TrackerPermissions(
            tracker_id=tracker_id, flags=grant.flags, role=grant.permission_role
        )

    async def _require_manager(self, tracker_id: str, actor: Profile) -> dict[str, Any]:
        tracker = await self.get_tracker(tracker_id)
        if tracker is None:
            raise EntityNotFoundError("Tracker", tracker_id)
        resolved = await self.resolve_tracker_permissions(tracker_id, actor)
        if not has_access(resolved.flags, AccessLevel.MANAGE):
            raise NotAuthorizedError("Only the tracker owner can manage sharing")
        return tracker

    async def grant_tracker_permission(
        self,
        tracker_id: str,
        profile_id: str,
        access_role: TrackerAccessRole,
        actor: Profile,
    ) -> TrackerPermissionEntry:
        """
        Grant a profile viewer or editor access to a tracker.

        Raises:
            InvalidDataError: If the target is the tracker owner
            NotAuthorizedError: If the actor does not own the tracker
        """
        tracker = await self._require_manager(tracker_id, actor)

        target = await self.directory.lookup(PermissionSubjectType.USER, profile_id)
        if target is None:
            raise EntityNotFoundError("Profile", profile_id)
        if target.user_id and target.user_id == tracker.get("owner_id"):
            raise InvalidDataError(
                "Cannot grant permissions to the tracker owner; they already have full access"
            )

        role = PermissionRole(TrackerAccessRole(access_role).value)
        grant = await self.grants.upsert(
            TRACKER_ENTITY_TYPE,
            tracker_id,
            PermissionSubjectType.USER,
            profile_id,
            role_to_flags(role),
            granted_by=actor.id,
            role=role,
        )
        return TrackerPermissionEntry(
            profile_id=profile_id,
            access_role=TrackerAccessRole(access_role),
            display_name=target.display_name,
            email=target.email,
            granted_by=grant.granted_by,
            granted_at=grant.granted_at,
        )

    async def revoke_tracker_permission(
        self, tracker_id: str, profile_id: str, actor: Profile
    ) -> bool:
        await self._require_manager(tracker_id, actor)
        return await self.grants.revoke(
            TRACKER_ENTITY_TYPE, tracker_id, PermissionSubjectType.USER, profile_id
        )

    async def list_tracker_permissions(
        self, tracker_id: str
    ) -> list[TrackerPermissionEntry]:
        """Active grants with profile display info. Archived trackers list none."""
        tracker = await self.get_tracker(tracker_id)
        if tracker is None:
            return []

        grants = await self.grants.list_active(TRACKER_ENTITY_TYPE, tracker_id)
        profiles = await self.directory.lookup_many(
            PermissionSubjectType.USER, [g.subject_id for g in grants]
        )

        entries = []
        for grant in grants:
            profile = profiles.get(grant.subject_id)
            entries.append(
                TrackerPermissionEntry(
                    profile_id=grant.subject_id,
                    access_role=tracker_role_for_flags(grant.flags),
                    display_name=profile.display_name if profile else "Unknown user",
                    email=profile.email if profile else None,
                    granted_by=grant.granted_by,
                    granted_at=grant.granted_at,
                )
            )
        return entries
