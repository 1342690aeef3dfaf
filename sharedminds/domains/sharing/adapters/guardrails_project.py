import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sharedminds.domains.sharing.directory import fallback_display
from sharedminds.shared.exceptions import EntityNotFoundError, InvalidDataError
from sharedminds.shared.permissions.models import (
    GrantWithDisplay,
    PermissionFlags,
    PermissionRole,
    PermissionSubjectType,
    ScopeImpact,
    ShareScope,
)
from sharedminds.shared.permissions.services import flags_to_role_approx, role_to_flags

from .base import ShareAdapter

logger = logging.getLogger(__name__)

PROJECT_USERS_TABLE = "project_users"


def project_role_for_flags(flags: PermissionFlags) -> PermissionRole:
    """Projects have no commenter role, so commenters are stored as viewers."""
    role = flags_to_role_approx(flags)
    if role == PermissionRole.COMMENTER:
        return PermissionRole.VIEWER
    return role


class GuardrailsProjectShareAdapter(ShareAdapter):
    """Project membership grants apply immediately, with no acceptance step."""

    entity_type = "guardrails_project"
    entity_label = "project"

    async def _get_project(self) -> Optional[dict[str, Any]]:
        return await self.db.select_one(
            "master_projects", filters={"id": self.entity_id, "archived_at": None}
        )

    async def _get_membership(self, profile_id: str) -> Optional[dict[str, Any]]:
        return await self.db.select_one(
            PROJECT_USERS_TABLE,
            filters={"master_project_id": self.entity_id, "user_id": profile_id},
        )

    async def get_entity_title(self) -> str:
        project = await self._get_project()
        if project is None:
            return "Project"
        return project.get("name") or "Untitled project"

    async def list_grants(self) -> list[GrantWithDisplay]:
        if await self._get_project() is None:
            return []

        members = await self.db.select(
            PROJECT_USERS_TABLE,
            filters={"master_project_id": self.entity_id, "archived_at": None},
            order_by="created_at",
        )
        profiles = await self.directory.lookup_many(
            PermissionSubjectType.USER, [m["user_id"] for m in members]
        )

        grants = []
        for member in members:
            role = PermissionRole(member["role"])
            display = profiles.get(member["user_id"]) or fallback_display(
                PermissionSubjectType.USER, member["user_id"]
            )
            grants.append(
                GrantWithDisplay(
                    subject_type=PermissionSubjectType.USER,
                    subject_id=member["user_id"],
                    flags=role_to_flags(role),
                    role=role,
                    display_name=display.display_name,
                    email=display.email,
                    avatar_url=display.avatar_url,
                    granted_at=member.get("created_at"),
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
        if await self._get_project() is None:
            raise EntityNotFoundError("Project", self.entity_id)

        role = project_role_for_flags(flags)
        if role == PermissionRole.OWNER:
            raise InvalidDataError("Project ownership cannot be granted through sharing")

        display = await self.directory.lookup(PermissionSubjectType.USER, subject_id)
        if display is None:
            raise EntityNotFoundError("Profile", subject_id)

        now = datetime.now(timezone.utc).isoformat()
        existing = await self._get_membership(subject_id)
        if existing is None:
            await self.db.insert(
                PROJECT_USERS_TABLE,
                {
                    "master_project_id": self.entity_id,
                    "user_id": subject_id,
                    "role": role.value,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        elif existing["role"] == PermissionRole.OWNER.value and existing.get("archived_at") is None:
            raise InvalidDataError("The project owner's access cannot be changed")
        else:
            await self.db.update(
                PROJECT_USERS_TABLE,
                {"role": role.value, "archived_at": None, "updated_at": now},
                filters={"id": existing["id"]},
            )
        logger.info(f"Set {role.value} on project {self.entity_id} for {subject_id}")

        return GrantWithDisplay(
            subject_type=PermissionSubjectType.USER,
            subject_id=subject_id,
            flags=role_to_flags(role),
            role=role,
            display_name=display.display_name,
            email=display.email,
            avatar_url=display.avatar_url,
        )

    async def revoke_grant(
        self, subject_type: PermissionSubjectType, subject_id: str
    ) -> bool:
        self._require_supported_subject(subject_type)
        existing = await self._get_membership(subject_id)
        if existing is None or existing.get("archived_at") is not None:
            return False
        if existing["role"] == PermissionRole.OWNER.value:
            raise InvalidDataError("The project owner cannot be removed")

        now = datetime.now(timezone.utc).isoformat()
        await self.db.update(
            PROJECT_USERS_TABLE,
            {"archived_at": now, "updated_at": now},
            filters={"id": existing["id"]},
        )
        logger.info(f"Removed {subject_id} from project {self.entity_id}")
        return True

    async def preview_scope_impact(self, scope: ShareScope) -> ScopeImpact:
        if ShareScope(scope) == ShareScope.THIS_ONLY:
            return ScopeImpact(
                scope=scope, affected_count=0, description="Only the project will be shared"
            )

        tracks = await self.db.select(
            "guardrails_tracks", filters={"master_project_id": self.entity_id}
        )
        subtracks = 0
        if tracks:
            subtracks = await self.db.count(
                "guardrails_subtracks", filters={"track_id": [t["id"] for t in tracks]}
            )
        return ScopeImpact(
            scope=scope,
            affected_count=len(tracks) + subtracks,
            description=(
                f"{len(tracks)} track(s) and {subtracks} subtrack(s) will be shared"
            ),
        )

    async def resolve_actor_flags(self) -> Optional[PermissionFlags]:
        if self.actor is None:
            return None
        membership = await self._get_membership(self.actor.id)
        if membership is None or membership.get("archived_at") is not None:
            return None
        return role_to_flags(PermissionRole(membership["role"]))
