from typing import Any, Optional

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.domains.projections.models import (
    Projection,
    ProjectionStatus,
    nested_scope_for_share_scope,
    scope_for_detail_level,
    share_scope_for_nested_scope,
)
from sharedminds.domains.projections.service import ProjectionService
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
from sharedminds.shared.permissions.services import role_to_flags

from .base import ShareAdapter

EVENTS_TABLE = "context_events"


def projection_flags(projection: Projection) -> PermissionFlags:
    """
    Canonical flags for a projection.

    Access only takes effect once the recipient accepts, so every boolean is
    False until then.
    """
    active = projection.status == ProjectionStatus.ACCEPTED
    return PermissionFlags(
        can_view=active,
        can_comment=active and projection.can_edit,
        can_edit=active and projection.can_edit,
        can_manage=False,
        detail_level=projection.detail_level,
        scope=share_scope_for_nested_scope(projection.nested_scope),
        source_context_id=projection.event_id,
    )


def offered_role(projection: Projection) -> PermissionRole:
    return PermissionRole.EDITOR if projection.can_edit else PermissionRole.VIEWER


class CalendarEventShareAdapter(ShareAdapter):
    """Calendar events share through context projections."""

    entity_type = "calendar_event"
    entity_label = "event"

    def __init__(
        self, db: StorageClient, entity_id: str, actor: Optional[Profile] = None
    ):
        super().__init__(db, entity_id, actor)
        self.projections = ProjectionService(db)

    async def _get_event(self) -> Optional[dict[str, Any]]:
        return await self.db.select_one(
            EVENTS_TABLE, filters={"id": self.entity_id, "archived_at": None}
        )

    async def get_entity_title(self) -> str:
        event = await self._get_event()
        if event is None:
            return "Event"
        return event.get("title") or "Untitled event"

    async def list_grants(self) -> list[GrantWithDisplay]:
        if await self._get_event() is None:
            return []

        projections = await self.projections.list_for_event(self.entity_id)
        profiles = await self.directory.lookup_many(
            PermissionSubjectType.USER, [p.target_user_id for p in projections]
        )

        grants = []
        for projection in projections:
            display = profiles.get(projection.target_user_id) or fallback_display(
                PermissionSubjectType.USER, projection.target_user_id
            )
            grants.append(
                GrantWithDisplay(
                    subject_type=PermissionSubjectType.USER,
                    subject_id=projection.target_user_id,
                    flags=projection_flags(projection),
                    role=offered_role(projection),
                    display_name=display.display_name,
                    email=display.email,
                    avatar_url=display.avatar_url,
                    status=projection.status.value,
                    granted_by=projection.created_by,
                    granted_at=projection.created_at,
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
        event = await self._get_event()
        if event is None:
            raise EntityNotFoundError("Event", self.entity_id)
        if subject_id == event.get("created_by"):
            raise InvalidDataError("Cannot share an event with its creator")

        display = await self.directory.lookup(PermissionSubjectType.USER, subject_id)
        if display is None:
            raise EntityNotFoundError("Profile", subject_id)

        projection = await self.projections.offer(
            event_id=self.entity_id,
            target_user_id=subject_id,
            scope=scope_for_detail_level(flags.detail_level),
            nested_scope=nested_scope_for_share_scope(flags.scope),
            can_edit=flags.can_edit,
            created_by=self.actor.id if self.actor else "",
        )
        return GrantWithDisplay(
            subject_type=PermissionSubjectType.USER,
            subject_id=subject_id,
            flags=projection_flags(projection),
            role=offered_role(projection),
            display_name=display.display_name,
            email=display.email,
            avatar_url=display.avatar_url,
            status=projection.status.value,
            granted_by=projection.created_by,
            granted_at=projection.created_at,
        )

    async def revoke_grant(
        self, subject_type: PermissionSubjectType, subject_id: str
    ) -> bool:
        self._require_supported_subject(subject_type)
        return await self.projections.revoke(self.entity_id, subject_id)

    async def preview_scope_impact(self, scope: ShareScope) -> ScopeImpact:
        if ShareScope(scope) == ShareScope.THIS_ONLY:
            return ScopeImpact(
                scope=scope, affected_count=0, description="Only this event will be shared"
            )
        nested = await self.db.count(
            EVENTS_TABLE,
            filters={"parent_event_id": self.entity_id, "archived_at": None},
        )
        return ScopeImpact(
            scope=scope,
            affected_count=nested,
            description=f"This event and {nested} nested item(s) will be shared",
        )

    async def resolve_actor_flags(self) -> Optional[PermissionFlags]:
        if self.actor is None:
            return None
        event = await self._get_event()
        if event is None or not event.get("created_by"):
            return None
        if event["created_by"] == self.actor.id:
            return role_to_flags(PermissionRole.OWNER)

        projection = await self.projections.get(self.entity_id, self.actor.id)
        if projection is None:
            return None
        return projection_flags(projection)
