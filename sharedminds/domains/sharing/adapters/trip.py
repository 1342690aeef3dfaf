from typing import Any, Optional

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.exceptions import InvalidDataError
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
from .calendar_event import CalendarEventShareAdapter


class TripShareAdapter(ShareAdapter):
    """
    Trips share through the projection of their container calendar event.

    The trip row owns the title and ownership; everything else is delegated
    to the calendar event adapter for the container event.
    """

    entity_type = "trip"
    entity_label = "trip"

    def __init__(
        self, db: StorageClient, entity_id: str, actor: Optional[Profile] = None
    ):
        super().__init__(db, entity_id, actor)
        self._trip: Optional[dict[str, Any]] = None
        self._loaded = False

    async def _get_trip(self) -> Optional[dict[str, Any]]:
        if not self._loaded:
            self._trip = await self.db.select_one(
                "trips", filters={"id": self.entity_id, "archived_at": None}
            )
            self._loaded = True
        return self._trip

    async def _container_adapter(self) -> Optional[CalendarEventShareAdapter]:
        trip = await self._get_trip()
        if trip is None or not trip.get("container_event_id"):
            return None
        return CalendarEventShareAdapter(self.db, trip["container_event_id"], self.actor)

    async def get_entity_title(self) -> str:
        trip = await self._get_trip()
        if trip is None:
            return "Trip"
        return trip.get("name") or "Untitled trip"

    async def list_grants(self) -> list[GrantWithDisplay]:
        container = await self._container_adapter()
        if container is None:
            return []
        return await container.list_grants()

    async def upsert_grant(
        self,
        subject_type: PermissionSubjectType,
        subject_id: str,
        flags: PermissionFlags,
    ) -> GrantWithDisplay:
        self._require_supported_subject(subject_type)
        container = await self._container_adapter()
        if container is None:
            raise InvalidDataError(
                "This trip has no calendar context yet and cannot be shared"
            )
        return await container.upsert_grant(subject_type, subject_id, flags)

    async def revoke_grant(
        self, subject_type: PermissionSubjectType, subject_id: str
    ) -> bool:
        self._require_supported_subject(subject_type)
        container = await self._container_adapter()
        if container is None:
            return False
        return await container.revoke_grant(subject_type, subject_id)

    async def preview_scope_impact(self, scope: ShareScope) -> ScopeImpact:
        container = await self._container_adapter()
        if container is None or ShareScope(scope) == ShareScope.THIS_ONLY:
            return ScopeImpact(
                scope=scope, affected_count=0, description="Only the trip overview will be shared"
            )
        impact = await container.preview_scope_impact(scope)
        return ScopeImpact(
            scope=scope,
            affected_count=impact.affected_count,
            description=(
                f"The trip and {impact.affected_count} itinerary item(s) will be shared"
            ),
        )

    async def resolve_actor_flags(self) -> Optional[PermissionFlags]:
        if self.actor is None:
            return None
        trip = await self._get_trip()
        if trip is None or not trip.get("owner_id"):
            return None
        if trip["owner_id"] == self.actor.user_id:
            return role_to_flags(PermissionRole.OWNER)

        container = await self._container_adapter()
        if container is None:
            return None
        return await container.resolve_actor_flags()
