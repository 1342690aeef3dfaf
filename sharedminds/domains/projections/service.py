import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sharedminds.core.database import StorageClient
from sharedminds.shared.exceptions import (
    EntityNotFoundError,
    InvalidDataError,
    NotAuthorizedError,
)

from .models import (
    ACTIVE_STATUSES,
    REOFFERABLE_STATUSES,
    RESPONDABLE_STATUSES,
    NestedScope,
    Projection,
    ProjectionScope,
    ProjectionStatus,
    detail_level_for_scope,
)

logger = logging.getLogger(__name__)

PROJECTIONS_TABLE = "calendar_projections"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectionService:
    """
    Lifecycle of context projections onto another user's calendar.

    A projection moves pending -> accepted | declined, and any state can be
    revoked. Revoked and declined projections are re-offered in place.
    """

    def __init__(self, db: StorageClient):
        self.db = db

    async def get(self, event_id: str, target_user_id: str) -> Optional[Projection]:
        row = await self.db.select_one(
            PROJECTIONS_TABLE,
            filters={"event_id": event_id, "target_user_id": target_user_id},
        )
        return Projection.model_validate(row) if row else None

    async def list_for_event(
        self,
        event_id: str,
        statuses: Iterable[ProjectionStatus] = ACTIVE_STATUSES,
    ) -> list[Projection]:
        rows = await self.db.select(
            PROJECTIONS_TABLE,
            filters={
                "event_id": event_id,
                "status": [ProjectionStatus(s).value for s in statuses],
            },
            order_by="created_at",
        )
        return [Projection.model_validate(row) for row in rows]

    async def offer(
        self,
        event_id: str,
        target_user_id: str,
        scope: ProjectionScope,
        nested_scope: NestedScope,
        can_edit: bool,
        created_by: str,
    ) -> Projection:
        """
        Offer an event to a user, or update an existing offer.

        Pending and accepted projections are updated in place without changing
        their status; revoked and declined ones go back to pending.
        """
        values: dict[str, Any] = {
            "scope": ProjectionScope(scope).value,
            "nested_scope": NestedScope(nested_scope).value,
            "detail_level": detail_level_for_scope(scope).value,
            "can_edit": can_edit,
            "updated_at": _now(),
        }

        existing = await self.get(event_id, target_user_id)
        if existing is None:
            row = await self.db.insert(
                PROJECTIONS_TABLE,
                {
                    **values,
                    "event_id": event_id,
                    "target_user_id": target_user_id,
                    "status": ProjectionStatus.PENDING.value,
                    "created_by": created_by,
                    "created_at": values["updated_at"],
                },
            )
            logger.info(f"Offered event {event_id} to {target_user_id}")
            return Projection.model_validate(row)

        if existing.status in REOFFERABLE_STATUSES:
            values.update(
                {
                    "status": ProjectionStatus.PENDING.value,
                    "revoked_at": None,
                    "declined_at": None,
                    "accepted_at": None,
                    "created_by": created_by,
                }
            )
            logger.info(f"Re-offered {existing.status.value} projection {existing.id}")
        elif existing.status == ProjectionStatus.SUGGESTED:
            values["status"] = ProjectionStatus.PENDING.value

        return await self._update(existing, values)

    async def accept(self, projection_id: str, target_user_id: str) -> Projection:
        """
        Accept a pending or suggested projection. Accepting twice is a no-op.

        Raises:
            InvalidDataError: If the projection was revoked or declined
        """
        projection = await self._get_for_target(projection_id, target_user_id)
        if projection.status == ProjectionStatus.ACCEPTED:
            return projection
        if projection.status not in RESPONDABLE_STATUSES:
            raise InvalidDataError(
                f"Cannot accept a {projection.status.value} projection"
            )
        return await self._update(
            projection,
            {"status": ProjectionStatus.ACCEPTED.value, "accepted_at": _now()},
        )

    async def decline(self, projection_id: str, target_user_id: str) -> Projection:
        projection = await self._get_for_target(projection_id, target_user_id)
        if projection.status == ProjectionStatus.DECLINED:
            return projection
        if projection.status == ProjectionStatus.REVOKED:
            raise InvalidDataError("Cannot decline a revoked projection")
        return await self._update(
            projection,
            {"status": ProjectionStatus.DECLINED.value, "declined_at": _now()},
        )

    async def revoke(self, event_id: str, target_user_id: str) -> bool:
        """Revoke a projection. Returns False when nothing active was revoked."""
        existing = await self.get(event_id, target_user_id)
        if existing is None or existing.status in REOFFERABLE_STATUSES:
            return False
        await self._update(
            existing,
            {"status": ProjectionStatus.REVOKED.value, "revoked_at": _now()},
        )
        logger.info(f"Revoked projection {existing.id} of event {event_id}")
        return True

    async def _get_for_target(self, projection_id: str, target_user_id: str) -> Projection:
        row = await self.db.select_one(PROJECTIONS_TABLE, filters={"id": projection_id})
        if not row:
            raise EntityNotFoundError("Projection", projection_id)
        projection = Projection.model_validate(row)
        if projection.target_user_id != target_user_id:
            raise NotAuthorizedError("Only the recipient can respond to a projection")
        return projection

    async def _update(self, projection: Projection, values: dict[str, Any]) -> Projection:
        rows = await self.db.update(
            PROJECTIONS_TABLE, values, filters={"id": projection.id}
        )
        if rows:
            return Projection.model_validate(rows[0])
        return Projection.model_validate({**projection.model_dump(mode="json"), **values})
