import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sharedminds.core.database import StorageClient
from sharedminds.shared.exceptions import EntityNotFoundError

from .models import PermissionFlags, PermissionGrant, PermissionRole, PermissionSubjectType
from .services import flags_to_role_approx, role_to_flags

logger = logging.getLogger(__name__)

GRANTS_TABLE = "entity_permission_grants"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def grant_from_row(row: dict[str, Any]) -> PermissionGrant:
    """Build a grant from a stored row, falling back to the role template."""
    role = PermissionRole(row["permission_role"])
    raw_flags = row.get("flags")
    flags = PermissionFlags(**raw_flags) if raw_flags else role_to_flags(role)
    return PermissionGrant(
        id=row.get("id"),
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        subject_type=row["subject_type"],
        subject_id=row["subject_id"],
        flags=flags,
        permission_role=role,
        granted_by=row.get("granted_by"),
        granted_at=row.get("granted_at"),
        updated_at=row.get("updated_at"),
        revoked_at=row.get("revoked_at"),
    )


class GrantStore:
    """
    Soft-revocation grant storage shared by every entity type.

    Revocation writes a ``revoked_at`` tombstone; re-granting restores the
    tombstoned row instead of inserting a duplicate. Hard deletion is only
    available as an explicit purge.
    """

    def __init__(self, db: StorageClient):
        self.db = db

    @staticmethod
    def _key(
        entity_type: str,
        entity_id: str,
        subject_type: PermissionSubjectType,
        subject_id: str,
    ) -> dict[str, str]:
        return {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "subject_type": PermissionSubjectType(subject_type).value,
            "subject_id": subject_id,
        }

    async def get(
        self,
        entity_type: str,
        entity_id: str,
        subject_type: PermissionSubjectType,
        subject_id: str,
        include_revoked: bool = False,
    ) -> Optional[PermissionGrant]:
        filters: dict[str, Any] = self._key(
            entity_type, entity_id, subject_type, subject_id
        )
        if not include_revoked:
            filters["revoked_at"] = None
        row = await self.db.select_one(GRANTS_TABLE, filters=filters)
        return grant_from_row(row) if row else None

    async def list_active(self, entity_type: str, entity_id: str) -> list[PermissionGrant]:
        rows = await self.db.select(
            GRANTS_TABLE,
            filters={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "revoked_at": None,
            },
            order_by="granted_at",
        )
        return [grant_from_row(row) for row in rows]

    async def list_for_subjects(
        self,
        entity_type: str,
        subject_type: PermissionSubjectType,
        subject_ids: Iterable[str],
        entity_ids: Optional[Iterable[str]] = None,
    ) -> list[PermissionGrant]:
        """Active grants held by any of the given subjects."""
        ids = list(subject_ids)
        if not ids:
            return []
        filters: dict[str, Any] = {
            "entity_type": entity_type,
            "subject_type": PermissionSubjectType(subject_type).value,
            "subject_id": ids,
            "revoked_at": None,
        }
        if entity_ids is not None:
            filters["entity_id"] = list(entity_ids)
        rows = await self.db.select(GRANTS_TABLE, filters=filters)
        return [grant_from_row(row) for row in rows]

    async def upsert(
        self,
        entity_type: str,
        entity_id: str,
        subject_type: PermissionSubjectType,
        subject_id: str,
        flags: PermissionFlags,
        granted_by: Optional[str] = None,
        role: Optional[PermissionRole] = None,
    ) -> PermissionGrant:
        """
        Create, update or restore the single grant for a subject.

        Args:
            entity_type: Entity type the grant applies to
            entity_id: Entity ID
            subject_type: Kind of subject receiving access
            subject_id: Subject ID
            flags: Canonical flags to store
            granted_by: Profile ID of the sharer
            role: Stored role, approximated from flags when omitted

        Returns:
            The active grant after the write
        """
        key = self._key(entity_type, entity_id, subject_type, subject_id)
        stored_role = PermissionRole(role) if role else flags_to_role_approx(flags)
        now = _now()
        values: dict[str, Any] = {
            "permission_role": stored_role.value,
            "flags": flags.model_dump(mode="json"),
            "updated_at": now,
        }

        existing = await self.db.select_one(GRANTS_TABLE, filters=key)
        if existing is None:
            row = await self.db.insert(
                GRANTS_TABLE,
                {**key, **values, "granted_by": granted_by, "granted_at": now},
            )
            logger.info(
                f"Granted {stored_role.value} on {entity_type}:{entity_id} "
                f"to {key['subject_type']}:{subject_id}"
            )
            return grant_from_row(row)

        if existing.get("revoked_at") is not None:
            values.update(
                {"revoked_at": None, "granted_by": granted_by, "granted_at": now}
            )
            logger.info(
                f"Restored revoked grant on {entity_type}:{entity_id} "
                f"for {key['subject_type']}:{subject_id}"
            )

        rows = await self.db.update(GRANTS_TABLE, values, filters={"id": existing["id"]})
        return grant_from_row(rows[0] if rows else {**existing, **values})

    async def revoke(
        self,
        entity_type: str,
        entity_id: str,
        subject_type: PermissionSubjectType,
        subject_id: str,
        purge: bool = False,
    ) -> bool:
        """
        Revoke a grant. Returns False when there was nothing active to revoke.

        ``purge`` deletes the row outright for entity types that keep no
        revocation history.
        """
        key = self._key(entity_type, entity_id, subject_type, subject_id)
        existing = await self.db.select_one(GRANTS_TABLE, filters=key)
        if existing is None:
            return False

        if purge:
            await self.db.delete(GRANTS_TABLE, filters={"id": existing["id"]})
            logger.info(f"Purged grant {existing['id']} on {entity_type}:{entity_id}")
            return True

        if existing.get("revoked_at") is not None:
            return False

        now = _now()
        await self.db.update(
            GRANTS_TABLE,
            {"revoked_at": now, "updated_at": now},
            filters={"id": existing["id"], "revoked_at": None},
        )
        logger.info(f"Revoked grant {existing['id']} on {entity_type}:{entity_id}")
        return True

    async def restore(
        self,
        entity_type: str,
        entity_id: str,
        subject_type: PermissionSubjectType,
        subject_id: str,
    ) -> PermissionGrant:
        key = self._key(entity_type, entity_id, subject_type, subject_id)
        existing = await self.db.select_one(GRANTS_TABLE, filters=key)
        if existing is None:
            raise EntityNotFoundError("Permission grant")
        if existing.get("revoked_at") is None:
            return grant_from_row(existing)

        rows = await self.db.update(
            GRANTS_TABLE,
            {"revoked_at": None, "updated_at": _now()},
            filters={"id": existing["id"]},
        )
        return grant_from_row(rows[0] if rows else {**existing, "revoked_at": None})
