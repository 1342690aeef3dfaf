import asyncio
from typing import Iterable, Optional

from pydantic import BaseModel

from sharedminds.core.database import StorageClient
from sharedminds.shared.permissions.models import PermissionSubjectType


class SubjectDisplay(BaseModel):
    subject_type: PermissionSubjectType
    subject_id: str
    display_name: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    user_id: Optional[str] = None


class SubjectDirectory:
    """Resolves grant subjects to display details for adapters."""

    def __init__(self, db: StorageClient):
        self.db = db

    async def lookup_many(
        self, subject_type: PermissionSubjectType, subject_ids: Iterable[str]
    ) -> dict[str, SubjectDisplay]:
        ids = list(dict.fromkeys(subject_ids))
        if not ids:
            return {}

        subject_type = PermissionSubjectType(subject_type)
        if subject_type == PermissionSubjectType.USER:
            rows = await self.db.select("profiles", filters={"id": ids})
            return {
                row["id"]: SubjectDisplay(
                    subject_type=subject_type,
                    subject_id=row["id"],
                    display_name=row.get("full_name") or row.get("email") or "Unknown user",
                    email=row.get("email"),
                    avatar_url=row.get("avatar_url"),
                    user_id=row.get("user_id"),
                )
                for row in rows
            }
        if subject_type == PermissionSubjectType.CONTACT:
            rows = await self.db.select("contacts", filters={"id": ids})
            return {
                row["id"]: SubjectDisplay(
                    subject_type=subject_type,
                    subject_id=row["id"],
                    display_name=row.get("display_name") or row.get("email") or "Contact",
                    email=row.get("email"),
                )
                for row in rows
            }
        if subject_type == PermissionSubjectType.GROUP:
            rows = await self.db.select("team_groups", filters={"id": ids})
            return {
                row["id"]: SubjectDisplay(
                    subject_type=subject_type,
                    subject_id=row["id"],
                    display_name=row.get("name") or "Group",
                )
                for row in rows
            }
        return {}

    async def lookup(
        self, subject_type: PermissionSubjectType, subject_id: str
    ) -> Optional[SubjectDisplay]:
        found = await self.lookup_many(subject_type, [subject_id])
        return found.get(subject_id)

    async def lookup_mixed(
        self, subjects: Iterable[tuple[PermissionSubjectType, str]]
    ) -> dict[tuple[str, str], SubjectDisplay]:
        """Resolve subjects of several types in one concurrent pass."""
        by_type: dict[PermissionSubjectType, list[str]] = {}
        for subject_type, subject_id in subjects:
            by_type.setdefault(PermissionSubjectType(subject_type), []).append(subject_id)

        types = list(by_type)
        results = await asyncio.gather(
            *(self.lookup_many(t, by_type[t]) for t in types)
        )
        resolved: dict[tuple[str, str], SubjectDisplay] = {}
        for subject_type, found in zip(types, results):
            for subject_id, display in found.items():
                resolved[(subject_type.value, subject_id)] = display
        return resolved


def fallback_display(
    subject_type: PermissionSubjectType, subject_id: str
) -> SubjectDisplay:
    return SubjectDisplay(
        subject_type=subject_type,
        subject_id=subject_id,
        display_name=f"Unknown {PermissionSubjectType(subject_type).value}",
    )
