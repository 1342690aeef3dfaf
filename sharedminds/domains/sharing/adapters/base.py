import logging
from abc import ABC, abstractmethod
from typing import Optional

from fastapi import HTTPException

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.domains.sharing.directory import SubjectDirectory
from sharedminds.shared.exceptions import InvalidDataError
from sharedminds.shared.permissions.models import (
    AccessLevel,
    GrantWithDisplay,
    PermissionFlags,
    PermissionSubjectType,
    ScopeImpact,
    ShareScope,
)
from sharedminds.shared.permissions.services import has_access

logger = logging.getLogger(__name__)


class ShareAdapter(ABC):
    """
    Translates one entity type's native access records to and from the
    canonical permission model.

    The generic sharing surface only ever sees the title, the resolved grant
    list and the mutators below.
    """

    entity_type: str = ""
    entity_label: str = "entity"
    supported_subject_types: frozenset[PermissionSubjectType] = frozenset(
        {PermissionSubjectType.USER}
    )

    def __init__(
        self, db: StorageClient, entity_id: str, actor: Optional[Profile] = None
    ):
        self.db = db
        self.entity_id = entity_id
        self.actor = actor
        self.directory = SubjectDirectory(db)

    @abstractmethod
    async def get_entity_title(self) -> str:
        """Human readable title of the shared entity."""
        pass

    @abstractmethod
    async def list_grants(self) -> list[GrantWithDisplay]:
        """Grants resolved to canonical flags. Empty for missing entities."""
        pass

    @abstractmethod
    async def upsert_grant(
        self,
        subject_type: PermissionSubjectType,
        subject_id: str,
        flags: PermissionFlags,
    ) -> GrantWithDisplay:
        pass

    @abstractmethod
    async def revoke_grant(
        self, subject_type: PermissionSubjectType, subject_id: str
    ) -> bool:
        """Revoke access. Revoking an absent grant is a no-op returning False."""
        pass

    @abstractmethod
    async def preview_scope_impact(self, scope: ShareScope) -> ScopeImpact:
        pass

    @abstractmethod
    async def resolve_actor_flags(self) -> Optional[PermissionFlags]:
        """The acting profile's own flags on this entity, None when unknown."""
        pass

    async def can_manage_permissions(self) -> bool:
        """Whether the actor may manage sharing. Fails closed."""
        if self.actor is None:
            return False
        try:
            flags = await self.resolve_actor_flags()
        except HTTPException as e:
            logger.warning(
                f"Denying manage on {self.entity_type}:{self.entity_id} "
                f"after lookup failure: {e.detail}"
            )
            return False
        return has_access(flags, AccessLevel.MANAGE)

    def _require_supported_subject(self, subject_type: PermissionSubjectType) -> None:
        if PermissionSubjectType(subject_type) not in self.supported_subject_types:
            raise InvalidDataError(
                f"{self.entity_label.capitalize()} sharing does not support "
                f"'{PermissionSubjectType(subject_type).value}' subjects"
            )

    def _require_view_access(self, flags: PermissionFlags) -> None:
        """Role-based storage has no no-access role; a grant without view must be revoked."""
        if not flags.can_view:
            raise InvalidDataError(
                f"{self.entity_label.capitalize()} grants must include view access; "
                "revoke the grant to remove access"
            )
