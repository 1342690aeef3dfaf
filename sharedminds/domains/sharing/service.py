import asyncio
import logging

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.exceptions import InvalidDataError, NotAuthorizedError
from sharedminds.shared.permissions.models import (
    GrantWithDisplay,
    PermissionSubjectType,
    ScopeImpact,
    ShareScope,
)
from sharedminds.shared.permissions.services import (
    role_to_flags,
    summarize_effective_access,
)

from .adapters.base import ShareAdapter
from .factory import ShareAdapterFactory
from .models import RevokeGrantResponse, SharingOverview, UpsertGrantRequest

logger = logging.getLogger(__name__)


class SharingService:
    """Adapter-agnostic sharing operations for the current profile."""

    def __init__(self, db: StorageClient, actor: Profile):
        self.db = db
        self.actor = actor
        self.factory = ShareAdapterFactory(db)

    def adapter_for(self, entity_type: str, entity_id: str) -> ShareAdapter:
        return self.factory.get_adapter(entity_type, entity_id, self.actor)

    async def get_overview(self, entity_type: str, entity_id: str) -> SharingOverview:
        """Load title, grants and the actor's management right concurrently."""
        adapter = self.adapter_for(entity_type, entity_id)
        title, grants, can_manage = await asyncio.gather(
            adapter.get_entity_title(),
            adapter.list_grants(),
            adapter.can_manage_permissions(),
        )
        return SharingOverview(
            entity_type=adapter.entity_type,
            entity_id=entity_id,
            title=title,
            grants=grants,
            can_manage=can_manage,
            summary=summarize_effective_access(grants),
        )

    async def _require_manage(self, adapter: ShareAdapter) -> None:
        # can_manage_permissions gates on has_access(actor_flags, MANAGE)
        if not await adapter.can_manage_permissions():
            raise NotAuthorizedError(
                f"Only the owner or a manager of this {adapter.entity_label} "
                "can manage sharing"
            )

    async def upsert_grant(
        self, entity_type: str, entity_id: str, request: UpsertGrantRequest
    ) -> GrantWithDisplay:
        adapter = self.adapter_for(entity_type, entity_id)
        await self._require_manage(adapter)

        if (
            request.subject_type == PermissionSubjectType.USER
            and request.subject_id == self.actor.id
        ):
            raise InvalidDataError("You cannot change your own access")

        flags = request.flags
        if flags is None:
            if request.role is None:
                raise InvalidDataError("Either role or flags must be provided")
            flags = role_to_flags(request.role, request.detail_level, request.scope)

        grant = await adapter.upsert_grant(request.subject_type, request.subject_id, flags)
        logger.info(
            f"{self.actor.id} shared {adapter.entity_type}:{entity_id} with "
            f"{request.subject_type.value}:{request.subject_id} as {grant.role.value}"
        )
        return grant

    async def revoke_grant(
        self,
        entity_type: str,
        entity_id: str,
        subject_type: PermissionSubjectType,
        subject_id: str,
    ) -> RevokeGrantResponse:
        adapter = self.adapter_for(entity_type, entity_id)
        await self._require_manage(adapter)

        revoked = await adapter.revoke_grant(subject_type, subject_id)
        if revoked:
            logger.info(
                f"{self.actor.id} revoked {subject_type.value}:{subject_id} "
                f"from {adapter.entity_type}:{entity_id}"
            )
        return RevokeGrantResponse(
            subject_type=subject_type, subject_id=subject_id, revoked=revoked
        )

    async def preview_scope_impact(
        self, entity_type: str, entity_id: str, scope: ShareScope
    ) -> ScopeImpact:
        adapter = self.adapter_for(entity_type, entity_id)
        await self._require_manage(adapter)
        return await adapter.preview_scope_impact(scope)
