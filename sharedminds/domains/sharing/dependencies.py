from typing import Awaitable, Callable

from fastapi import Depends, HTTPException, status

from sharedminds.core.database import StorageClient, get_db
from sharedminds.domains.auth.dependencies import get_current_profile
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.permissions.models import AccessLevel, PermissionFlags
from sharedminds.shared.permissions.services import has_access

from .factory import ShareAdapterFactory


def require_entity_access(
    access: AccessLevel,
) -> Callable[..., Awaitable[PermissionFlags]]:
    """
    Dependency factory for entity-level authorization.

    Creates a dependency that resolves the current profile's flags on the
    entity named by the path and validates the requested access.

    Args:
        access: The access level required to reach the endpoint

    Returns:
        Async dependency function that validates access and returns the flags
    """

    async def check_access(
        entity_type: str,
        entity_id: str,
        profile: Profile = Depends(get_current_profile),
        db: StorageClient = Depends(get_db),
    ) -> PermissionFlags:
        """
        Validate the profile has the required access to the entity.

        Raises:
            HTTPException: If the profile lacks the required access
        """
        adapter = ShareAdapterFactory(db).get_adapter(entity_type, entity_id, profile)
        flags = await adapter.resolve_actor_flags()

        # Entities the caller cannot view are reported as missing
        if not has_access(flags, AccessLevel.VIEW):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{adapter.entity_label.capitalize()} not found",
            )
        if not has_access(flags, access):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions: {AccessLevel(access).value} required",
            )
        return flags  # type: ignore[return-value]

    return check_access
