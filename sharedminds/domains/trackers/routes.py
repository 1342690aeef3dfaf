from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sharedminds.core.database import StorageClient, get_db
from sharedminds.domains.auth.dependencies import get_current_profile
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.exceptions import EntityNotFoundError

from .permissions import (
    TrackerAccessRole,
    TrackerPermissionEntry,
    TrackerPermissions,
    TrackerPermissionService,
)

router = APIRouter(prefix="/trackers", tags=["Trackers"])


class GrantTrackerPermissionRequest(BaseModel):
    profile_id: str
    access_role: TrackerAccessRole = TrackerAccessRole.VIEWER


@router.get(
    "/{tracker_id}/permissions",
    response_model=list[TrackerPermissionEntry],
    operation_id="listTrackerPermissions",
)
async def list_tracker_permissions(
    tracker_id: str,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> list[TrackerPermissionEntry]:
    service = TrackerPermissionService(db)
    resolved = await service.resolve_tracker_permissions(tracker_id, profile)
    if not resolved.flags.can_view:
        raise EntityNotFoundError("Tracker", tracker_id)
    return await service.list_tracker_permissions(tracker_id)


@router.get(
    "/{tracker_id}/permissions/me",
    response_model=TrackerPermissions,
    operation_id="resolveTrackerPermissions",
)
async def resolve_my_tracker_permissions(
    tracker_id: str,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> TrackerPermissions:
    service = TrackerPermissionService(db)
    return await service.resolve_tracker_permissions(tracker_id, profile)


@router.put(
    "/{tracker_id}/permissions",
    response_model=TrackerPermissionEntry,
    operation_id="grantTrackerPermission",
)
async def grant_tracker_permission(
    tracker_id: str,
    request: GrantTrackerPermissionRequest,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> TrackerPermissionEntry:
    """Grant or restore access. Owners cannot grant to themselves."""
    service = TrackerPermissionService(db)
    return await service.grant_tracker_permission(
        tracker_id, request.profile_id, request.access_role, profile
    )


@router.delete(
    "/{tracker_id}/permissions/{profile_id}",
    operation_id="revokeTrackerPermission",
)
async def revoke_tracker_permission(
    tracker_id: str,
    profile_id: str,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> dict[str, bool]:
    service = TrackerPermissionService(db)
    revoked = await service.revoke_tracker_permission(tracker_id, profile_id, profile)
    return {"revoked": revoked}
