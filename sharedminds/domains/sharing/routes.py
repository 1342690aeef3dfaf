from fastapi import APIRouter, Depends, Query

from sharedminds.core.database import StorageClient, get_db
from sharedminds.domains.auth.dependencies import get_current_profile
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.permissions.models import (
    AccessLevel,
    GrantWithDisplay,
    PermissionFlags,
    PermissionSubjectType,
    ScopeImpact,
    ShareScope,
)
from sharedminds.shared.permissions.resolver import (
    EntityPermissionResolver,
    ResolvableEntityType,
    ResolvedEntityPermission,
)

from .dependencies import require_entity_access
from .models import RevokeGrantResponse, SharingOverview, UpsertGrantRequest
from .service import SharingService

router = APIRouter(prefix="/sharing", tags=["Sharing"])


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=SharingOverview,
    operation_id="getSharingOverview",
)
async def get_sharing_overview(
    entity_type: str,
    entity_id: str,
    flags: PermissionFlags = Depends(require_entity_access(AccessLevel.VIEW)),
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> SharingOverview:
    """
    Get the sharing drawer state for an entity.

    Returns the entity title, every grant resolved to canonical flags, whether
    the caller may manage sharing, and an effective access summary.
    """
    service = SharingService(db, profile)
    return await service.get_overview(entity_type, entity_id)


@router.put(
    "/{entity_type}/{entity_id}/grants",
    response_model=GrantWithDisplay,
    operation_id="upsertGrant",
)
async def upsert_grant(
    entity_type: str,
    entity_id: str,
    request: UpsertGrantRequest,
    flags: PermissionFlags = Depends(require_entity_access(AccessLevel.MANAGE)),
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> GrantWithDisplay:
    """Create or update a subject's access. Repeating a request is a no-op."""
    service = SharingService(db, profile)
    return await service.upsert_grant(entity_type, entity_id, request)


@router.delete(
    "/{entity_type}/{entity_id}/grants/{subject_type}/{subject_id}",
    response_model=RevokeGrantResponse,
    operation_id="revokeGrant",
)
async def revoke_grant(
    entity_type: str,
    entity_id: str,
    subject_type: PermissionSubjectType,
    subject_id: str,
    flags: PermissionFlags = Depends(require_entity_access(AccessLevel.MANAGE)),
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> RevokeGrantResponse:
    """Revoke a subject's access. Revoking twice reports revoked=false."""
    service = SharingService(db, profile)
    return await service.revoke_grant(entity_type, entity_id, subject_type, subject_id)


@router.get(
    "/{entity_type}/{entity_id}/preview",
    response_model=ScopeImpact,
    operation_id="previewScopeImpact",
)
async def preview_scope_impact(
    entity_type: str,
    entity_id: str,
    scope: ShareScope = Query(ShareScope.INCLUDE_CHILDREN),
    flags: PermissionFlags = Depends(require_entity_access(AccessLevel.MANAGE)),
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> ScopeImpact:
    service = SharingService(db, profile)
    return await service.preview_scope_impact(entity_type, entity_id, scope)


@router.get(
    "/{entity_type}/{entity_id}/effective-access",
    response_model=ResolvedEntityPermission,
    operation_id="getEffectiveEntityAccess",
)
async def get_effective_entity_access(
    entity_type: ResolvableEntityType,
    entity_id: str,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> ResolvedEntityPermission:
    """
    Resolve the caller's own access to a track or subtrack.

    Project membership gates and caps the result; creator rights and entity
    grants can only raise it up to the project role.
    """
    return await EntityPermissionResolver(db).resolve(entity_type, entity_id, profile.id)
