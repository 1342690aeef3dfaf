from fastapi import APIRouter, Depends

from sharedminds.core.database import StorageClient, get_db
from sharedminds.domains.auth.dependencies import get_current_profile
from sharedminds.domains.auth.models import Profile

from .models import Projection
from .service import ProjectionService

router = APIRouter(prefix="/projections", tags=["Projections"])


@router.post(
    "/{projection_id}/accept",
    response_model=Projection,
    operation_id="acceptProjection",
)
async def accept_projection(
    projection_id: str,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> Projection:
    """Accept a projection offered to the current profile."""
    return await ProjectionService(db).accept(projection_id, profile.id)


@router.post(
    "/{projection_id}/decline",
    response_model=Projection,
    operation_id="declineProjection",
)
async def decline_projection(
    projection_id: str,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> Projection:
    return await ProjectionService(db).decline(projection_id, profile.id)
