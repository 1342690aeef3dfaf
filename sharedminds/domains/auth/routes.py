from fastapi import APIRouter, Depends

from sharedminds.domains.auth.dependencies import get_current_profile
from sharedminds.domains.auth.models import Profile, PublicProfile

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=PublicProfile, operation_id="getCurrentProfile")
async def get_me(profile: Profile = Depends(get_current_profile)) -> PublicProfile:
    """Return the caller's profile as seen by the permission engine."""
    return PublicProfile.from_profile(profile)
