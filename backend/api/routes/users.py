"""
User-related endpoints.

Provides the profile of the signed-in organizer.
"""

from fastapi import APIRouter, Depends

from modules.auth.models import Profile
from ..middleware.auth import require_ready_user
from ..models.auth import ProfileResponse

router = APIRouter()


@router.get("/me", response_model=ProfileResponse)
async def get_current_user_profile(
    user: Profile = Depends(require_ready_user),
) -> ProfileResponse:
    """
    Get the current user's profile.

    Requires a signed-in user who has set a password.
    """
    return ProfileResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        password_set=user.password_set,
    )
