from fastapi import APIRouter, Depends, HTTPException, status
import logging

from dependencies import get_user_service
from middleware import get_current_user
from models import CurrentUser, ProfileUpdateRequest, UserResponse
from services.plan_gating import get_plan_features
from services.user_service import UserNotFoundError, UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/user", tags=["profile"])


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    try:
        updated = await users.update_profile(user.id, body.model_dump(exclude_none=True))
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse(**updated)


@router.delete("/profile")
async def delete_account(
    user: CurrentUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Delete the caller's account and portfolio. Pro feature."""
    if not get_plan_features(user.plan_tier)["delete_account"]:
        logger.warning(f"Free user {user.id} attempted account deletion")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Upgrade to Pro to delete your account."
        )
    try:
        await users.delete_account(user.id)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"success": True}
