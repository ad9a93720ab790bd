"""Admin user management."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from dependencies import get_user_service
from middleware import require_admin
from models import AdminUserUpdateRequest, CurrentUser
from services.user_service import UserNotFoundError, UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    skip: int = Query(0, ge=0),
    admin: CurrentUser = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return {"users": await users.list_users(limit=limit, skip=skip)}


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    body: AdminUserUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    try:
        updated = await users.update_user(user_id, body.model_dump(exclude_none=True), actor=admin)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    updated.pop("password_hash", None)
    logger.info(f"Admin {admin.id} updated user {user_id}")
    return {"user": updated}


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    admin: CurrentUser = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admins cannot delete themselves")
    try:
        await users.delete_user(user_id, actor=admin)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info(f"Admin {admin.id} deleted user {user_id}")
    return {"success": True}
