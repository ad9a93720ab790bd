from fastapi import Depends, Request, HTTPException, status
from typing import Optional, Dict
import logging
from auth import decode_access_token, check_rbac
from dependencies import get_db
from models import CurrentUser, UserRole
from services.user_service import to_current_user

logger = logging.getLogger(__name__)


def get_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def get_token_payload(request: Request) -> Optional[Dict]:
    """Extract and validate the JWT payload, or None."""
    token = get_bearer_token(request)
    if not token:
        return None
    return decode_access_token(token)


async def get_current_user(request: Request, db=Depends(get_db)) -> CurrentUser:
    """Resolve the caller once per request.

    Plan tier and role come from the users collection, not the token, so an
    upgrade applies on the next request.
    """
    payload = get_token_payload(request)
    if not payload or not payload.get("user_id"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = await db.users.find_one({"user_id": payload["user_id"]}, {"_id": 0})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return to_current_user(user)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Require admin role."""
    if not check_rbac(user.role, UserRole.ADMIN):
        logger.warning(f"Non-admin user {user.id} attempted an admin operation")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden"
        )
    return user
