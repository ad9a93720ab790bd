from fastapi import APIRouter, Depends, HTTPException, Request, status
from auth import create_access_token, refresh_access_token
from dependencies import get_user_service
from middleware import get_bearer_token, get_current_user
from models import CurrentUser, LoginRequest, RegisterRequest, TokenResponse, UserResponse
from services.user_service import UserAlreadyExistsError, UserService, WeakPasswordError
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _issue_token(user: dict) -> TokenResponse:
    token = create_access_token({
        "user_id": user["user_id"],
        "email": user["email"],
        "role": user.get("role"),
    })
    return TokenResponse(access_token=token, user=UserResponse(**user))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, users: UserService = Depends(get_user_service)):
    """Create an account on the free plan and sign it in."""
    try:
        user = await users.register(body.email, body.password, body.full_name)
    except WeakPasswordError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest, users: UserService = Depends(get_user_service)):
    user = await users.authenticate(credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )
    return _issue_token(user)


@router.post("/refresh")
async def refresh(request: Request):
    token = get_bearer_token(request)
    new_token = refresh_access_token(token) if token else None
    if not new_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return {"access_token": new_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
async def me(
    user: CurrentUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    doc = await users.get_user(user.id)
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse(**doc)
