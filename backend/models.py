from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import uuid

# ============================================================================
# ENUMS (System Constants)
# ============================================================================

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"

class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"

class AuditAction(str, Enum):
    # Auth
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN_SUCCESS = "USER_LOGIN_SUCCESS"
    USER_LOGIN_FAILED = "USER_LOGIN_FAILED"

    # Portfolio
    PORTFOLIO_CREATED = "PORTFOLIO_CREATED"
    PORTFOLIO_SAVED = "PORTFOLIO_SAVED"
    PORTFOLIO_PUBLISH_TOGGLED = "PORTFOLIO_PUBLISH_TOGGLED"
    PLAN_GATE_DENIED = "PLAN_GATE_DENIED"

    # Billing
    CHECKOUT_STARTED = "CHECKOUT_STARTED"
    PLAN_UPGRADED = "PLAN_UPGRADED"

    # Files
    FILE_UPLOADED = "FILE_UPLOADED"

    # Account / admin
    PROFILE_UPDATED = "PROFILE_UPDATED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    ADMIN_ACTION = "ADMIN_ACTION"


# ============================================================================
# USERS
# ============================================================================

class User(BaseModel):
    """Stored user record (collection ``users``)."""
    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: EmailStr
    full_name: str
    password_hash: str
    role: UserRole = UserRole.USER
    plan: PlanTier = PlanTier.FREE
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    stripe_customer_email: Optional[str] = None
    upgraded_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: Optional[datetime] = None


class CurrentUser(BaseModel):
    """Typed user resolved once at the request boundary."""
    id: str
    email: str
    plan_tier: PlanTier = PlanTier.FREE
    role: UserRole = UserRole.USER

    @property
    def is_pro(self) -> bool:
        return self.plan_tier == PlanTier.PRO

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserResponse(BaseModel):
    """Safe user response (no password hash)"""
    model_config = ConfigDict(extra="ignore")

    user_id: str
    email: str
    full_name: str
    role: UserRole
    plan: PlanTier
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None


# ============================================================================
# PORTFOLIO RECORD
# ============================================================================

class PortfolioRecord(BaseModel):
    """One current content document per owner (collection ``portfolios``)."""
    model_config = ConfigDict(extra="ignore")

    portfolio_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    title: str
    description: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    version: int = 1
    is_published: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# AUDIT
# ============================================================================

class AuditLog(BaseModel):
    model_config = ConfigDict(extra="ignore")

    audit_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action: AuditAction
    actor_role: Optional[UserRole] = None
    actor_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# REQUEST / RESPONSE BODIES
# ============================================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(min_length=1, max_length=120)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class ProfileUpdateRequest(BaseModel):
    """Accepts the camelCase names the dashboard sends."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    full_name: Optional[str] = Field(None, min_length=1, max_length=120, alias="fullName")
    bio: Optional[str] = Field(None, max_length=2000)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")


class AdminUserUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[UserRole] = None
    plan: Optional[PlanTier] = None
