"""Password hashing and JWT session tokens.

Tokens carry ``user_id``, ``email`` and ``role``; plan tier is deliberately
absent and is always read from the users collection.
"""
from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
import os
from models import UserRole

# pbkdf2_sha256 avoids the bcrypt backend's 72-byte password limit
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-only-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

MIN_PASSWORD_LENGTH = 8
PASSWORD_RULES = (
    (str.isupper, "an uppercase letter"),
    (str.islower, "a lowercase letter"),
    (str.isdigit, "a number"),
)

ROLE_RANK = {UserRole.USER: 0, UserRole.ADMIN: 1}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format
        return False


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` with an expiry (default JWT_EXPIRATION_HOURS)."""
    claims = dict(data)
    claims["exp"] = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=JWT_EXPIRATION_HOURS))
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Claims of a valid, unexpired token, else None."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def refresh_access_token(token: str) -> Optional[str]:
    """Re-issue a still valid token with a fresh expiry."""
    claims = decode_access_token(token)
    if not claims:
        return None
    claims.pop("exp", None)
    return create_access_token(claims)


def validate_password_strength(password: str) -> tuple[bool, str]:
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    missing = [label for check, label in PASSWORD_RULES if not any(check(c) for c in password)]
    if missing:
        return False, "Password must contain " + " and ".join(missing)
    return True, "Password is valid"


def check_rbac(user_role: UserRole, required_role: UserRole) -> bool:
    """True when ``user_role`` ranks at or above ``required_role``."""
    return ROLE_RANK.get(user_role, 0) >= ROLE_RANK.get(required_role, 0)
