"""User Service - accounts, profiles, plan tier and admin management.

The ``users`` collection is the source of truth for plan tier and role; the
request boundary re-reads it on every call so a webhook upgrade takes effect
without a new token.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from pymongo.errors import DuplicateKeyError

from auth import hash_password, verify_password, validate_password_strength
from models import AuditAction, CurrentUser, PlanTier, User, UserRole
from utils.audit import create_audit_log

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "bio", "avatar_url")
ADMIN_FIELDS = ("role", "plan")


class UserNotFoundError(LookupError):
    pass


class UserAlreadyExistsError(ValueError):
    pass


class WeakPasswordError(ValueError):
    pass


def to_current_user(doc: Dict[str, Any]) -> CurrentUser:
    return CurrentUser(
        id=doc["user_id"],
        email=doc["email"],
        plan_tier=doc.get("plan") or PlanTier.FREE,
        role=doc.get("role") or UserRole.USER,
    )


class UserService:
    def __init__(self, db):
        self.db = db

    async def register(self, email: str, password: str, full_name: str) -> Dict[str, Any]:
        email = email.strip().lower()
        ok, message = validate_password_strength(password)
        if not ok:
            raise WeakPasswordError(message)

        if await self.db.users.find_one({"email": email}, {"_id": 0, "user_id": 1}):
            raise UserAlreadyExistsError("Email already registered")

        user = User(email=email, full_name=full_name.strip(), password_hash=hash_password(password))
        doc = user.model_dump(mode="python")
        doc["role"] = user.role.value
        doc["plan"] = user.plan.value
        try:
            await self.db.users.insert_one(dict(doc))
        except DuplicateKeyError:
            raise UserAlreadyExistsError("Email already registered")

        await create_audit_log(
            action=AuditAction.USER_REGISTERED,
            actor_role=UserRole.USER,
            actor_id=user.user_id,
            resource_type="user",
            resource_id=user.user_id,
            metadata={"email": email},
            db=self.db,
        )
        logger.info(f"Registered user {user.user_id}")
        doc.pop("_id", None)
        return doc

    async def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Returns the user document on success, else None."""
        email = email.strip().lower()
        user = await self.db.users.find_one({"email": email}, {"_id": 0})
        if not user or not user.get("password_hash") or not verify_password(password, user["password_hash"]):
            await create_audit_log(
                action=AuditAction.USER_LOGIN_FAILED,
                actor_id=user["user_id"] if user else None,
                metadata={"email": email, "reason": "invalid_credentials"},
                db=self.db,
            )
            return None

        now = datetime.now(timezone.utc)
        await self.db.users.update_one({"user_id": user["user_id"]}, {"$set": {"last_login_at": now}})
        user["last_login_at"] = now
        await create_audit_log(
            action=AuditAction.USER_LOGIN_SUCCESS,
            actor_role=user.get("role"),
            actor_id=user["user_id"],
            resource_type="user",
            resource_id=user["user_id"],
            db=self.db,
        )
        return user

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.users.find_one({"user_id": user_id}, {"_id": 0})

    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        changes = {k: v for k, v in updates.items() if k in PROFILE_FIELDS and v is not None}
        before = await self.get_user(user_id)
        if before is None:
            raise UserNotFoundError(user_id)
        if not changes:
            return before

        changes["updated_at"] = datetime.now(timezone.utc)
        await self.db.users.update_one({"user_id": user_id}, {"$set": changes})
        after = {**before, **changes}

        await create_audit_log(
            action=AuditAction.PROFILE_UPDATED,
            actor_role=before.get("role"),
            actor_id=user_id,
            resource_type="user",
            resource_id=user_id,
            before_state={k: before.get(k) for k in PROFILE_FIELDS},
            after_state={k: after.get(k) for k in PROFILE_FIELDS},
            db=self.db,
        )
        return after

    async def upgrade_to_pro(
        self,
        user_id: str,
        reference: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> None:
        """Set plan to pro. Idempotent; raises UserNotFoundError if no such user."""
        now = datetime.now(timezone.utc)
        changes = {"plan": PlanTier.PRO.value, "upgraded_at": now, "updated_at": now}
        if customer_email:
            changes["stripe_customer_email"] = customer_email
        result = await self.db.users.update_one({"user_id": user_id}, {"$set": changes})
        if result.matched_count == 0:
            raise UserNotFoundError(f"No user {user_id} to upgrade")

        logger.info(f"User {user_id} upgraded to pro (ref={reference})")
        await create_audit_log(
            action=AuditAction.PLAN_UPGRADED,
            actor_id=user_id,
            resource_type="user",
            resource_id=user_id,
            metadata={"plan": PlanTier.PRO.value, "stripe_session_id": reference},
            db=self.db,
        )

    async def _delete_user_data(self, user_id: str) -> bool:
        result = await self.db.users.delete_one({"user_id": user_id})
        if result.deleted_count == 0:
            return False
        portfolio = await self.db.portfolios.find_one({"owner_id": user_id}, {"_id": 0, "portfolio_id": 1})
        if portfolio:
            pid = portfolio["portfolio_id"]
            for name in ("portfolio_experiences", "portfolio_projects", "portfolio_skills"):
                await self.db[name].delete_many({"portfolio_id": pid})
            await self.db.portfolios.delete_many({"owner_id": user_id})
        return True

    async def delete_account(self, user_id: str) -> None:
        if not await self._delete_user_data(user_id):
            raise UserNotFoundError(user_id)
        await create_audit_log(
            action=AuditAction.ACCOUNT_DELETED,
            actor_id=user_id,
            resource_type="user",
            resource_id=user_id,
            db=self.db,
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def list_users(self, limit: int = 100, skip: int = 0) -> List[Dict[str, Any]]:
        cursor = (
            self.db.users.find({}, {"_id": 0, "password_hash": 0})
            .sort("created_at", -1)
            .skip(skip)
            .limit(limit)
        )
        return await cursor.to_list(length=limit)

    async def update_user(self, user_id: str, updates: Dict[str, Any], actor: CurrentUser) -> Dict[str, Any]:
        changes = {}
        for key in ADMIN_FIELDS:
            value = updates.get(key)
            if value is not None:
                changes[key] = value.value if hasattr(value, "value") else value

        before = await self.get_user(user_id)
        if before is None:
            raise UserNotFoundError(user_id)
        if not changes:
            return before

        changes["updated_at"] = datetime.now(timezone.utc)
        if changes.get("plan") == PlanTier.PRO.value and before.get("plan") != PlanTier.PRO.value:
            changes["upgraded_at"] = changes["updated_at"]
        await self.db.users.update_one({"user_id": user_id}, {"$set": changes})
        after = {**before, **changes}

        await create_audit_log(
            action=AuditAction.ADMIN_ACTION,
            actor_role=actor.role,
            actor_id=actor.id,
            resource_type="user",
            resource_id=user_id,
            before_state={k: before.get(k) for k in ADMIN_FIELDS},
            after_state={k: after.get(k) for k in ADMIN_FIELDS},
            metadata={"operation": "update_user"},
            db=self.db,
        )
        return after

    async def delete_user(self, user_id: str, actor: CurrentUser) -> None:
        if not await self._delete_user_data(user_id):
            raise UserNotFoundError(user_id)
        await create_audit_log(
            action=AuditAction.ADMIN_ACTION,
            actor_role=actor.role,
            actor_id=actor.id,
            resource_type="user",
            resource_id=user_id,
            metadata={"operation": "delete_user"},
            db=self.db,
        )
