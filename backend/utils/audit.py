"""Audit trail for account, billing and portfolio changes.

Entries go to the ``audit_logs`` collection. Writing an entry never fails the
operation that triggered it; a failed write is logged and an empty id returned.
"""
from database import database
from models import AuditLog, AuditAction, UserRole
from typing import Optional, Dict, Any, List
import logging

logger = logging.getLogger(__name__)

_MISSING = object()


def calculate_diff(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Field-level diff between two flat states.

    Keys in the result (each present only when non-empty): ``added``,
    ``removed`` and ``changed`` (``{"from": old, "to": new}`` per key).
    """
    before = before or {}
    after = after or {}
    added, removed, changed = {}, {}, {}

    for key in sorted(set(before) | set(after)):
        old = before.get(key, _MISSING)
        new = after.get(key, _MISSING)
        if old is _MISSING:
            added[key] = new
        elif new is _MISSING:
            removed[key] = old
        elif old != new:
            changed[key] = {"from": old, "to": new}

    result = {"added": added, "removed": removed, "changed": changed}
    return {name: part for name, part in result.items() if part}


async def create_audit_log(
    action: AuditAction,
    actor_role: Optional[UserRole] = None,
    actor_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    before_state: Optional[Dict[str, Any]] = None,
    after_state: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    auto_diff: bool = True,
    db=None,
) -> str:
    """Record one audit entry and return its id ("" if the write failed).

    When both states are given and ``auto_diff`` is on, the diff and the
    number of changed fields are stored under ``metadata``.
    """
    try:
        db = db if db is not None else database.get_db()

        details = dict(metadata or {})
        if auto_diff and before_state and after_state:
            diff = calculate_diff(before_state, after_state)
            if diff:
                details["diff"] = diff
                details["changes_count"] = sum(len(part) for part in diff.values())

        entry = AuditLog(
            action=action,
            actor_role=actor_role,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            before_state=before_state,
            after_state=after_state,
            metadata=details or None,
        )
        doc = entry.model_dump()
        doc["timestamp"] = entry.timestamp.isoformat()

        await db.audit_logs.insert_one(doc)
        logger.info(f"Audit {action.value} on {resource_type}:{resource_id} by {actor_id}")
        return entry.audit_id
    except Exception as e:
        logger.error(f"Failed to create audit log for {action}: {e}")
        return ""


async def get_audit_logs_for_resource(
    resource_type: str,
    resource_id: str,
    limit: int = 50,
    db=None,
) -> List[Dict[str, Any]]:
    """Newest-first entries for one resource (e.g. a portfolio's save history)."""
    try:
        db = db if db is not None else database.get_db()
        cursor = db.audit_logs.find(
            {"resource_type": resource_type, "resource_id": resource_id},
            {"_id": 0, "before_state": 0, "after_state": 0},
        ).sort("timestamp", -1).limit(limit)
        return await cursor.to_list(length=limit)
    except Exception as e:
        logger.error(f"Failed to read audit logs for {resource_type}:{resource_id}: {e}")
        return []
