"""Plan Gating Service - free vs pro limits.

Quantity limits are applied by the editor item operations (add/remove on the
gated lists). The canonical save route accepts any valid document unless
ENFORCE_PLAN_LIMITS is switched on, in which case over-limit documents from
free users are rejected there as well.
"""
from typing import Any, Dict, Optional, Tuple
import logging
import os

from models import PlanTier

logger = logging.getLogger(__name__)

FREE_ITEM_LIMIT = 3

# Lists whose size is limited on the free plan
GATED_SECTIONS = ("experiences", "projects")

PLAN_FEATURES = {
    PlanTier.FREE: {
        "max_experiences": FREE_ITEM_LIMIT,
        "max_projects": FREE_ITEM_LIMIT,
        "remove_items": False,
        "delete_account": False,
        "ai_assist": True,
    },
    PlanTier.PRO: {
        "max_experiences": None,  # unlimited
        "max_projects": None,
        "remove_items": True,
        "delete_account": True,
        "ai_assist": True,
    },
}

UPGRADE_MESSAGE = "Upgrade to Pro to add more than {limit} {section}."


def can_add_item(current_count: int, is_pro: bool) -> bool:
    """Free users may hold at most FREE_ITEM_LIMIT items per gated list."""
    return is_pro or current_count < FREE_ITEM_LIMIT


def can_remove_item(is_pro: bool) -> bool:
    """Removing items from a gated list is a pro feature."""
    return is_pro


def is_gated_section(section: str) -> bool:
    return section in GATED_SECTIONS


def get_plan_features(plan: PlanTier) -> Dict[str, Any]:
    return dict(PLAN_FEATURES.get(plan, PLAN_FEATURES[PlanTier.FREE]))


def plan_limits_enforced() -> bool:
    """Whether the save route also enforces quantity limits (off by default)."""
    return os.getenv("ENFORCE_PLAN_LIMITS", "false").strip().lower() in ("1", "true", "yes", "on")


def check_content_within_plan(content: Dict[str, Any], is_pro: bool) -> Tuple[bool, Optional[str]]:
    """
    Check a whole document against the owner's plan.

    Returns:
        (allowed: bool, error_message: Optional[str])
    """
    if is_pro:
        return True, None
    for section in GATED_SECTIONS:
        count = len(content.get(section) or [])
        if count > FREE_ITEM_LIMIT:
            return False, UPGRADE_MESSAGE.format(limit=FREE_ITEM_LIMIT, section=section)
    return True, None


def check_list_change(section: str, before_count: int, after_count: int, is_pro: bool) -> Tuple[bool, Optional[str]]:
    """
    Gate a replacement of one list section (editor "save section").

    Growing a gated list past the free limit, or shrinking it, needs pro.
    """
    if is_pro or not is_gated_section(section):
        return True, None
    if after_count > before_count and not can_add_item(after_count - 1, is_pro):
        return False, UPGRADE_MESSAGE.format(limit=FREE_ITEM_LIMIT, section=section)
    if after_count < before_count and not can_remove_item(is_pro):
        return False, f"Upgrade to Pro to remove {section}."
    return True, None
