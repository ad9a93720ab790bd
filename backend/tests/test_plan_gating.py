"""Free vs pro quantity limits."""
import os
from unittest.mock import patch

from models import PlanTier
from services.plan_gating import (
    FREE_ITEM_LIMIT,
    can_add_item,
    can_remove_item,
    check_content_within_plan,
    check_list_change,
    get_plan_features,
    plan_limits_enforced,
)


class TestCanAddItem:
    def test_free_user_below_limit(self):
        assert can_add_item(0, False) is True
        assert can_add_item(2, False) is True

    def test_free_user_at_limit(self):
        assert can_add_item(FREE_ITEM_LIMIT, False) is False
        assert can_add_item(10, False) is False

    def test_pro_user_unlimited(self):
        assert can_add_item(1000, True) is True


def test_only_pro_may_remove():
    assert can_remove_item(True) is True
    assert can_remove_item(False) is False


def test_plan_features_lookup():
    assert get_plan_features(PlanTier.PRO)["delete_account"] is True
    assert get_plan_features(PlanTier.FREE)["delete_account"] is False
    assert get_plan_features(PlanTier.FREE)["max_projects"] == FREE_ITEM_LIMIT


class TestDocumentCheck:
    def _doc(self, n_projects):
        return {"projects": [{"id": str(i)} for i in range(n_projects)], "experiences": []}

    def test_free_over_limit_rejected(self):
        allowed, message = check_content_within_plan(self._doc(4), is_pro=False)
        assert allowed is False
        assert "Upgrade to Pro" in message

    def test_free_at_limit_allowed(self):
        assert check_content_within_plan(self._doc(3), is_pro=False) == (True, None)

    def test_pro_never_rejected(self):
        assert check_content_within_plan(self._doc(50), is_pro=True) == (True, None)


class TestListChange:
    def test_growth_past_limit_needs_pro(self):
        assert check_list_change("projects", 3, 4, is_pro=False)[0] is False
        assert check_list_change("projects", 2, 3, is_pro=False)[0] is True

    def test_shrinking_needs_pro(self):
        assert check_list_change("experiences", 2, 1, is_pro=False)[0] is False
        assert check_list_change("experiences", 2, 1, is_pro=True)[0] is True

    def test_ungated_sections_unrestricted(self):
        assert check_list_change("skills", 10, 2, is_pro=False) == (True, None)


def test_enforcement_flag_defaults_off():
    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop("ENFORCE_PLAN_LIMITS", None)
        assert plan_limits_enforced() is False
    with patch.dict(os.environ, {"ENFORCE_PLAN_LIMITS": "true"}):
        assert plan_limits_enforced() is True
