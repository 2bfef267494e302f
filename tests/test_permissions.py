"""Tests for the permission table and AuthorizationRecord checks."""

from __future__ import annotations

import pytest

from finchat.auth.gate import AuthorizationRecord
from finchat.auth.permissions import (
    Permission,
    PermissionSet,
    is_action_allowed,
    required_permission,
)


class TestPermissionSet:
    def test_from_mapping_missing_keys_deny(self) -> None:
        perms = PermissionSet.from_mapping({"can_view": True, "unknown_flag": True})
        assert perms.can_view
        assert not perms.can_add
        assert not perms.can_delete

    def test_from_none(self) -> None:
        assert PermissionSet.from_mapping(None) == PermissionSet()

    def test_full(self) -> None:
        full = PermissionSet.full()
        assert all(full.allows(p) for p in Permission)


class TestActionTable:
    @pytest.mark.parametrize(
        ("action", "permission"),
        [
            ("add_expense", Permission.add),
            ("create_installment", Permission.add),
            ("list_transactions", Permission.view),
            ("edit_transaction", Permission.edit),
            ("delete_installment", Permission.delete),
            ("show_report", Permission.view_reports),
            ("set_budget", Permission.manage_budgets),
            ("show_budget", Permission.view),
        ],
    )
    def test_required_permission(self, action: str, permission: Permission) -> None:
        assert required_permission(action) == permission

    @pytest.mark.parametrize("action", ["login", "help", "logout", "unknown"])
    def test_actions_without_permission(self, action: str) -> None:
        assert required_permission(action) is None
        assert is_action_allowed(None, action)

    def test_view_only_user(self) -> None:
        perms = PermissionSet(can_view=True)
        assert is_action_allowed(perms, "show_expenses")
        assert not is_action_allowed(perms, "add_expense")
        assert not is_action_allowed(perms, "show_report")

    def test_no_permission_set_denies_gated_action(self) -> None:
        assert not is_action_allowed(None, "add_expense")


class TestAuthorizationRecord:
    def test_unauthorized_never_allows(self) -> None:
        record = AuthorizationRecord(authorized=False, permissions=PermissionSet.full())
        assert not record.allows("help")
        assert not record.allows("add_expense")

    def test_authorized_follows_permissions(self) -> None:
        record = AuthorizationRecord(authorized=True, user_id="u1", permissions=PermissionSet(can_add=True))
        assert record.allows("add_expense")
        assert not record.allows("delete_transaction")
