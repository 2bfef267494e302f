"""Per-number permission flags and the action -> required-permission table."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Any


class Permission(StrEnum):
    view = "view"
    add = "add"
    edit = "edit"
    delete = "delete"
    manage_budgets = "manage_budgets"
    view_reports = "view_reports"


@dataclass(frozen=True)
class PermissionSet:
    can_view: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_manage_budgets: bool = False
    can_view_reports: bool = False

    @classmethod
    def full(cls) -> PermissionSet:
        return cls(**{f.name: True for f in fields(cls)})

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> PermissionSet:
        """Build from the stored JSON; unknown keys are ignored, missing ones deny."""
        data = data or {}
        return cls(**{f.name: bool(data.get(f.name, False)) for f in fields(cls)})

    def allows(self, permission: Permission) -> bool:
        return getattr(self, f"can_{permission}")


# Actions not listed here need no permission (login, help, logout, unknown).
ACTION_PERMISSIONS: dict[str, Permission] = {
    "add_expense": Permission.add,
    "add_income": Permission.add,
    "create_installment": Permission.add,
    "show_expenses": Permission.view,
    "list_transactions": Permission.view,
    "list_categories": Permission.view,
    "view_future_commitments": Permission.view,
    "edit_transaction": Permission.edit,
    "delete_transaction": Permission.delete,
    "delete_installment": Permission.delete,
    "show_report": Permission.view_reports,
    "set_budget": Permission.manage_budgets,
    "show_budget": Permission.view,
}


def required_permission(action: str) -> Permission | None:
    return ACTION_PERMISSIONS.get(action)


def has_permission(permissions: PermissionSet | None, permission: Permission) -> bool:
    if permissions is None:
        return False
    return permissions.allows(permission)


def is_action_allowed(permissions: PermissionSet | None, action: str) -> bool:
    """True when ``action`` needs no permission or ``permissions`` grants it."""
    required = required_permission(action)
    if required is None:
        return True
    return has_permission(permissions, required)
