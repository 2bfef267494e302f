"""Category budgets: set a monthly or default limit and show progress for the current month."""

from __future__ import annotations

from finchat.cascade.types import Outcome
from finchat.executor.base import ActionHandler, HandlerContext
from finchat.i18n.catalog import format_currency, get_message
from finchat.ledger.budgets import BudgetRepository
from finchat.ledger.repository import LedgerRepository
from finchat.ledger.types import BudgetStatus, TransactionType
from finchat.nlp.entities import as_amount, as_int, as_text
from finchat.nlp.intent import ResolvedIntent


def _status_key(percentage: int) -> str:
    if percentage >= 100:
        return "budget_status_exceeded"
    if percentage >= 80:
        return "budget_status_warning"
    if percentage >= 50:
        return "budget_status_on_track"
    return "budget_status_good"


def _status_lines(status: BudgetStatus, locale: str) -> list[str]:
    return [
        get_message(
            "budget_line",
            locale,
            category=status.category_name,
            marker=" 🔄" if status.is_default else "",
            amount=format_currency(status.amount),
            spent=format_currency(status.spent),
            percentage=status.percentage,
            remaining=format_currency(status.remaining),
        ),
        get_message(_status_key(status.percentage), locale),
    ]


class BudgetHandler(ActionHandler):
    def __init__(self, ledger: LedgerRepository, budgets: BudgetRepository) -> None:
        self._ledger = ledger
        self._budgets = budgets

    @property
    def actions(self) -> frozenset[str]:
        return frozenset({"set_budget", "show_budget"})

    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        if intent.action == "set_budget":
            return await self._set(intent, context)
        return await self._show(intent, context)

    async def _set(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        user_id = context.require_user()
        amount = as_amount(intent.entities.get("amount"))
        category_name = as_text(intent.entities.get("category"))
        if amount is None or amount <= 0 or category_name is None:
            return Outcome.failed(
                get_message("budget_missing_fields", locale),
                "missing budget amount or category",
                action=intent.action,
            )

        category = await self._ledger.find_category(user_id, category_name, type_=TransactionType.expense)
        if category is None:
            return Outcome.failed(
                get_message("budget_category_not_found", locale, category=category_name),
                "category not found",
                action=intent.action,
            )

        if intent.entities.get("is_default") is True:
            await self._budgets.set_budget(user_id, category.id, amount)
            reply = get_message(
                "default_budget_set", locale, category=category.name, amount=format_currency(amount)
            )
            return Outcome.ok(reply, action=intent.action)

        month = as_int(intent.entities.get("month")) or context.today.month
        year = as_int(intent.entities.get("year")) or context.today.year
        if not 1 <= month <= 12:
            month = context.today.month
        await self._budgets.set_budget(user_id, category.id, amount, year=year, month=month)
        reply = get_message(
            "budget_set",
            locale,
            category=category.name,
            amount=format_currency(amount),
            month=month,
            year=year,
        )
        return Outcome.ok(reply, action=intent.action)

    async def _show(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        today = context.today
        statuses = await self._budgets.budget_statuses(context.require_user(), today.year, today.month)
        if not statuses:
            return Outcome.ok(get_message("no_budgets", locale), action=intent.action)

        lines = [get_message("budgets_header", locale, month=today.month, year=today.year), ""]
        for status in statuses:
            lines += _status_lines(status, locale)
            lines.append("")
        if any(status.is_default for status in statuses):
            lines.append(get_message("budgets_default_legend", locale))
        return Outcome.ok("\n".join(lines).rstrip(), action=intent.action)
