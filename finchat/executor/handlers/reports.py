"""Read-only views: monthly report and the category list."""

from __future__ import annotations

from finchat.cascade.types import Outcome
from finchat.executor.base import ActionHandler, HandlerContext
from finchat.i18n.catalog import format_currency, get_message
from finchat.infra.text import normalize_text
from finchat.ledger.repository import LedgerRepository
from finchat.nlp.entities import as_int, as_text
from finchat.nlp.intent import ResolvedIntent


class ReportHandler(ActionHandler):
    def __init__(self, ledger: LedgerRepository) -> None:
        self._ledger = ledger

    @property
    def actions(self) -> frozenset[str]:
        return frozenset({"show_report"})

    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        month = as_int(intent.entities.get("month")) or context.today.month
        year = as_int(intent.entities.get("year")) or context.today.year
        if not 1 <= month <= 12:
            month = context.today.month

        report = await self._ledger.monthly_report(context.require_user(), year, month)
        lines = [
            get_message("report_header", locale, month=month, year=year),
            "",
            get_message(
                "report_summary",
                locale,
                income=format_currency(report.income),
                expenses=format_currency(report.expenses),
                balance=format_currency(report.balance),
            ),
        ]

        wanted = as_text(intent.entities.get("category"))
        rows = report.by_category
        if wanted is not None:
            key = normalize_text(wanted)
            rows = tuple(row for row in rows if key in normalize_text(row[0]))
        if rows:
            lines.append("")
            for name, amount in rows:
                lines.append(
                    get_message(
                        "report_category_line",
                        locale,
                        category=name or get_message("no_category", locale),
                        amount=format_currency(amount),
                    )
                )
        return Outcome.ok("\n".join(lines), action=intent.action)


class CategoryHandler(ActionHandler):
    def __init__(self, ledger: LedgerRepository) -> None:
        self._ledger = ledger

    @property
    def actions(self) -> frozenset[str]:
        return frozenset({"list_categories"})

    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        categories = await self._ledger.list_categories(context.require_user())
        if not categories:
            return Outcome.ok(get_message("no_categories", locale), action=intent.action)
        lines = [get_message("categories_header", locale), ""]
        lines += [get_message("category_line", locale, name=category.name) for category in categories]
        return Outcome.ok("\n".join(lines), action=intent.action)
