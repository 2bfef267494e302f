"""Single transactions: add, list, delete and edit by readable id."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from finchat.analytics import AnalyticsEvent, AnalyticsSink, track
from finchat.cascade.types import Outcome
from finchat.constants import DUPLICATE_LOOKBACK_LIMIT, DUPLICATE_WINDOW_HOURS
from finchat.executor.base import ActionHandler, HandlerContext
from finchat.flows.duplicate_confirmation import DuplicateConfirmationFlow
from finchat.flows.mode_selection import ModeSelectionFlow
from finchat.i18n.catalog import format_currency, format_date, get_message
from finchat.i18n.render import transaction_added
from finchat.infra.best_effort import best_effort
from finchat.ledger.duplicates import check_for_duplicate
from finchat.ledger.repository import LedgerRepository
from finchat.ledger.types import TransactionDraft, TransactionType
from finchat.nlp.entities import as_amount, as_date, as_text
from finchat.nlp.intent import ResolvedIntent

logger = structlog.get_logger()

LIST_LIMIT = 10


def transaction_type_of(intent: ResolvedIntent) -> str:
    if intent.action == "add_income" or intent.entities.get("type") == TransactionType.income:
        return TransactionType.income
    return TransactionType.expense


class TransactionHandler(ActionHandler):
    def __init__(
        self,
        ledger: LedgerRepository,
        *,
        mode_selection: ModeSelectionFlow,
        duplicates: DuplicateConfirmationFlow,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        self._ledger = ledger
        self._mode_selection = mode_selection
        self._duplicates = duplicates
        self._analytics = analytics

    @property
    def actions(self) -> frozenset[str]:
        return frozenset({
            "add_expense",
            "add_income",
            "show_expenses",
            "list_transactions",
            "delete_transaction",
            "edit_transaction",
        })

    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        if intent.action in ("add_expense", "add_income"):
            return await self._add(intent, context)
        if intent.action in ("show_expenses", "list_transactions"):
            return await self._list(intent, context)
        if intent.action == "delete_transaction":
            return await self._delete(intent, context)
        return await self._edit(intent, context)

    # -- add ----------------------------------------------------------------

    async def _add(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        user_id = context.require_user()
        locale = context.locale
        entities = intent.entities
        amount = as_amount(entities.get("amount"))
        if amount is None or amount <= 0:
            return Outcome.failed(get_message("invalid_amount", locale), "invalid amount", action=intent.action)

        type_ = transaction_type_of(intent)
        category = await self._ledger.find_category(user_id, as_text(entities.get("category")), type_=type_)

        payment_name = as_text(entities.get("payment_method"))
        if payment_name is None and category is not None and type_ == TransactionType.expense:
            payment_name = await best_effort(
                "payment_preference_suggest",
                self._ledger.suggest_payment_method(user_id, category.id),
                user_id=user_id,
            )
        payment_method = await self._ledger.find_payment_method(user_id, payment_name)

        draft = TransactionDraft(
            amount=amount,
            date=as_date(entities.get("date")) or context.today,
            type=type_,
            category_id=category.id if category else None,
            category_name=category.name if category else None,
            description=as_text(entities.get("description")),
            payment_method=payment_method.name if payment_method else payment_name,
            payment_method_id=payment_method.id if payment_method else None,
        )

        if context.interactive and payment_method is not None and payment_method.needs_mode_selection:
            return await self._mode_selection.start(
                context.conversant,
                user_id=user_id,
                payment_method_id=payment_method.id,
                draft=draft,
                locale=locale,
            )

        if context.interactive:
            recent = await self._ledger.recent_transactions(
                user_id,
                type_=type_,
                since=datetime.now(UTC) - timedelta(hours=DUPLICATE_WINDOW_HOURS),
                limit=DUPLICATE_LOOKBACK_LIMIT,
            )
            check = check_for_duplicate(draft, recent)
            if check.is_duplicate:
                return await self._duplicates.warn(
                    context.conversant, user_id=user_id, draft=draft, check=check, locale=locale
                )

        record = await self._ledger.create_transaction(user_id, draft)
        track(self._analytics, AnalyticsEvent.transaction_created, user_id, type=record.type)
        return Outcome.ok(transaction_added(record, locale), action=intent.action)

    # -- list ---------------------------------------------------------------

    async def _list(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        records = await self._ledger.list_transactions(context.require_user(), limit=LIST_LIMIT)
        if not records:
            return Outcome.ok(get_message("no_transactions", locale), action=intent.action)
        lines = [get_message("transactions_header", locale), ""]
        for record in records:
            lines.append(
                get_message(
                    "transaction_line",
                    locale,
                    transaction_id=record.readable_id,
                    date=format_date(record.date),
                    amount=format_currency(record.amount),
                    category=record.category_name or get_message("no_category", locale),
                    description=record.description or "",
                ).rstrip()
            )
        return Outcome.ok("\n".join(lines), action=intent.action)

    # -- corrections --------------------------------------------------------

    async def _delete(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        readable_id = as_text(intent.entities.get("transaction_id"))
        if readable_id is None:
            return Outcome.failed(
                get_message("correction_missing_id", locale),
                "missing transaction id",
                action=intent.action,
            )
        readable_id = readable_id.upper()
        deleted = await self._ledger.delete_transaction(context.require_user(), readable_id)
        if not deleted:
            return Outcome.failed(
                get_message("transaction_not_found", locale, transaction_id=readable_id),
                "transaction not found",
                action=intent.action,
            )
        logger.info("transaction_deleted", readable_id=readable_id)
        return Outcome.ok(get_message("transaction_deleted", locale, transaction_id=readable_id), action=intent.action)

    async def _edit(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        user_id = context.require_user()
        locale = context.locale
        readable_id = as_text(intent.entities.get("transaction_id"))
        if readable_id is None:
            return Outcome.failed(
                get_message("correction_missing_id", locale),
                "missing transaction id",
                action=intent.action,
            )
        readable_id = readable_id.upper()

        changes = await self._changes_from(user_id, intent.entities)
        if not changes:
            return Outcome.failed(
                get_message("correction_no_changes", locale),
                "no changes given",
                action=intent.action,
            )

        updated = await self._ledger.update_transaction(user_id, readable_id, changes)
        if not updated:
            return Outcome.failed(
                get_message("transaction_not_found", locale, transaction_id=readable_id),
                "transaction not found",
                action=intent.action,
            )
        logger.info("transaction_updated", readable_id=readable_id, fields=sorted(changes))
        return Outcome.ok(get_message("transaction_updated", locale, transaction_id=readable_id), action=intent.action)

    async def _changes_from(self, user_id: str, entities: dict[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        amount = as_amount(entities.get("amount"))
        if amount is not None and amount > 0:
            changes["amount"] = amount
        new_date = as_date(entities.get("date"))
        if new_date is not None:
            changes["date"] = new_date
        for key in ("payment_method", "description"):
            value = as_text(entities.get(key))
            if value is not None:
                changes[key] = value

        category_name = as_text(entities.get("category"))
        if category_name is not None:
            category = await self._ledger.find_category(user_id, category_name, type_=TransactionType.expense)
            if category is None:
                category = await self._ledger.find_category(user_id, category_name, type_=TransactionType.income)
            if category is None:
                logger.info("correction_category_unknown", category=category_name)
            else:
                changes["category_id"] = category.id
        return changes
