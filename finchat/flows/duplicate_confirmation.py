"""Yes/no confirmation for a transaction flagged as a possible duplicate."""

from __future__ import annotations

import structlog

from finchat.analytics import AnalyticsEvent, AnalyticsSink, track
from finchat.cascade.types import Outcome
from finchat.conversation.contexts import DuplicateConfirmationContext
from finchat.conversation.store import ConversationStore, get_context_of
from finchat.i18n.catalog import format_currency, format_date, get_message
from finchat.i18n.render import transaction_added
from finchat.infra.errors import LedgerError
from finchat.infra.text import is_no, is_yes
from finchat.ledger.duplicates import DuplicateCheck
from finchat.ledger.repository import LedgerRepository, generate_readable_id
from finchat.ledger.types import TransactionDraft, TransactionRecord

logger = structlog.get_logger()

ACTION = "duplicate_confirmation"


def describe_match(record: TransactionRecord, locale: str | None = None) -> str:
    description = record.description or get_message("no_category", locale)
    return f"{format_currency(record.amount)} - {description} ({format_date(record.date)})"


class DuplicateConfirmationFlow:
    def __init__(
        self,
        store: ConversationStore,
        ledger: LedgerRepository,
        *,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._analytics = analytics

    async def warn(
        self,
        conversant: str,
        *,
        user_id: str,
        draft: TransactionDraft,
        check: DuplicateCheck,
        locale: str,
    ) -> Outcome:
        """Block outright above the block threshold, otherwise park the draft and ask."""
        transaction = describe_match(check.match, locale) if check.match else ""
        track(
            self._analytics,
            AnalyticsEvent.duplicate_detected,
            user_id,
            confidence=check.confidence,
            blocked=check.blocked,
        )
        if check.blocked:
            reason = get_message("duplicate_reason_blocked", locale, transaction=transaction)
            return Outcome.failed(
                get_message("duplicate_blocked", locale, reason=reason), "duplicate blocked", action="add_expense"
            )

        duplicate_id = generate_readable_id()
        await self._store.put(
            conversant,
            DuplicateConfirmationContext(
                duplicate_id=duplicate_id, user_id=user_id, transaction=draft, locale=locale
            ),
        )
        reason = get_message("duplicate_reason_similar", locale, transaction=transaction)
        logger.info("duplicate_warning_issued", conversant=conversant, duplicate_id=duplicate_id)
        return Outcome.ok(
            get_message(
                "duplicate_warning",
                locale,
                reason=reason,
                confidence=round(check.confidence * 100),
                duplicate_id=duplicate_id,
            ),
            action=ACTION,
        )

    async def handle(self, conversant: str, text: str) -> Outcome:
        context = await get_context_of(self._store, conversant, DuplicateConfirmationContext)
        if context is None:
            return Outcome.failed(get_message("duplicate_invalid"), "no pending duplicate", action=ACTION)
        locale = context.locale

        if is_yes(text):
            await self._store.take_and_clear(conversant)
            try:
                record = await self._ledger.create_transaction(context.user_id, context.transaction)
            except LedgerError as exc:
                return Outcome.failed(get_message("generic_error", locale), str(exc), action=ACTION)
            track(self._analytics, AnalyticsEvent.transaction_created, context.user_id, via="duplicate_confirmation")
            return Outcome.ok(
                [get_message("duplicate_confirmed", locale), transaction_added(record, locale)], action=ACTION
            )

        if is_no(text):
            await self._store.clear(conversant)
            return Outcome.ok(get_message("duplicate_cancelled", locale), action="duplicate_cancelled")

        return Outcome.failed(get_message("duplicate_invalid", locale), "confirmation not recognized", action=ACTION)
