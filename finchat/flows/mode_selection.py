"""Credit-mode selection for a card whose tracking mode was never chosen.

The transaction that triggered the question is parked in the store and
replayed once the user answers. The mode write is guarded by "still unset",
so a repeated answer updates nothing.
"""

from __future__ import annotations

import structlog

from finchat.analytics import AnalyticsEvent, AnalyticsSink, track
from finchat.cascade.types import Outcome
from finchat.conversation.contexts import ModeSelectionContext
from finchat.conversation.store import ConversationStore, get_context_of
from finchat.i18n.catalog import get_message
from finchat.i18n.render import transaction_added
from finchat.infra.errors import LedgerError
from finchat.infra.text import is_cancel, normalize_text
from finchat.ledger.repository import LedgerRepository
from finchat.ledger.types import TransactionDraft

logger = structlog.get_logger()

ACTION = "credit_mode_selection"

_CREDIT_CHOICES = frozenset({"1", "credit", "credito", "modo credito", "credit mode"})
_SIMPLE_CHOICES = frozenset({"2", "simple", "simples", "modo simples", "simple mode"})


def parse_mode_choice(text: str) -> bool | None:
    """True for credit mode, False for simple mode, None when unrecognized."""
    normalized = normalize_text(text)
    if normalized in _CREDIT_CHOICES:
        return True
    if normalized in _SIMPLE_CHOICES:
        return False
    return None


class ModeSelectionFlow:
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

    async def start(
        self,
        conversant: str,
        *,
        user_id: str,
        payment_method_id: str,
        draft: TransactionDraft,
        locale: str,
    ) -> Outcome:
        await self._store.put(
            conversant,
            ModeSelectionContext(
                user_id=user_id,
                payment_method_id=payment_method_id,
                transaction=draft,
                locale=locale,
            ),
        )
        logger.info("credit_mode_prompted", conversant=conversant, payment_method_id=payment_method_id)
        return Outcome.ok(get_message("credit_mode_prompt", locale), action=ACTION)

    async def handle(self, conversant: str, text: str) -> Outcome:
        context = await get_context_of(self._store, conversant, ModeSelectionContext)
        if context is None:
            return Outcome.failed(get_message("credit_mode_no_pending"), "no pending mode selection", action=ACTION)
        locale = context.locale

        if is_cancel(text):
            await self._store.clear(conversant)
            return Outcome.ok(get_message("credit_mode_cancelled", locale), action="credit_mode_cancelled")

        credit_mode = parse_mode_choice(text)
        if credit_mode is None:
            return Outcome.failed(get_message("credit_mode_invalid", locale), "invalid mode choice", action=ACTION)

        await self._store.take_and_clear(conversant)
        try:
            updated = await self._ledger.set_credit_mode_if_unset(
                context.user_id, context.payment_method_id, credit_mode
            )
        except LedgerError as exc:
            return Outcome.failed(get_message("credit_mode_update_failed", locale), str(exc), action=ACTION)

        if updated:
            track(
                self._analytics,
                AnalyticsEvent.credit_mode_selected,
                context.user_id,
                payment_method_id=context.payment_method_id,
                credit_mode=credit_mode,
            )
        else:
            logger.info("credit_mode_already_set", payment_method_id=context.payment_method_id)

        confirmation = get_message(
            "credit_mode_confirmed_credit" if credit_mode else "credit_mode_confirmed_simple", locale
        )
        try:
            record = await self._ledger.create_transaction(context.user_id, context.transaction)
        except LedgerError as exc:
            return Outcome.failed(
                [confirmation, get_message("credit_mode_transaction_failed", locale)], str(exc), action=ACTION
            )
        return Outcome.ok([confirmation, transaction_added(record, locale)], action=ACTION)
