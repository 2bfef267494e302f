"""Installment purchase with credit-card disambiguation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from finchat.analytics import AnalyticsEvent, AnalyticsSink, track
from finchat.cascade.types import Outcome
from finchat.constants import MAX_INSTALLMENTS, MIN_INSTALLMENTS
from finchat.conversation.contexts import InstallmentCreationContext
from finchat.conversation.store import ConversationStore, get_context_of
from finchat.i18n.catalog import get_message
from finchat.i18n.render import card_options, installment_created
from finchat.infra.errors import LedgerError
from finchat.infra.text import is_cancel, normalize_text, parse_index
from finchat.ledger.installments import InstallmentRepository
from finchat.ledger.repository import LedgerRepository
from finchat.ledger.types import InstallmentPlanDraft, PaymentMethod
from finchat.nlp.entities import as_amount, as_date, as_int

logger = structlog.get_logger()

ACTION = "create_installment"


def select_card(text: str, candidates: Sequence[PaymentMethod]) -> PaymentMethod | None:
    """1-based index, then exact name, then partial name (accent/case-insensitive)."""
    index = parse_index(text, len(candidates))
    if index is not None:
        return candidates[index]
    wanted = normalize_text(text)
    if not wanted:
        return None
    for card in candidates:
        if normalize_text(card.name) == wanted:
            return card
    for card in candidates:
        name = normalize_text(card.name)
        if wanted in name or name in wanted:
            return card
    return None


class InstallmentCreationFlow:
    def __init__(
        self,
        store: ConversationStore,
        ledger: LedgerRepository,
        installments: InstallmentRepository,
        *,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._installments = installments
        self._analytics = analytics

    async def start(
        self,
        conversant: str,
        *,
        user_id: str,
        entities: dict[str, Any],
        locale: str,
        today: date,
    ) -> Outcome:
        """Validate the purchase, then create it or ask which card was used."""
        amount = as_amount(entities.get("amount"))
        count = as_int(entities.get("installments"))
        if amount is None:
            return Outcome.failed(get_message("installment_clarify_amount", locale), "missing amount", action=ACTION)
        if count is None:
            return Outcome.failed(
                get_message("installment_clarify_installments", locale), "missing installments", action=ACTION
            )
        if amount <= 0:
            return Outcome.failed(
                get_message("installment_amount_positive", locale),
                "non-positive amount",
                action=ACTION,
            )
        if not MIN_INSTALLMENTS <= count <= MAX_INSTALLMENTS:
            return Outcome.failed(
                get_message("installment_count_range", locale),
                "installments out of range",
                action=ACTION,
            )

        try:
            cards = await self._ledger.list_credit_mode_cards(user_id)
        except LedgerError as exc:
            return Outcome.failed(get_message("installment_error", locale), str(exc), action=ACTION)

        if not cards:
            return Outcome.failed(
                get_message("installment_needs_credit_mode", locale), "no credit-mode card", action=ACTION
            )

        description = entities.get("description") or None
        merchant = entities.get("merchant") or None
        first_payment = as_date(entities.get("first_payment_date")) or today

        if len(cards) == 1:
            return await self._create(
                user_id,
                cards[0],
                amount=amount,
                count=count,
                description=description,
                merchant=merchant,
                first_payment=first_payment,
                locale=locale,
            )

        await self._store.put(
            conversant,
            InstallmentCreationContext(
                user_id=user_id,
                amount=amount,
                installments=count,
                candidates=tuple(cards),
                description=description,
                merchant=merchant,
                first_payment_date=first_payment,
                locale=locale,
            ),
        )
        logger.info("installment_card_prompted", conversant=conversant, candidates=len(cards))
        return Outcome.ok(get_message("installment_select_card", locale, options=card_options(cards)), action=ACTION)

    async def handle(self, conversant: str, text: str) -> Outcome:
        context = await get_context_of(self._store, conversant, InstallmentCreationContext)
        if context is None:
            return Outcome.failed(get_message("installment_no_pending"), "no pending installment", action=ACTION)
        locale = context.locale

        if is_cancel(text):
            await self._store.clear(conversant)
            return Outcome.ok(get_message("installment_cancelled", locale), action="create_installment_cancelled")

        card = select_card(text, context.candidates)
        if card is None:
            return Outcome.failed(
                get_message("installment_invalid_card", locale, options=card_options(context.candidates)),
                "card not recognized",
                action=ACTION,
            )

        await self._store.take_and_clear(conversant)
        return await self._create(
            context.user_id,
            card,
            amount=context.amount,
            count=context.installments,
            description=context.description,
            merchant=context.merchant,
            first_payment=context.first_payment_date or date.today(),
            locale=locale,
        )

    async def _create(
        self,
        user_id: str,
        card: PaymentMethod,
        *,
        amount: Decimal,
        count: int,
        description: str | None,
        merchant: str | None,
        first_payment: date,
        locale: str,
    ) -> Outcome:
        draft = InstallmentPlanDraft(
            payment_method_id=card.id,
            total_amount=amount,
            installments=count,
            first_payment_date=first_payment,
            description=description,
            merchant=merchant,
        )
        try:
            plan = await self._installments.create_plan(
                user_id, draft, default_description=get_message("installment_default_description", locale)
            )
        except LedgerError as exc:
            return Outcome.failed(get_message("installment_error", locale), str(exc), action=ACTION)

        track(
            self._analytics,
            AnalyticsEvent.installment_created,
            user_id,
            plan_id=plan.plan_id,
            installments=count,
            total_amount=str(amount),
        )
        return Outcome.ok(installment_created(plan, locale), action=ACTION)
