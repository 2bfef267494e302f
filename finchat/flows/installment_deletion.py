"""Installment plan deletion: list, select by number, explicit confirmation."""

from __future__ import annotations

from dataclasses import replace

import structlog

from finchat.analytics import AnalyticsEvent, AnalyticsSink, track
from finchat.cascade.types import Outcome
from finchat.conversation.contexts import DeletionStep, InstallmentDeletionContext
from finchat.conversation.store import ConversationStore, get_context_of
from finchat.i18n.catalog import get_message
from finchat.i18n.render import deletion_confirmation, deletion_success, plan_list
from finchat.infra.errors import LedgerError
from finchat.infra.text import is_cancel, is_confirm, parse_index
from finchat.ledger.installments import InstallmentRepository

logger = structlog.get_logger()

ACTION = "delete_installment"


class InstallmentDeletionFlow:
    def __init__(
        self,
        store: ConversationStore,
        installments: InstallmentRepository,
        *,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        self._store = store
        self._installments = installments
        self._analytics = analytics

    async def start(self, conversant: str, *, user_id: str, locale: str) -> Outcome:
        try:
            plans = await self._installments.list_active_plans(user_id)
        except LedgerError as exc:
            return Outcome.failed(get_message("delete_error", locale), str(exc), action=ACTION)
        if not plans:
            return Outcome.ok(get_message("delete_no_active", locale), action=ACTION)

        await self._store.put(
            conversant,
            InstallmentDeletionContext(user_id=user_id, plans=tuple(plans), locale=locale),
        )
        return Outcome.ok(plan_list(plans, locale), action=ACTION)

    async def handle(self, conversant: str, text: str) -> Outcome:
        context = await get_context_of(self._store, conversant, InstallmentDeletionContext)
        if context is None:
            return Outcome.failed(get_message("delete_not_found"), "no pending deletion", action=ACTION)

        if is_cancel(text):
            await self._store.clear(conversant)
            track(
                self._analytics,
                AnalyticsEvent.installment_delete_cancelled,
                context.user_id,
                step=str(context.step),
            )
            return Outcome.ok(get_message("delete_cancelled", context.locale), action="delete_installment_cancelled")

        if context.step == DeletionStep.select:
            return await self._select(conversant, context, text)
        return await self._confirm(conversant, context, text)

    async def _select(self, conversant: str, context: InstallmentDeletionContext, text: str) -> Outcome:
        index = parse_index(text, len(context.plans))
        if index is None:
            numbers = f"1-{len(context.plans)}" if len(context.plans) > 1 else "1"
            return Outcome.failed(
                get_message("delete_invalid_selection", context.locale, numbers=numbers),
                "invalid plan selection",
                action=ACTION,
            )
        plan = context.plans[index]
        await self._store.put(
            conversant,
            replace(context, step=DeletionStep.confirm, selected_plan_id=plan.id),
        )
        return Outcome.ok(deletion_confirmation(plan, context.locale), action=ACTION)

    async def _confirm(self, conversant: str, context: InstallmentDeletionContext, text: str) -> Outcome:
        plan = context.selected_plan
        if plan is None:
            await self._store.clear(conversant)
            return Outcome.failed(
                get_message("delete_not_found", context.locale),
                "selected plan missing",
                action=ACTION,
            )

        if not is_confirm(text):
            return Outcome.failed(
                deletion_confirmation(plan, context.locale), "confirmation not recognized", action=ACTION
            )

        await self._store.take_and_clear(conversant)
        try:
            impact = await self._installments.delete_plan(context.user_id, plan.id)
        except LedgerError as exc:
            return Outcome.failed(get_message("delete_error", context.locale), str(exc), action=ACTION)
        if impact is None:
            return Outcome.failed(get_message("delete_not_found", context.locale), "plan not found", action=ACTION)

        track(
            self._analytics,
            AnalyticsEvent.installment_deleted,
            context.user_id,
            plan_id=plan.id,
            paid_unlinked=impact.paid_unlinked,
            pending_deleted=impact.pending_deleted,
        )
        logger.info("installment_deletion_completed", conversant=conversant, plan_id=plan.id)
        return Outcome.ok(deletion_success(impact, context.locale), action=ACTION)
