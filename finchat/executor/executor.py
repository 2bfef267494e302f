"""Routes a ResolvedIntent to its handler after re-checking authorization."""

from __future__ import annotations

import dataclasses
from datetime import date

import structlog

from finchat.auth.gate import AuthorizationGate, AuthorizationRecord
from finchat.auth.permissions import required_permission
from finchat.cascade.types import Outcome
from finchat.executor.base import HandlerContext
from finchat.executor.registry import HandlerRegistry
from finchat.i18n.catalog import action_description, get_message
from finchat.infra.best_effort import best_effort
from finchat.infra.errors import LedgerError
from finchat.ledger.repository import LedgerRepository
from finchat.ledger.types import TransactionType
from finchat.nlp.entities import as_text
from finchat.nlp.intent import ResolvedIntent

logger = structlog.get_logger()

# Actions available without an authenticated user.
PUBLIC_ACTIONS = frozenset({"login", "help"})

AUTH_REQUIRED_ERROR = "Authentication required"


def _reply_text(outcome: Outcome) -> str:
    if outcome.reply is None:
        return ""
    if isinstance(outcome.reply, str):
        return outcome.reply
    return "\n".join(outcome.reply)


class IntentExecutor:
    """Execute one intent, or a batch of transactions, for one conversant.

    The executor never trusts an earlier authorization check: when no record
    is passed it asks the gate itself, and the permission table is always
    consulted again here.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        gate: AuthorizationGate,
        *,
        ledger: LedgerRepository | None = None,
    ) -> None:
        self._registry = registry
        self._gate = gate
        self._ledger = ledger

    async def execute(
        self,
        intent: ResolvedIntent,
        *,
        conversant: str,
        locale: str,
        today: date | None = None,
        auth: AuthorizationRecord | None = None,
    ) -> Outcome:
        if auth is None:
            auth = await self._gate.check_authorization(conversant)

        action = intent.action
        if action not in PUBLIC_ACTIONS and not auth.authorized:
            return Outcome.failed(get_message("login_prompt", locale), AUTH_REQUIRED_ERROR, action=action)

        required = required_permission(action)
        if required is not None and not auth.allows(action):
            logger.info("permission_denied", conversant=conversant, action=action, permission=str(required))
            return Outcome(
                reply=get_message("permission_denied", locale, action=action_description(action, locale)),
                success=False,
                action=action,
                error=f"Permission denied: {required}",
                confidence=intent.confidence,
                permission_required=str(required),
                permission_granted=False,
            )

        context = HandlerContext(
            conversant=conversant,
            user_id=auth.user_id if auth.authorized else None,
            locale=locale,
            today=today or date.today(),
            auth=auth,
        )

        if intent.batch:
            outcome = await self._execute_batch(intent, context)
        else:
            outcome = await self._execute_one(intent, context)
            if outcome.success and outcome.action == "add_expense":
                await self._learn_preference(context, intent)

        if required is not None:
            outcome = dataclasses.replace(outcome, permission_required=str(required), permission_granted=True)
        if outcome.confidence is None:
            outcome = dataclasses.replace(outcome, confidence=intent.confidence)
        return outcome

    async def _execute_one(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        handler = self._registry.get(intent.action)
        if handler is None:
            logger.info("action_unmapped", action=intent.action)
            return Outcome.failed(
                get_message("unknown_command", context.locale),
                "unknown action",
                action=intent.action,
            )
        try:
            return await handler.handle(intent, context)
        except LedgerError as exc:
            logger.error("action_failed", action=intent.action, code=exc.code, error=str(exc))
            return Outcome.failed(get_message("generic_error", context.locale), str(exc), action=intent.action)

    async def _execute_batch(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        """Run items strictly in order; item failures are reported, never retried."""
        items = intent.batch
        total = len(items)
        locale = context.locale
        item_context = dataclasses.replace(context, interactive=False)
        shared = {k: v for k, v in intent.entities.items() if k != "transactions"}

        lines = [get_message("batch_header", locale, count=total)]
        succeeded = 0
        for index, entities in enumerate(items, start=1):
            item = ResolvedIntent(intent.action, intent.confidence, {**shared, **entities})
            outcome = await self._execute_one(item, item_context)
            if outcome.success:
                succeeded += 1
                lines.append(get_message("batch_item", locale, index=index, total=total, result=_reply_text(outcome)))
            else:
                description = as_text(entities.get("description")) or get_message("batch_item_default", locale)
                lines.append(
                    get_message("batch_item_failed", locale, index=index, total=total, description=description)
                )
                logger.info("batch_item_failed", index=index, total=total, error=outcome.error)
        lines.append(get_message("batch_summary", locale, succeeded=succeeded, total=total))

        reply = "\n\n".join(lines)
        if succeeded == 0:
            return Outcome.failed(reply, f"all {total} batch items failed", action=intent.action)
        return Outcome.ok(reply, action=intent.action)

    async def _learn_preference(self, context: HandlerContext, intent: ResolvedIntent) -> None:
        if self._ledger is None or context.user_id is None:
            return
        category_name = as_text(intent.entities.get("category"))
        payment_method = as_text(intent.entities.get("payment_method"))
        if category_name is None or payment_method is None:
            return
        await best_effort(
            "payment_preference_learning",
            self._record_preference(context.user_id, category_name, payment_method),
            user_id=context.user_id,
        )

    async def _record_preference(self, user_id: str, category_name: str, payment_method: str) -> None:
        category = await self._ledger.find_category(user_id, category_name, type_=TransactionType.expense)
        if category is None:
            return
        await self._ledger.record_payment_preference(user_id, category.id, payment_method)
