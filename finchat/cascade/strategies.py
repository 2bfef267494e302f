"""Ordered resolution strategies.

Each strategy either resolves the message (a ResolvedIntent for the executor,
or a finished Outcome) or declines so the next one is tried. Strategies never
record metrics; the resolver does that once per message.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import Any

import structlog

from finchat.ai.client import AIResolution, IntentModel, UserContext
from finchat.cascade.types import DECLINE, Decline, MessageContext, Outcome, Reply, StrategyResult
from finchat.constants import CORRECTION_MIN_CONFIDENCE, LOCAL_ACCEPT_CONFIDENCE
from finchat.conversation.contexts import (
    CorrectionContext,
    DuplicateConfirmationContext,
    InstallmentCreationContext,
    InstallmentDeletionContext,
    ModeSelectionContext,
)
from finchat.conversation.store import ConversationStore, get_context_of
from finchat.executor.executor import AUTH_REQUIRED_ERROR, PUBLIC_ACTIONS, IntentExecutor
from finchat.i18n.catalog import get_message
from finchat.infra.best_effort import best_effort
from finchat.infra.errors import LLMError
from finchat.ledger.repository import LedgerRepository
from finchat.nlp.commands import parse_command
from finchat.nlp.correction_detector import detect_correction
from finchat.nlp.patterns import LearnedPatternStore, match_learned_pattern

logger = structlog.get_logger()


class Strategy(ABC):
    """One tier of the cascade."""

    name: str = ""

    @abstractmethod
    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        ...


# ---------------------------------------------------------------------------
# Pending-state tiers
# ---------------------------------------------------------------------------


class FlowStateStrategy(Strategy):
    """Routes the message to a flow when the conversant's pending context is of ``context_type``."""

    def __init__(self, name: str, context_type: type, store: ConversationStore, flow: Any) -> None:
        self.name = name
        self._context_type = context_type
        self._store = store
        self._flow = flow

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        pending = await get_context_of(self._store, context.conversant, self._context_type)
        if pending is None:
            return DECLINE
        return await self._flow.handle(context.conversant, message)


def flow_state_strategies(
    store: ConversationStore,
    *,
    duplicates: Any,
    mode_selection: Any,
    installment_creation: Any,
    installment_deletion: Any,
) -> list[Strategy]:
    return [
        FlowStateStrategy("duplicate_confirmation", DuplicateConfirmationContext, store, duplicates),
        FlowStateStrategy("credit_mode_selection", ModeSelectionContext, store, mode_selection),
        FlowStateStrategy("installment_card_selection", InstallmentCreationContext, store, installment_creation),
        FlowStateStrategy("installment_deletion", InstallmentDeletionContext, store, installment_deletion),
    ]


# ---------------------------------------------------------------------------
# AI helpers
# ---------------------------------------------------------------------------


async def build_user_context(ledger: LedgerRepository, context: MessageContext) -> UserContext:
    """Category and payment-method names the model may choose from (empty on lookup failure)."""
    user_id = context.user_id
    if user_id is None:
        return UserContext(today=context.today)
    categories = await best_effort("ai_context_categories", ledger.list_categories(user_id)) or []
    methods = await best_effort("ai_context_payment_methods", ledger.list_payment_methods(user_id)) or []
    return UserContext(
        today=context.today,
        categories=tuple(c.name for c in categories),
        payment_methods=tuple(m.name for m in methods),
    )


def append_to_reply(reply: Reply, suffix: str) -> Reply:
    if reply is None:
        return suffix.strip()
    if isinstance(reply, str):
        return reply + suffix
    if not reply:
        return [suffix.strip()]
    return [*reply[:-1], reply[-1] + suffix]


def prepend_to_reply(reply: Reply, prefix: str) -> Reply:
    if reply is None:
        return prefix.strip()
    if isinstance(reply, str):
        return prefix + reply
    if not reply:
        return [prefix.strip()]
    return [prefix + reply[0], *reply[1:]]


async def save_learned_pattern(
    patterns: LearnedPatternStore, user_id: str, resolution: AIResolution, example: str
) -> None:
    if resolution.pattern_regex is None or resolution.intent.is_unknown:
        return
    await best_effort(
        "learned_pattern_save",
        patterns.save_pattern(
            user_id,
            pattern_type=resolution.intent.action,
            regex_pattern=resolution.pattern_regex,
            example_input=example,
            parsed_output=resolution.raw_entities,
            confidence_score=1.0,
        ),
        user_id=user_id,
    )


class CorrectionStateStrategy(Strategy):
    """The message after an AI resolution corrects it."""

    name = "correction_state"

    def __init__(
        self,
        store: ConversationStore,
        model: IntentModel | None,
        executor: IntentExecutor,
        patterns: LearnedPatternStore,
        ledger: LedgerRepository,
    ) -> None:
        self._store = store
        self._model = model
        self._executor = executor
        self._patterns = patterns
        self._ledger = ledger

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        pending = await get_context_of(self._store, context.conversant, CorrectionContext)
        if pending is None:
            return DECLINE
        await self._store.take_and_clear(context.conversant)
        if self._model is None or not context.is_authenticated:
            return Decline("correction unavailable")

        locale = pending.locale
        user_context = await build_user_context(self._ledger, context)
        try:
            resolution = await self._model.parse_correction(
                pending.original_message, pending.intent, message, context=user_context
            )
        except LLMError as exc:
            logger.warning("ai_correction_failed", conversant=context.conversant, error=str(exc))
            return Outcome.failed(get_message("ai_processing_error", locale, error=str(exc)), str(exc))

        corrected = resolution.intent
        if corrected.is_unknown:
            return Outcome.failed(
                get_message("correction_not_understood", locale),
                "AI could not resolve correction",
                action=corrected.action,
            )

        outcome = await self._executor.execute(
            corrected,
            conversant=context.conversant,
            locale=locale,
            today=context.today,
            auth=context.auth,
        )
        if not outcome.success:
            return dataclasses.replace(outcome, confidence=corrected.confidence)
        if context.user_id is not None:
            await save_learned_pattern(self._patterns, context.user_id, resolution, pending.original_message)
        return dataclasses.replace(
            outcome,
            reply=prepend_to_reply(outcome.reply, get_message("correction_applied", locale) + "\n\n"),
            confidence=corrected.confidence,
        )


# ---------------------------------------------------------------------------
# Stateless tiers
# ---------------------------------------------------------------------------


class CorrectionIntentStrategy(Strategy):
    """"remover ABC123", "ABC123 era 50 reais"."""

    name = "correction_intent"

    def __init__(self, *, min_confidence: float = CORRECTION_MIN_CONFIDENCE) -> None:
        self._min_confidence = min_confidence

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        correction = detect_correction(message, today=context.today)
        if correction.action == "unknown" or correction.confidence < self._min_confidence:
            return DECLINE
        return correction.to_intent()


class ExplicitCommandStrategy(Strategy):
    name = "explicit_command"

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        intent = parse_command(message, today=context.today)
        return intent if intent is not None else DECLINE


class LearnedPatternStrategy(Strategy):
    """Per-user regexes saved by earlier AI resolutions.

    The matched intent is executed here so the pattern's success or failure
    can be counted against it.
    """

    name = "learned_pattern"

    def __init__(self, patterns: LearnedPatternStore, executor: IntentExecutor) -> None:
        self._patterns = patterns
        self._executor = executor

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        user_id = context.user_id
        if not context.local_intent.is_unknown or user_id is None:
            return DECLINE
        patterns = await best_effort("learned_patterns_load", self._patterns.active_patterns(user_id), user_id=user_id)
        if not patterns:
            return DECLINE
        matched = match_learned_pattern(message, patterns)
        if matched is None:
            return DECLINE
        pattern, intent = matched
        logger.info("learned_pattern_matched", pattern_id=pattern.id, action=intent.action)
        outcome = await self._executor.execute(
            intent,
            conversant=context.conversant,
            locale=context.locale,
            today=context.today,
            auth=context.auth,
        )
        await best_effort(
            "learned_pattern_usage",
            self._patterns.record_usage(pattern.id, success=outcome.success),
            pattern_id=pattern.id,
        )
        return outcome


class LocalNLPStrategy(Strategy):
    """Accepts the local parse when it is confident enough.

    Login and help are accepted at any confidence. Without a session any other
    recognized action gets the login prompt here, since the later tiers all
    need an authenticated user.
    """

    name = "local_nlp"

    def __init__(self, *, accept_confidence: float = LOCAL_ACCEPT_CONFIDENCE) -> None:
        self._accept_confidence = accept_confidence

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        intent = context.local_intent
        if intent.is_unknown:
            return DECLINE
        if intent.action in PUBLIC_ACTIONS:
            return intent
        if not context.is_authenticated:
            return Outcome.failed(
                get_message("login_prompt", context.locale),
                AUTH_REQUIRED_ERROR,
                action=intent.action,
            )
        if intent.confidence < self._accept_confidence:
            return DECLINE
        return intent


class AIPatternStrategy(Strategy):
    """Last resort: ask the model, execute, remember the pattern, arm a correction."""

    name = "ai_pattern"

    def __init__(
        self,
        model: IntentModel | None,
        executor: IntentExecutor,
        store: ConversationStore,
        patterns: LearnedPatternStore,
        ledger: LedgerRepository,
    ) -> None:
        self._model = model
        self._executor = executor
        self._store = store
        self._patterns = patterns
        self._ledger = ledger

    async def try_resolve(self, message: str, context: MessageContext) -> StrategyResult:
        user_id = context.user_id
        if self._model is None or user_id is None:
            return DECLINE

        locale = context.locale
        user_context = await build_user_context(self._ledger, context)
        try:
            resolution = await self._model.resolve_intent(message, context=user_context)
        except LLMError as exc:
            logger.warning("ai_resolution_failed", conversant=context.conversant, error=str(exc))
            return Outcome.failed(get_message("ai_processing_error", locale, error=str(exc)), str(exc))

        intent = resolution.intent
        if intent.is_unknown:
            return Outcome.failed(get_message("unknown_command", locale), "AI could not resolve intent")

        # Armed before execution so a flow started by the intent replaces it.
        await self._store.put(
            context.conversant,
            CorrectionContext(original_message=message, intent=intent, locale=locale),
        )
        outcome = await self._executor.execute(
            intent,
            conversant=context.conversant,
            locale=locale,
            today=context.today,
            auth=context.auth,
        )
        if outcome.success:
            await save_learned_pattern(self._patterns, user_id, resolution, message)
        return dataclasses.replace(outcome, reply=append_to_reply(outcome.reply, get_message("ai_suffix", locale)))
