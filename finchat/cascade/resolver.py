"""Runs the strategy cascade for one message and records exactly one metric."""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Sequence
from datetime import date

import structlog

from finchat.auth.gate import AuthorizationGate
from finchat.cascade.strategies import Strategy
from finchat.cascade.types import Decline, MessageContext, Outcome
from finchat.constants import DEFAULT_LOCALE
from finchat.executor.executor import IntentExecutor
from finchat.i18n.catalog import get_message
from finchat.metrics.recorder import MetricsRecorder, ParsingMetric
from finchat.nlp.intent import ResolvedIntent
from finchat.nlp.local_parser import parse_local

logger = structlog.get_logger()

NO_MATCH_STRATEGY = "unknown"
NO_MATCH_ERROR = "no strategy matched"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class CascadeResolver:
    """First conclusive strategy wins; its intent (if any) goes to the executor.

    Every path out of ``resolve`` passes through ``_finish``, which is the only
    place a ParsingMetric is written.
    """

    def __init__(
        self,
        strategies: Sequence[Strategy],
        *,
        executor: IntentExecutor,
        gate: AuthorizationGate,
        metrics: MetricsRecorder,
    ) -> None:
        self._strategies = list(strategies)
        self._executor = executor
        self._gate = gate
        self._metrics = metrics

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def resolve(
        self,
        conversant: str,
        text: str,
        *,
        locale: str = DEFAULT_LOCALE,
        today: date | None = None,
    ) -> Outcome:
        started = time.perf_counter()
        today = today or date.today()
        auth = await self._gate.check_authorization(conversant)
        context = MessageContext(
            conversant=conversant,
            text=text,
            auth=auth,
            local_intent=ResolvedIntent.unknown(),
            locale=locale,
            today=today,
        )

        strategy_name = NO_MATCH_STRATEGY
        parse_ms = 0
        execution_ms: int | None = None
        try:
            context = dataclasses.replace(context, local_intent=parse_local(text, today=today))
            outcome: Outcome | None = None
            for strategy in self._strategies:
                result = await strategy.try_resolve(text, context)
                if isinstance(result, Decline):
                    if result.reason:
                        logger.debug("strategy_declined", strategy=strategy.name, reason=result.reason)
                    continue
                strategy_name = strategy.name
                parse_ms = _elapsed_ms(started)
                if isinstance(result, ResolvedIntent):
                    executed = time.perf_counter()
                    outcome = await self._executor.execute(
                        result, conversant=conversant, locale=locale, today=today, auth=auth
                    )
                    execution_ms = _elapsed_ms(executed)
                else:
                    outcome = result
                break
            if outcome is None:
                parse_ms = _elapsed_ms(started)
                outcome = Outcome.failed(get_message("unknown_command", locale), NO_MATCH_ERROR)
        except Exception as exc:
            logger.exception("message_resolution_failed", conversant=conversant, strategy=strategy_name)
            outcome = Outcome.failed(get_message("generic_error", locale), str(exc) or type(exc).__name__)

        await self._finish(context, strategy_name, outcome, parse_ms=parse_ms, execution_ms=execution_ms)
        return outcome

    async def _finish(
        self,
        context: MessageContext,
        strategy_name: str,
        outcome: Outcome,
        *,
        parse_ms: int,
        execution_ms: int | None,
    ) -> None:
        await self._metrics.record(
            ParsingMetric(
                conversant=context.conversant,
                message_text=context.text,
                strategy_used=strategy_name,
                success=outcome.success,
                user_id=context.user_id,
                intent_action=outcome.action,
                confidence=outcome.confidence,
                error_message=None if outcome.success else (outcome.error or "unspecified failure"),
                parse_duration_ms=parse_ms,
                execution_duration_ms=execution_ms,
                permission_required=outcome.permission_required,
                permission_granted=outcome.permission_granted,
            )
        )
        logger.info(
            "message_resolved",
            conversant=context.conversant,
            strategy=strategy_name,
            action=outcome.action,
            success=outcome.success,
        )

