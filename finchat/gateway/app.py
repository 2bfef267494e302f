from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from finchat.ai.client import IntentModel, OpenAIIntentModel
from finchat.analytics import AnalyticsSink, LogAnalyticsSink
from finchat.auth.gate import AuthorizationGate
from finchat.cascade.resolver import CascadeResolver
from finchat.cascade.strategies import (
    AIPatternStrategy,
    CorrectionIntentStrategy,
    CorrectionStateStrategy,
    ExplicitCommandStrategy,
    LearnedPatternStrategy,
    LocalNLPStrategy,
    Strategy,
    flow_state_strategies,
)
from finchat.channels.telegram import TelegramAdapter
from finchat.config.settings import Settings, get_settings
from finchat.conversation.store import ConversationStore, InMemoryConversationStore
from finchat.executor.executor import IntentExecutor
from finchat.executor.handlers import register_handlers
from finchat.executor.registry import HandlerRegistry
from finchat.flows.duplicate_confirmation import DuplicateConfirmationFlow
from finchat.flows.installment_creation import InstallmentCreationFlow
from finchat.flows.installment_deletion import InstallmentDeletionFlow
from finchat.flows.mode_selection import ModeSelectionFlow
from finchat.gateway.message_handler import IncomingMessage, MessageHandler, reply_parts
from finchat.gateway.protocol import IncomingMessagePayload, MessageResponse
from finchat.infra.errors import ChannelError
from finchat.infra.logging import setup_logging
from finchat.ledger.budgets import BudgetRepository
from finchat.ledger.database import create_db_engine, ensure_schema
from finchat.ledger.installments import InstallmentRepository
from finchat.ledger.repository import LedgerRepository
from finchat.metrics.recorder import MetricsRecorder
from finchat.nlp.patterns import LearnedPatternStore

logger = structlog.get_logger()


def build_message_handler(
    settings: Settings,
    engine: AsyncEngine,
    *,
    store: ConversationStore | None = None,
    model: IntentModel | None = None,
    analytics: AnalyticsSink | None = None,
) -> MessageHandler:
    """Wire repositories, flows, handlers and the strategy cascade."""
    schema = settings.database.schema_
    conversation = settings.conversation
    store = store or InMemoryConversationStore(ttl_seconds=conversation.context_ttl_seconds)

    ledger = LedgerRepository(engine, schema=schema)
    installments = InstallmentRepository(engine, schema=schema)
    budgets = BudgetRepository(engine, schema=schema)
    gate = AuthorizationGate(engine, schema=schema)
    patterns = LearnedPatternStore(engine, schema=schema)
    metrics = MetricsRecorder(engine, schema=schema)

    mode_selection = ModeSelectionFlow(store, ledger, analytics=analytics)
    duplicates = DuplicateConfirmationFlow(store, ledger, analytics=analytics)
    installment_creation = InstallmentCreationFlow(store, ledger, installments, analytics=analytics)
    installment_deletion = InstallmentDeletionFlow(store, installments, analytics=analytics)

    registry = HandlerRegistry()
    register_handlers(
        registry,
        ledger=ledger,
        installments=installments,
        budgets=budgets,
        gate=gate,
        mode_selection=mode_selection,
        duplicates=duplicates,
        installment_creation=installment_creation,
        installment_deletion=installment_deletion,
        analytics=analytics,
    )
    executor = IntentExecutor(registry, gate, ledger=ledger)

    strategies: list[Strategy] = [
        CorrectionStateStrategy(store, model, executor, patterns, ledger),
        *flow_state_strategies(
            store,
            duplicates=duplicates,
            mode_selection=mode_selection,
            installment_creation=installment_creation,
            installment_deletion=installment_deletion,
        ),
        CorrectionIntentStrategy(min_confidence=conversation.correction_min_confidence),
        ExplicitCommandStrategy(),
        LearnedPatternStrategy(patterns, executor),
        LocalNLPStrategy(accept_confidence=conversation.local_accept_confidence),
        AIPatternStrategy(model, executor, store, patterns, ledger),
    ]
    resolver = CascadeResolver(strategies, executor=executor, gate=gate, metrics=metrics)
    return MessageHandler(
        resolver,
        metrics,
        trigger_word=conversation.group_trigger_word,
        default_locale=conversation.default_locale,
    )


async def _start_telegram(
    settings: Settings, handler: MessageHandler
) -> tuple[TelegramAdapter, asyncio.Task] | None:
    if not settings.telegram.bot_token:
        logger.info("telegram_disabled")
        return None
    adapter = TelegramAdapter(settings.telegram.bot_token, settings.telegram, handler)
    try:
        await adapter.check_ready()
    except ChannelError:
        logger.exception("telegram_startup_failed")
        raise
    task = asyncio.create_task(adapter.start_polling(), name="tg_polling")
    return adapter, task


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize shared state on startup."""
    settings = get_settings()
    setup_logging(json_output=settings.gateway.log_json, log_level=settings.gateway.log_level)

    # DB is mandatory; startup fails if DB/schema unavailable.
    engine = await create_db_engine(settings.database)
    await ensure_schema(engine, settings.database.schema_)
    logger.info("db_connected")

    model: IntentModel | None = None
    if settings.openai.enabled:
        model = OpenAIIntentModel.from_settings(settings.openai)
        logger.info("ai_fallback_enabled", model=settings.openai.model)
    else:
        logger.info("ai_fallback_disabled")

    handler = build_message_handler(settings, engine, model=model, analytics=LogAnalyticsSink())
    app.state.message_handler = handler

    telegram = await _start_telegram(settings, handler)
    logger.info("gateway_started", host=settings.gateway.host, port=settings.gateway.port)

    yield

    if telegram is not None:
        adapter, task = telegram
        await adapter.stop()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
    await engine.dispose()
    logger.info("db_engine_disposed")


app = FastAPI(title="finchat gateway", version="0.1.0", lifespan=lifespan)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/v1/messages", response_model=MessageResponse)
async def post_message(payload: IncomingMessagePayload, request: Request) -> MessageResponse:
    handler: MessageHandler = request.app.state.message_handler
    reply = await handler.handle(
        IncomingMessage(
            conversant=payload.conversant,
            text=payload.text,
            has_image=payload.has_image,
            is_group=payload.is_group,
            locale=payload.locale,
        )
    )
    return MessageResponse(replies=reply_parts(reply))


def main() -> None:
    settings = get_settings()
    uvicorn.run("finchat.gateway.app:app", host=settings.gateway.host, port=settings.gateway.port)


if __name__ == "__main__":
    main()
