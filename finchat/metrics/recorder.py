"""Parsing metrics: one audit row per processed inbound message."""

from __future__ import annotations

from dataclasses import asdict, dataclass

import structlog
from sqlalchemy import text

from finchat.infra.errors import LedgerError
from finchat.ledger.repository import SqlRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class ParsingMetric:
    conversant: str
    message_text: str
    strategy_used: str
    success: bool
    user_id: str | None = None
    message_type: str = "text"
    intent_action: str | None = None
    confidence: float | None = None
    error_message: str | None = None
    parse_duration_ms: int = 0
    execution_duration_ms: int | None = None
    permission_required: str | None = None
    permission_granted: bool | None = None

    def __post_init__(self) -> None:
        if not self.success and not self.error_message:
            raise ValueError("failed metrics need an error_message")


class MetricsRecorder(SqlRepository):
    """Writes ParsingMetric rows. A failed write is logged, never raised."""

    async def record(self, metric: ParsingMetric) -> None:
        logger.info(
            "parsing_metric",
            strategy=metric.strategy_used,
            action=metric.intent_action,
            success=metric.success,
            error=metric.error_message,
            parse_ms=metric.parse_duration_ms,
        )
        try:
            async with self._connection("record_parsing_metric", write=True) as conn:
                await conn.execute(
                    text(f"""
                        INSERT INTO {self._schema}.parsing_metrics
                            (conversant, user_id, message_text, message_type, strategy_used,
                             intent_action, confidence, success, error_message, parse_duration_ms,
                             execution_duration_ms, permission_required, permission_granted)
                        VALUES
                            (:conversant, :user_id, :message_text, :message_type, :strategy_used,
                             :intent_action, :confidence, :success, :error_message, :parse_duration_ms,
                             :execution_duration_ms, :permission_required, :permission_granted)
                    """),
                    asdict(metric),
                )
        except LedgerError as exc:
            logger.warning("parsing_metric_write_failed", conversant=metric.conversant, error=str(exc))
