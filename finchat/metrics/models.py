from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from finchat.constants import DB_SCHEMA
from finchat.ledger.models import Base


class ParsingMetricRecord(Base):
    """Write-only audit row: one per processed inbound message."""

    __tablename__ = "parsing_metrics"
    __table_args__ = {"schema": DB_SCHEMA}

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    conversant: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    message_text: Mapped[str] = mapped_column(Text, default="")
    message_type: Mapped[str] = mapped_column(String(16), default="text")
    strategy_used: Mapped[str] = mapped_column(String(32))
    intent_action: Mapped[str | None] = mapped_column(String(64), nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    parse_duration_ms: Mapped[int] = mapped_column(Integer, default=0)
    execution_duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    permission_required: Mapped[str | None] = mapped_column(String(32), nullable=True)
    permission_granted: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
