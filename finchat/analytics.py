"""Fire-and-forget product analytics.

The default sink writes events to the structured log. Emission always goes
through ``track`` so a misbehaving sink never affects a reply.
"""

from __future__ import annotations

import hashlib
from enum import StrEnum
from typing import Any, Protocol

import structlog

from finchat.infra.best_effort import best_effort_call

logger = structlog.get_logger()


class AnalyticsEvent(StrEnum):
    credit_mode_selected = "credit_mode_selected"
    installment_created = "installment_created"
    installment_deleted = "installment_deleted"
    installment_delete_cancelled = "installment_delete_cancelled"
    duplicate_detected = "duplicate_detected"
    transaction_created = "transaction_created"


class AnalyticsSink(Protocol):
    def capture(self, event: str, distinct_id: str, properties: dict[str, Any]) -> None: ...


class LogAnalyticsSink:
    def __init__(self, *, channel: str = "telegram") -> None:
        self._channel = channel

    def capture(self, event: str, distinct_id: str, properties: dict[str, Any]) -> None:
        logger.info("analytics_event", event=event, distinct_id=distinct_id, channel=self._channel, **properties)


def hash_identifier(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def track(sink: AnalyticsSink | None, event: AnalyticsEvent | str, distinct_id: str, **properties: Any) -> None:
    if sink is None:
        return
    best_effort_call("analytics_capture", sink.capture, str(event), distinct_id, properties)
