from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

UNKNOWN_ACTION = "unknown"


@dataclass(frozen=True)
class ResolvedIntent:
    """Action + confidence + extracted entities produced by exactly one strategy.

    Entity keys are snake_case: amount, category, description, date (ISO string),
    type ("expense" | "income"), payment_method, installments, transaction_id,
    transactions (list of per-item entity dicts for a batch).
    """

    action: str
    confidence: float = 0.0
    entities: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    @classmethod
    def unknown(cls) -> ResolvedIntent:
        return cls(action=UNKNOWN_ACTION, confidence=0.0)

    @property
    def is_unknown(self) -> bool:
        return self.action == UNKNOWN_ACTION

    @property
    def batch(self) -> list[dict[str, Any]]:
        """Per-item entities when the intent carries more than one transaction."""
        items = self.entities.get("transactions") or []
        return list(items) if len(items) > 1 else []
