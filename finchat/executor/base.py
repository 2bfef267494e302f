from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from finchat.auth.gate import AuthorizationRecord
    from finchat.cascade.types import Outcome
    from finchat.nlp.intent import ResolvedIntent


@dataclass(frozen=True)
class HandlerContext:
    """Per-message runtime context injected into handlers by the executor.

    user_id is None only for the public actions (login, help).
    interactive=False is used for batch items: handlers must not open a
    follow-up question (mode selection, duplicate confirmation) for them.
    """

    conversant: str
    user_id: str | None
    locale: str
    today: date
    auth: AuthorizationRecord
    interactive: bool = True

    def require_user(self) -> str:
        if self.user_id is None:
            raise RuntimeError("handler requires an authenticated user")
        return self.user_id


class ActionHandler(ABC):
    """Executes one family of resolved intents against the ledger."""

    @property
    @abstractmethod
    def actions(self) -> frozenset[str]:
        """Action names this handler serves."""
        ...

    @abstractmethod
    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        """Execute ``intent``. LedgerError may propagate; the executor maps it to a generic error."""
        ...
