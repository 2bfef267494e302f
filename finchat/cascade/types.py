"""Values passed between strategies, flows, handlers and the resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from finchat.auth.gate import AuthorizationRecord
from finchat.nlp.intent import ResolvedIntent

Reply = str | list[str] | None


@dataclass(frozen=True)
class Outcome:
    """Terminal result of handling one message: what to send and how it went."""

    reply: Reply
    success: bool = True
    action: str | None = None
    error: str | None = None
    confidence: float | None = None
    permission_required: str | None = None
    permission_granted: bool | None = None

    @classmethod
    def ok(cls, reply: Reply, *, action: str | None = None, confidence: float | None = None) -> Outcome:
        return cls(reply=reply, success=True, action=action, confidence=confidence)

    @classmethod
    def failed(cls, reply: Reply, error: str, *, action: str | None = None) -> Outcome:
        return cls(reply=reply, success=False, action=action, error=error)


@dataclass(frozen=True)
class Decline:
    """A strategy did not apply to this message; the next one is tried."""

    reason: str = ""


DECLINE = Decline()

StrategyResult = ResolvedIntent | Outcome | Decline


@dataclass(frozen=True)
class MessageContext:
    """Everything strategies may read about the current message, computed once."""

    conversant: str
    text: str
    auth: AuthorizationRecord
    local_intent: ResolvedIntent
    locale: str
    today: date = field(default_factory=date.today)

    @property
    def user_id(self) -> str | None:
        return self.auth.user_id if self.auth.authorized else None

    @property
    def is_authenticated(self) -> bool:
        return self.auth.authorized and self.auth.user_id is not None
