"""Per-conversant pending-context store with read-time expiry.

One slot per conversant: a later put() replaces whatever was there (last write
wins). Expiry is an absolute deadline stamped at put() and checked on every
read; an entry whose deadline has been reached (now >= expires_at) is treated
as absent and dropped.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

import structlog

from finchat.constants import PENDING_CONTEXT_TTL_SECONDS
from finchat.conversation.contexts import PendingContext

logger = structlog.get_logger()

C = TypeVar("C")


class ConversationStore(Protocol):
    """Keyed store of pending contexts, injected into flows and strategies."""

    async def get(self, conversant: str) -> PendingContext | None: ...

    async def put(self, conversant: str, context: PendingContext) -> None: ...

    async def take_and_clear(self, conversant: str) -> PendingContext | None: ...

    async def clear(self, conversant: str) -> None: ...

    async def has(self, conversant: str) -> bool: ...


@dataclass(frozen=True)
class _Entry:
    context: PendingContext
    expires_at: float


class InMemoryConversationStore:
    """In-process ConversationStore. Lost on restart; single event loop only."""

    def __init__(
        self,
        *,
        ttl_seconds: float = PENDING_CONTEXT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _live(self, conversant: str) -> _Entry | None:
        entry = self._entries.get(conversant)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[conversant]
            logger.debug(
                "pending_context_expired",
                conversant=conversant,
                kind=entry.context.kind,
            )
            return None
        return entry

    async def get(self, conversant: str) -> PendingContext | None:
        entry = self._live(conversant)
        return entry.context if entry else None

    async def put(self, conversant: str, context: PendingContext) -> None:
        self.purge_expired()
        previous = self._live(conversant)
        if previous is not None and previous.context.kind != context.kind:
            logger.info(
                "pending_context_replaced",
                conversant=conversant,
                previous_kind=previous.context.kind,
                kind=context.kind,
            )
        self._entries[conversant] = _Entry(context=context, expires_at=self._clock() + self._ttl)

    async def take_and_clear(self, conversant: str) -> PendingContext | None:
        entry = self._live(conversant)
        if entry is None:
            return None
        del self._entries[conversant]
        return entry.context

    async def clear(self, conversant: str) -> None:
        self._entries.pop(conversant, None)

    async def has(self, conversant: str) -> bool:
        return self._live(conversant) is not None

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


async def get_context_of(
    store: ConversationStore, conversant: str, context_type: type[C]
) -> C | None:
    """Return the live context only if it is of ``context_type``."""
    context = await store.get(conversant)
    if isinstance(context, context_type):
        return context
    return None
