from __future__ import annotations

import structlog

from finchat.executor.base import ActionHandler
from finchat.infra.errors import HandlerRegistrationError

logger = structlog.get_logger()


class HandlerRegistry:
    """Action name -> handler lookup for the executor."""

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, handler: ActionHandler) -> None:
        """Register every action of ``handler``. Raises HandlerRegistrationError on a clash."""
        clashes = sorted(a for a in handler.actions if a in self._handlers)
        if clashes:
            raise HandlerRegistrationError(f"Actions already registered: {', '.join(clashes)}")
        for action in handler.actions:
            self._handlers[action] = handler
        logger.info(
            "handler_registered",
            handler=type(handler).__name__,
            actions=sorted(handler.actions),
        )

    def get(self, action: str) -> ActionHandler | None:
        return self._handlers.get(action)

    def actions(self) -> frozenset[str]:
        return frozenset(self._handlers)
