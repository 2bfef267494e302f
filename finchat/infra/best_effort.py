"""Log-and-ignore wrappers for side effects whose failure must never reach the user.

Used for analytics, preference learning and pattern bookkeeping. The event name
passed in is logged with a ``_failed`` suffix so ignored failures stay visible.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


async def best_effort(event: str, awaitable: Awaitable[T], **context: Any) -> T | None:
    """Await ``awaitable``; on any exception log ``<event>_failed`` and return None."""
    try:
        return await awaitable
    except Exception:
        logger.exception(f"{event}_failed", **context)
        return None


def best_effort_call(event: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T | None:
    """Synchronous counterpart of best_effort for plain callables."""
    try:
        return fn(*args, **kwargs)
    except Exception:
        logger.exception(f"{event}_failed")
        return None
