"""Custom exception hierarchy for finchat.

All application-specific exceptions inherit from FinChatError,
which carries an error code used for reply mapping and metrics.
"""

from __future__ import annotations


class FinChatError(Exception):
    """Base exception for all finchat errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ChannelError(FinChatError):
    """Errors in channel adapters (Telegram, HTTP)."""

    def __init__(self, message: str, *, code: str = "CHANNEL_ERROR") -> None:
        super().__init__(message, code=code)


class LedgerError(FinChatError):
    """Transient persistence failure while reading or writing the ledger."""

    def __init__(self, message: str, *, code: str = "LEDGER_ERROR") -> None:
        super().__init__(message, code=code)


class LLMError(FinChatError):
    """Errors from the external completion capability (timeouts, rate limits, bad output)."""

    def __init__(self, message: str, *, code: str = "LLM_ERROR") -> None:
        super().__init__(message, code=code)


class HandlerRegistrationError(FinChatError):
    """Two handlers claimed the same action."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="HANDLER_CONFLICT")
