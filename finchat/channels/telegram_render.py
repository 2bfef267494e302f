"""Telegram reply rendering: message splitting and error-code mapping."""

from __future__ import annotations

import re

from finchat.i18n.catalog import get_message

# ── Error code → catalog key ────────────────────────────────────────────────

_ERROR_KEYS: dict[str, str] = {
    "LEDGER_ERROR": "generic_error",
    "LLM_ERROR": "generic_error",
}


def friendly_error_message(code: str | None, locale: str | None = None) -> str:
    """Map a FinChatError code to a localized message for the chat."""
    key = _ERROR_KEYS.get(code or "", "generic_error")
    return get_message(key, locale)


# ── Message splitting ────────────────────────────────────────────────────────

_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")


def split_message(text: str, max_length: int = 4096) -> list[str]:
    """Split text into chunks within Telegram's message length limit.

    Split priority: paragraphs → lines → sentences → hard cut.
    """
    if not text:
        return []
    if len(text) <= max_length:
        return [text]
    return [c for c in _split_on(text, "\n\n", max_length, _split_lines) if c.strip()]


def _split_lines(text: str, max_length: int) -> list[str]:
    return _split_on(text, "\n", max_length, _split_sentences)


def _split_on(text: str, separator: str, max_length: int, fallback) -> list[str]:
    chunks: list[str] = []
    current = ""

    for piece in text.split(separator):
        candidate = current + separator + piece if current else piece
        if len(candidate) <= max_length:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = ""
        if len(piece) <= max_length:
            current = piece
        else:
            sub = fallback(piece, max_length)
            chunks.extend(sub[:-1])
            current = sub[-1] if sub else ""

    if current:
        chunks.append(current)
    return chunks


def _split_sentences(text: str, max_length: int) -> list[str]:
    """Split on sentence boundaries, falling back to hard cut."""
    parts = _SENTENCE_BOUNDARY_RE.split(text)
    chunks: list[str] = []
    current = ""

    for part in parts:
        candidate = current + " " + part if current else part
        if len(candidate) <= max_length:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = ""
        if len(part) <= max_length:
            current = part
        else:
            for i in range(0, len(part), max_length):
                chunks.append(part[i : i + max_length])

    if current:
        chunks.append(current)
    return chunks
