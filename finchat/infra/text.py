"""Shared text normalization for control words and candidate-name matching."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")

CANCEL_WORDS = frozenset({"cancelar", "cancel"})
CONFIRM_WORDS = frozenset({"confirmar", "confirm"})
YES_WORDS = frozenset({"sim", "s", "yes", "y", "confirmar", "confirm", "ok"})
NO_WORDS = frozenset({"nao", "n", "no", "cancelar", "cancel"})


def normalize_text(text: str) -> str:
    """Strip diacritics, lowercase and collapse whitespace.

    >>> normalize_text("  Itaú   VISA ")
    'itau visa'
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", stripped).strip().lower()


def is_cancel(text: str) -> bool:
    return normalize_text(text) in CANCEL_WORDS


def is_confirm(text: str) -> bool:
    return normalize_text(text) in CONFIRM_WORDS


def is_yes(text: str) -> bool:
    return normalize_text(text) in YES_WORDS


def is_no(text: str) -> bool:
    return normalize_text(text) in NO_WORDS


def parse_index(text: str, size: int) -> int | None:
    """Parse a 1-based selection into a 0-based index, or None if out of range."""
    candidate = text.strip()
    if not candidate.isdecimal():
        return None
    index = int(candidate) - 1
    if 0 <= index < size:
        return index
    return None
