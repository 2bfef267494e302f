"""Similarity scoring of a new transaction against the user's recent ones."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal

from finchat.constants import (
    DUPLICATE_AMOUNT_TOLERANCE_PERCENT,
    DUPLICATE_BLOCK_THRESHOLD,
    DUPLICATE_WARN_THRESHOLD,
)
from finchat.infra.text import normalize_text
from finchat.ledger.types import TransactionDraft, TransactionRecord

_PUNCTUATION_RE = re.compile(r"[^\w\s]")

_AMOUNT_WEIGHT = 0.4
_DESCRIPTION_WEIGHT = 0.3
_CATEGORY_WEIGHT = 0.2
_PAYMENT_METHOD_WEIGHT = 0.1


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    confidence: float = 0.0
    match: TransactionRecord | None = None

    @property
    def blocked(self) -> bool:
        return self.is_duplicate and self.confidence >= DUPLICATE_BLOCK_THRESHOLD


NOT_DUPLICATE = DuplicateCheck(is_duplicate=False)


def _clean(value: str | None) -> str:
    return normalize_text(_PUNCTUATION_RE.sub("", value or ""))


def amount_similarity(a: Decimal, b: Decimal, tolerance_percent: float = DUPLICATE_AMOUNT_TOLERANCE_PERCENT) -> float:
    """1.0 for equal amounts, 0.8-1.0 inside the tolerance band, 0 outside it."""
    if a == b:
        return 1.0
    tolerance = float(max(a, b)) * tolerance_percent / 100
    difference = abs(float(a) - float(b))
    if tolerance > 0 and difference <= tolerance:
        return 1.0 - (difference / tolerance) * 0.2
    return 0.0


def description_similarity(a: str | None, b: str | None) -> float:
    """Shared words over distinct words."""
    left, right = _clean(a), _clean(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    left_words, right_words = left.split(" "), set(right.split(" "))
    common = [word for word in left_words if word in right_words]
    return len(common) / len(set(left_words) | right_words)


def similarity(candidate: TransactionDraft, existing: TransactionRecord) -> float:
    score = amount_similarity(candidate.amount, existing.amount) * _AMOUNT_WEIGHT
    score += description_similarity(candidate.description, existing.description) * _DESCRIPTION_WEIGHT
    if candidate.category_id and candidate.category_id == existing.category_id:
        score += _CATEGORY_WEIGHT
    if candidate.payment_method and _clean(candidate.payment_method) == _clean(existing.payment_method):
        score += _PAYMENT_METHOD_WEIGHT
    return round(score, 4)


def check_for_duplicate(
    candidate: TransactionDraft,
    recent: list[TransactionRecord],
    *,
    warn_threshold: float = DUPLICATE_WARN_THRESHOLD,
) -> DuplicateCheck:
    """First recent transaction (newest first) scoring at or above ``warn_threshold``."""
    for existing in recent:
        if existing.type != candidate.type:
            continue
        confidence = similarity(candidate, existing)
        if confidence >= warn_threshold:
            return DuplicateCheck(is_duplicate=True, confidence=confidence, match=existing)
    return NOT_DUPLICATE
