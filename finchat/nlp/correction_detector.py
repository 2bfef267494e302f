"""Heuristic detection of "fix/remove transaction ABC123" messages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from finchat.constants import DUPLICATE_ID_LENGTH
from finchat.nlp.extract import parse_date_token
from finchat.nlp.intent import ResolvedIntent

CorrectionAction = Literal["delete", "update", "unknown"]

CORRECTION_WORDS: tuple[str, ...] = (
    "remover", "remove", "deletar", "delete", "apagar", "excluir",
    "arrumar", "arrume", "corrigir", "corrige", "consertar",
    "ta errado", "está errado", "erro", "wrong", "incorreto",
    "mudar", "alterar", "trocar", "change", "update",
    "foi", "era", "deveria ser", "should be",
)

_ID = rf"([a-z0-9]{{{DUPLICATE_ID_LENGTH}}})"
_TOKEN_RE = re.compile(rf"\b{_ID}\b", re.IGNORECASE)
_DELETE_PATTERNS = (
    re.compile(rf"\b(?:remover|remove|deletar|delete|apagar|excluir)\s+{_ID}\b"),
    re.compile(rf"\b{_ID}\s+(?:remover|remove|deletar|apagar|excluir)\b"),
)
_UPDATE_PATTERNS = (
    re.compile(rf"\b{_ID}\s+(?:era|foi|deveria ser|should be)\s+[\d.,]+"),
    re.compile(rf"\b{_ID}\s+(?:era|foi|deveria ser|should be)\s+[a-záàâãéèêíïóôõöúçñ\s]+"),
    re.compile(rf"\b(?:arrumar|corrigir)\s+{_ID}\b"),
    re.compile(rf"\b{_ID}\s+(?:arrumar|corrigir|mudar|alterar)\b"),
)
_CHANGE_VERB = r"(?:era|foi|deveria ser|should be)"
_AMOUNT_RE = re.compile(rf"{_CHANGE_VERB}\s*([\d.,]+)")
_CATEGORY_RE = re.compile(rf"{_CHANGE_VERB}\s+([a-záàâãéèêíïóôõöúçñ]+)(?:\s|$)")
_PAYMENT_RE = re.compile(rf"{_CHANGE_VERB}\s+(?:no|em|com)\s+(cartao|cartão|pix|dinheiro|débito|debito)")
_DATE_RE = re.compile(rf"{_CHANGE_VERB}\s+(?:em|no|na)\s+(\d{{1,2}}/\d{{1,2}}(?:/\d{{4}})?)")

_NOT_CATEGORIES = frozenset({"no", "na", "em", "com", "de", "do", "da"})

_PAYMENT_METHOD_NAMES = {
    "cartao": "Cartão de Crédito",
    "cartão": "Cartão de Crédito",
    "pix": "PIX",
    "dinheiro": "Dinheiro",
    "debito": "Cartão de Débito",
    "débito": "Cartão de Débito",
}


def is_transaction_id(token: str) -> bool:
    """Six alphanumerics with at least one letter and one digit ('comida' is not an id)."""
    return (
        len(token) == DUPLICATE_ID_LENGTH
        and token.isalnum()
        and any(c.isalpha() for c in token)
        and any(c.isdigit() for c in token)
    )


def find_transaction_id(message: str) -> str | None:
    for match in _TOKEN_RE.finditer(message):
        if is_transaction_id(match.group(1)):
            return match.group(1).upper()
    return None


@dataclass(frozen=True)
class CorrectionIntent:
    action: CorrectionAction
    confidence: float
    transaction_id: str | None = None
    updates: dict[str, Any] = field(default_factory=dict)

    def to_intent(self) -> ResolvedIntent:
        action = "delete_transaction" if self.action == "delete" else "edit_transaction"
        entities: dict[str, Any] = {**self.updates}
        if self.transaction_id:
            entities["transaction_id"] = self.transaction_id
        return ResolvedIntent(action, min(self.confidence, 1.0), entities)


def _matches_with_valid_id(patterns: tuple[re.Pattern[str], ...], text: str) -> bool:
    return any(
        is_transaction_id(match.group(1))
        for pattern in patterns
        for match in pattern.finditer(text)
    )


def _extract_updates(text: str, today: date) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    amount_match = _AMOUNT_RE.search(text)
    if amount_match:
        try:
            amount = float(amount_match.group(1).replace(",", "."))
        except ValueError:
            amount = 0.0
        if amount > 0:
            updates["amount"] = amount
    category_match = _CATEGORY_RE.search(text)
    if category_match:
        category = category_match.group(1).strip()
        if len(category) > 2 and category not in _NOT_CATEGORIES:
            updates["category"] = category
    payment_match = _PAYMENT_RE.search(text)
    if payment_match:
        updates["payment_method"] = _PAYMENT_METHOD_NAMES[payment_match.group(1)]
    date_match = _DATE_RE.search(text)
    if date_match:
        parsed = parse_date_token(date_match.group(1), today)
        if parsed:
            updates["date"] = parsed.isoformat()
    return updates


def detect_correction(message: str, *, today: date | None = None) -> CorrectionIntent:
    """Classify ``message`` as a delete/update of an existing transaction.

    Without a valid transaction id the result stays below the acceptance
    threshold (0.2), so ordinary messages like "mudar categoria" fall through.
    """
    text = message.lower().strip()
    if not any(word in text for word in CORRECTION_WORDS):
        return CorrectionIntent(action="unknown", confidence=0.0)

    transaction_id = find_transaction_id(text)
    if transaction_id is None:
        return CorrectionIntent(action="unknown", confidence=0.2)

    if _matches_with_valid_id(_DELETE_PATTERNS, text):
        return CorrectionIntent(action="delete", confidence=0.9, transaction_id=transaction_id)

    confidence = 0.8 if _matches_with_valid_id(_UPDATE_PATTERNS, text) else 0.6
    updates = _extract_updates(text, today or date.today())
    return CorrectionIntent(
        action="update",
        confidence=round(min(confidence + 0.1 * len(updates), 1.0), 2),
        transaction_id=transaction_id,
        updates=updates,
    )
