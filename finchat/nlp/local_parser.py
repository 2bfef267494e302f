"""Deterministic keyword parser. Always answers, with ``unknown``/0.0 as the floor."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from finchat.infra.text import normalize_text
from finchat.nlp.commands import parse_command
from finchat.nlp.extract import (
    MONTHS,
    extract_amount,
    extract_category,
    extract_date,
    extract_description,
    extract_payment_method,
)
from finchat.nlp.intent import ResolvedIntent

_LOGIN_CREDENTIALS_RE = re.compile(r"(?:login|entrar):?\s+(\S+@\S+)\s+(\S+)", re.IGNORECASE)
_INSTALLMENTS_RE = re.compile(r"\b(\d{1,3})\s*(?:x|vezes|parcelas)\b", re.IGNORECASE)
_INSTALLMENT_ITEM_RE = re.compile(r"\b(?:no|na|do|da|pro|pra|para)\s+(.+)$", re.IGNORECASE)
_INSTALLMENT_DELETE_RE = re.compile(
    r"\b(?:deletar|excluir|remover|apagar|delete|remove)\b.*\b(?:parcelamento|parcelas|parcelad[oa]|installment)"
)
_MONTH_YEAR_RE = re.compile(r"\b(\d{1,2})/(\d{4})\b")
_YEAR_RE = re.compile(r"\b(\d{4})\b")
_BATCH_SPLIT_RE = re.compile(r"\s+e\s+|;|\n")

_LOGOUT_WORDS = ("sair", "logout", "desconectar", "deslogar")
_HELP_WORDS = ("ajuda", "help", "comandos", "o que voce faz", "como usar")
_EXPENSE_WORDS = ("gastei", "gastar", "paguei", "pagar", "comprei", "comprar", "despesa")
_INCOME_WORDS = ("recebi", "receber", "ganhei", "ganhar", "receita", "salario", "entrou")
_REPORT_WORDS = ("relatorio", "resumo", "report", "balanco", "analise")
_CATEGORY_WORDS = ("categoria", "categorias", "category")
_COMMITMENT_WORDS = (
    "parcelamentos", "proximas parcelas", "compromissos futuros", "future commitments", "installments",
)
_THIS_MONTH_WORDS = ("este mes", "esse mes", "mes atual")
_LAST_MONTH_WORDS = ("mes passado", "ultimo mes")
_BUDGET_WORDS = ("orcamento", "budget")
_DEFAULT_BUDGET_WORDS = ("fixo", "sempre", "todo mes", "todos os meses", "fixed", "every month")


def _has_word(normalized: str, words: tuple[str, ...]) -> bool:
    return any(re.search(rf"\b{re.escape(word)}\b", normalized) for word in words)


def _contains(normalized: str, words: tuple[str, ...]) -> bool:
    return any(word in normalized for word in words)


def _clean(entities: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in entities.items() if v not in (None, "")}


def _transaction_entities(segment: str, today: date, *, type_: str) -> dict[str, Any]:
    txn_date = extract_date(segment, today)
    return _clean({
        "type": type_,
        "amount": extract_amount(segment),
        "category": extract_category(segment),
        "date": txn_date.isoformat() if txn_date else None,
        "description": extract_description(segment),
        "payment_method": extract_payment_method(segment),
    })


def _parse_login(message: str) -> ResolvedIntent:
    match = _LOGIN_CREDENTIALS_RE.search(message)
    if match:
        return ResolvedIntent("login", 0.95, {"email": match.group(1)})
    return ResolvedIntent("login", 0.5)


def _parse_installment(message: str, normalized: str, today: date) -> ResolvedIntent | None:
    match = _INSTALLMENTS_RE.search(message)
    if not match:
        return None
    remainder = (message[: match.start()] + " " + message[match.end():]).strip()
    amount = extract_amount(remainder)
    item = _INSTALLMENT_ITEM_RE.search(message[match.end():])
    first_payment = extract_date(remainder, today)
    entities = _clean({
        "amount": amount,
        "installments": int(match.group(1)),
        "description": item.group(1).strip() if item else None,
        "first_payment_date": first_payment.isoformat() if first_payment else None,
    })
    return ResolvedIntent("create_installment", 0.9 if amount else 0.6, entities)


def _parse_transaction(message: str, normalized: str, today: date) -> ResolvedIntent:
    type_ = "expense" if _contains(normalized, _EXPENSE_WORDS) else "income"
    action = "add_expense" if type_ == "expense" else "add_income"

    segments = [s.strip() for s in _BATCH_SPLIT_RE.split(message) if s.strip()]
    if len(segments) > 1 and all(extract_amount(s) is not None for s in segments):
        shared_date = extract_date(message, today)
        items = []
        for segment in segments:
            entities = _transaction_entities(segment, today, type_=type_)
            if shared_date and "date" not in entities:
                entities["date"] = shared_date.isoformat()
            items.append(entities)
        return ResolvedIntent(action, 0.85, {"type": type_, "transactions": items})

    entities = _transaction_entities(message, today, type_=type_)
    return ResolvedIntent(action, 0.85 if "amount" in entities else 0.5, entities)


def _parse_report(message: str, normalized: str, today: date) -> ResolvedIntent:
    month: int | None = None
    year: int | None = None
    match = _MONTH_YEAR_RE.search(message)
    if match and 1 <= int(match.group(1)) <= 12:
        month, year = int(match.group(1)), int(match.group(2))
    elif _contains(normalized, _THIS_MONTH_WORDS):
        month, year = today.month, today.year
    elif _contains(normalized, _LAST_MONTH_WORDS):
        month, year = (12, today.year - 1) if today.month == 1 else (today.month - 1, today.year)
    else:
        for name, number in MONTHS.items():
            if len(name) > 3 and name in normalized:
                month = number
                break
        year_match = _YEAR_RE.search(message)
        if year_match:
            year = int(year_match.group(1))
    return ResolvedIntent(
        "show_report",
        0.9,
        {"month": month or today.month, "year": year or today.year},
    )


def _parse_budget(message: str, normalized: str) -> ResolvedIntent:
    amount = extract_amount(_MONTH_YEAR_RE.sub(" ", message))
    if amount is None:
        return ResolvedIntent("show_budget", 0.9)
    entities: dict[str, Any] = {"amount": amount, "category": extract_category(message)}
    if _contains(normalized, _DEFAULT_BUDGET_WORDS):
        entities["is_default"] = True
    match = _MONTH_YEAR_RE.search(message)
    if match and 1 <= int(match.group(1)) <= 12:
        entities["month"], entities["year"] = int(match.group(1)), int(match.group(2))
    entities = _clean(entities)
    return ResolvedIntent("set_budget", 0.85 if "category" in entities else 0.6, entities)


def _parse_categories(normalized: str) -> ResolvedIntent:
    if _contains(normalized, ("listar", "mostrar", "ver")):
        return ResolvedIntent("list_categories", 0.9)
    return ResolvedIntent("list_categories", 0.7)


def parse_local(message: str, *, today: date | None = None) -> ResolvedIntent:
    """Best-effort local interpretation of ``message``."""
    today = today or date.today()
    command = parse_command(message, today=today)
    if command is not None:
        return command

    normalized = normalize_text(message)
    if not normalized:
        return ResolvedIntent.unknown()

    if "login" in normalized or "entrar:" in normalized:
        return _parse_login(message)
    if _has_word(normalized, _LOGOUT_WORDS):
        return ResolvedIntent("logout", 0.9)
    if _contains(normalized, _HELP_WORDS):
        return ResolvedIntent("help", 1.0)
    if _INSTALLMENT_DELETE_RE.search(normalized):
        return ResolvedIntent("delete_installment", 0.9)

    installment = _parse_installment(message, normalized, today)
    if installment is not None:
        return installment
    if _contains(normalized, _COMMITMENT_WORDS):
        return ResolvedIntent("view_future_commitments", 0.9)
    if _contains(normalized, _BUDGET_WORDS):
        return _parse_budget(message, normalized)

    if _contains(normalized, _EXPENSE_WORDS) or _contains(normalized, _INCOME_WORDS):
        return _parse_transaction(message, normalized, today)
    if _contains(normalized, _REPORT_WORDS):
        return _parse_report(message, normalized, today)
    if _contains(normalized, _CATEGORY_WORDS):
        return _parse_categories(normalized)
    return ResolvedIntent.unknown()
