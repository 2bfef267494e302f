"""Explicit slash commands (``/add 50 comida``) parsed ahead of natural language."""

from __future__ import annotations

from datetime import date

from finchat.i18n.catalog import get_message
from finchat.nlp.extract import (
    is_date_token,
    is_payment_method,
    parse_amount,
    parse_date_token,
    parse_month,
    parse_year,
)
from finchat.nlp.intent import ResolvedIntent

COMMAND_CONFIDENCE = 0.95

_LIST_ACTIONS = {
    "categories": "list_categories",
    "transactions": "list_transactions",
}

_DEFAULT_BUDGET_FLAGS = frozenset({"fixo", "fixed", "sempre"})

_HELP_TOPICS = {
    "add": "help_add",
    "list": "help_list",
    "report": "help_report",
    "categories": "help_categories",
    "parcelamentos": "help_parcelamentos",
    "budget": "help_budget",
}


def _intent(action: str, **entities: object) -> ResolvedIntent:
    return ResolvedIntent(
        action=action,
        confidence=COMMAND_CONFIDENCE,
        entities={k: v for k, v in entities.items() if v is not None},
    )


def _parse_add(args: list[str], today: date) -> ResolvedIntent | None:
    if len(args) < 2:
        return None
    amount = parse_amount(args[0])
    if amount is None:
        return None
    category = args[1]
    txn_date: date | None = None
    payment_method: str | None = None
    words: list[str] = []
    for arg in args[2:]:
        if is_date_token(arg):
            txn_date = parse_date_token(arg, today)
        elif is_payment_method(arg):
            payment_method = arg
        else:
            words.append(arg)
    return _intent(
        "add_expense",
        type="expense",
        amount=amount,
        category=category,
        description=" ".join(words) or category,
        date=txn_date.isoformat() if txn_date else None,
        payment_method=payment_method,
    )


def _parse_list(args: list[str], today: date) -> ResolvedIntent | None:
    if not args:
        return _intent("show_expenses")
    action = _LIST_ACTIONS.get(args[0].lower())
    return _intent(action) if action else None


def _parse_report(args: list[str], today: date) -> ResolvedIntent | None:
    month = year = None
    category_words = args
    if args and (month := parse_month(args[0])) is not None:
        category_words = args[1:]
        if category_words and (year := parse_year(category_words[0])) is not None:
            category_words = category_words[1:]
    return _intent(
        "show_report",
        month=month or today.month,
        year=year or today.year,
        category=" ".join(category_words) or None,
    )


def _parse_help(args: list[str], today: date) -> ResolvedIntent | None:
    return _intent("help", topic=args[0].lower().lstrip("/") if args else None)


def _parse_categories(args: list[str], today: date) -> ResolvedIntent | None:
    return None if args else _intent("list_categories")


def _parse_commitments(args: list[str], today: date) -> ResolvedIntent | None:
    return _intent("view_future_commitments")


def _parse_delete_installment(args: list[str], today: date) -> ResolvedIntent | None:
    return _intent("delete_installment")


def _parse_budget(args: list[str], today: date) -> ResolvedIntent | None:
    if not args:
        return _intent("show_budget")
    if len(args) < 2:
        return None
    amount = parse_amount(args[1])
    if amount is None:
        return None
    flags = {arg.lower() for arg in args[2:]}
    return _intent(
        "set_budget",
        category=args[0],
        amount=amount,
        is_default=True if flags & _DEFAULT_BUDGET_FLAGS else None,
    )


_COMMANDS = {
    "add": _parse_add,
    "list": _parse_list,
    "report": _parse_report,
    "help": _parse_help,
    "categories": _parse_categories,
    "parcelamentos": _parse_commitments,
    "installments": _parse_commitments,
    "deletar_parcelamento": _parse_delete_installment,
    "budget": _parse_budget,
    "orcamento": _parse_budget,
}


def is_command(message: str) -> bool:
    return message.strip().startswith("/")


def parse_command(message: str, *, today: date | None = None) -> ResolvedIntent | None:
    """Parse ``/command args``. Unknown or malformed commands return None."""
    if not is_command(message):
        return None
    parts = message.strip().split()
    parser = _COMMANDS.get(parts[0][1:].lower())
    if parser is None:
        return None
    return parser(parts[1:], today or date.today())


def command_help(topic: str | None, locale: str | None = None) -> str:
    key = _HELP_TOPICS.get(topic or "", "help")
    return get_message(key, locale)
