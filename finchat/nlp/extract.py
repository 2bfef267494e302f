"""Entity extraction helpers shared by the command parser and the local parser.

Amounts come back as floats and dates as ``date`` objects; callers put ISO
strings into intent entities.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

from finchat.infra.text import normalize_text

_CURRENCY_AMOUNT_RE = re.compile(r"R\$?\s*(\d+(?:[.,]\d{1,2})?)")
_REAIS_AMOUNT_RE = re.compile(r"(\d+(?:[.,]\d{1,2})?)\s*(?:reais|real)\b", re.IGNORECASE)
_BARE_AMOUNT_RE = re.compile(r"(\d+(?:[.,]\d{1,2})?)")
_FULL_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_SHORT_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})\b")
_DATE_TOKEN_RE = re.compile(r"^\d{1,2}/\d{1,2}(/\d{4})?$")
_CATEGORY_AFTER_PREPOSITION_RE = re.compile(
    r"\b(?:em|de|para|com)\s+([a-záàâãéèêíïóôõöúçñ]+)", re.IGNORECASE
)
_DESCRIPTION_NOISE_RE = re.compile(
    r"\b(?:gastei|gastar|paguei|pagar|comprei|comprar|recebi|receber|ganhei|ganhar)\b", re.IGNORECASE
)
_DESCRIPTION_STOPWORDS_RE = re.compile(r"\b(?:em|de|para|com|no|na|ontem|hoje|hj)\b", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

CATEGORY_KEYWORDS: tuple[str, ...] = (
    "salário", "salario", "freelance", "investimento", "investimentos",
    "comida", "alimentação", "alimentacao", "transporte", "uber", "taxi",
    "compras", "shopping", "entretenimento", "lazer", "contas", "conta",
    "saúde", "saude", "médico", "medico", "educação", "educacao",
    "aluguel", "assinatura", "assinaturas", "netflix", "spotify",
    "academia", "gym", "restaurante", "mercado", "supermercado",
)

# Words that follow "em/de/para/com" but are never categories.
_NOT_CATEGORIES = frozenset({"ontem", "hoje", "dia", "mes", "ano"})

PAYMENT_METHOD_KEYWORDS: tuple[str, ...] = (
    "dinheiro", "cartao", "pix", "debito", "credito",
    "nubank", "inter", "itau", "bradesco", "santander", "caixa", "bb",
)

MONTHS: dict[str, int] = {
    "janeiro": 1, "fevereiro": 2, "marco": 3, "abril": 4, "maio": 5, "junho": 6,
    "julho": 7, "agosto": 8, "setembro": 9, "outubro": 10, "novembro": 11, "dezembro": 12,
    "jan": 1, "fev": 2, "mar": 3, "abr": 4, "mai": 5, "jun": 6,
    "jul": 7, "ago": 8, "set": 9, "out": 10, "nov": 11, "dez": 12,
}


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


def parse_amount(token: str) -> float | None:
    """Parse a standalone amount token ('R$25,50', '40'); non-positive -> None."""
    cleaned = re.sub(r"[R$\s]", "", token).replace(",", ".")
    try:
        amount = float(cleaned)
    except ValueError:
        return None
    return amount if amount > 0 else None


def extract_amount(message: str) -> float | None:
    for pattern in (_CURRENCY_AMOUNT_RE, _REAIS_AMOUNT_RE, _BARE_AMOUNT_RE):
        match = pattern.search(message)
        if match:
            return _to_float(match.group(1))
    return None


def extract_category(message: str) -> str | None:
    lowered = message.lower()
    for keyword in CATEGORY_KEYWORDS:
        if keyword in lowered:
            return keyword
    match = _CATEGORY_AFTER_PREPOSITION_RE.search(message)
    if match and normalize_text(match.group(1)) not in _NOT_CATEGORIES:
        return match.group(1)
    return None


def extract_payment_method(message: str) -> str | None:
    words = set(normalize_text(message).split(" "))
    for keyword in PAYMENT_METHOD_KEYWORDS:
        if keyword in words:
            return keyword
    return None


def is_payment_method(token: str) -> bool:
    normalized = normalize_text(token)
    return any(keyword in normalized for keyword in PAYMENT_METHOD_KEYWORDS)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def extract_date(message: str, today: date) -> date | None:
    """'hoje'/'hj', 'ontem', dd/mm/yyyy or dd/mm (current year)."""
    words = set(normalize_text(message).split(" "))
    if words & {"hoje", "hj"}:
        return today
    if "ontem" in words:
        return today - timedelta(days=1)
    match = _FULL_DATE_RE.search(message)
    if match:
        return _safe_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
    match = _SHORT_DATE_RE.search(message)
    if match:
        return _safe_date(today.year, int(match.group(2)), int(match.group(1)))
    return None


def is_date_token(token: str) -> bool:
    return bool(_DATE_TOKEN_RE.match(token))


def parse_date_token(token: str, today: date) -> date | None:
    parts = [int(p) for p in token.split("/")]
    year = parts[2] if len(parts) == 3 else today.year
    return _safe_date(year, parts[1], parts[0])


def extract_description(message: str) -> str:
    text = _DESCRIPTION_NOISE_RE.sub("", message)
    text = _CURRENCY_AMOUNT_RE.sub("", text)
    text = _REAIS_AMOUNT_RE.sub("", text)
    text = _DESCRIPTION_STOPWORDS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def parse_month(token: str) -> int | None:
    normalized = normalize_text(token)
    if normalized in MONTHS:
        return MONTHS[normalized]
    if normalized.isdecimal() and 1 <= int(normalized) <= 12:
        return int(normalized)
    return None


def parse_year(token: str) -> int | None:
    if token.isdecimal() and 2000 <= int(token) <= 2100:
        return int(token)
    return None
