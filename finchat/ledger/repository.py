"""Ledger access for the chat core: categories, payment methods, transactions, reports.

Plain ``text()`` SQL on an AsyncEngine. Every SQLAlchemyError is translated into
LedgerError so callers only handle one persistence failure type.
"""

from __future__ import annotations

import json
import secrets
import string
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from finchat.constants import DB_SCHEMA
from finchat.infra.errors import LedgerError
from finchat.infra.text import normalize_text
from finchat.ledger.types import (
    Category,
    MonthlyReport,
    PaymentMethod,
    TransactionDraft,
    TransactionRecord,
)

logger = structlog.get_logger()

_READABLE_ID_ALPHABET = string.ascii_uppercase + string.digits
_READABLE_ID_ATTEMPTS = 5

N = TypeVar("N", Category, PaymentMethod)


def generate_readable_id(length: int = 6) -> str:
    """Random uppercase id with at least one letter and one digit (e.g. 'A3F9K2')."""
    while True:
        candidate = "".join(secrets.choice(_READABLE_ID_ALPHABET) for _ in range(length))
        if any(c.isalpha() for c in candidate) and any(c.isdigit() for c in candidate):
            return candidate


def best_name_match(items: list[N], name: str) -> N | None:
    """Exact normalized match first, then containment in either direction."""
    wanted = normalize_text(name)
    if not wanted:
        return None
    for item in items:
        if normalize_text(item.name) == wanted:
            return item
    for item in items:
        candidate = normalize_text(item.name)
        if wanted in candidate or candidate in wanted:
            return item
    return None


class SqlRepository:
    """Shared engine handling for repositories in this package."""

    def __init__(self, engine: AsyncEngine, *, schema: str = DB_SCHEMA) -> None:
        self._engine = engine
        self._schema = schema

    @asynccontextmanager
    async def _connection(self, operation: str, *, write: bool = False) -> AsyncIterator[AsyncConnection]:
        """Yield a connection (a transaction when ``write``); SQLAlchemyError -> LedgerError."""
        try:
            ctx = self._engine.begin() if write else self._engine.connect()
            async with ctx as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("ledger_operation_failed", operation=operation, error=str(exc))
            raise LedgerError(f"{operation} failed: {exc}") from exc

    async def _insert_transaction(
        self,
        conn: AsyncConnection,
        user_id: str,
        draft: TransactionDraft,
        *,
        installment_payment_id: str | None = None,
        extra: dict | None = None,
    ) -> TransactionRecord:
        """Insert inside an open transaction, retrying on readable-id collisions."""
        for _ in range(_READABLE_ID_ATTEMPTS):
            readable_id = generate_readable_id()
            result = await conn.execute(
                text(f"""
                    INSERT INTO {self._schema}.transactions
                        (readable_id, user_id, amount, type, category_id, description, date,
                         payment_method, payment_method_id, installment_payment_id, metadata)
                    VALUES
                        (:rid, :uid, :amount, :type, CAST(:cid AS uuid), :description, :date,
                         :pm, CAST(:pmid AS uuid), CAST(:ipid AS uuid), CAST(:extra AS jsonb))
                    ON CONFLICT (readable_id) DO NOTHING
                    RETURNING id, readable_id, amount, type, category_id, description, date,
                              payment_method, created_at
                """),
                {
                    "rid": readable_id,
                    "uid": user_id,
                    "amount": draft.amount,
                    "type": draft.type,
                    "cid": draft.category_id,
                    "description": draft.description,
                    "date": draft.date,
                    "pm": draft.payment_method,
                    "pmid": draft.payment_method_id,
                    "ipid": installment_payment_id,
                    "extra": _json(extra),
                },
            )
            row = result.mappings().first()
            if row is not None:
                return _to_transaction({**row, "category_name": draft.category_name})
        raise LedgerError("could not allocate a unique transaction id")


def _to_transaction(row: Any) -> TransactionRecord:
    return TransactionRecord(
        id=str(row["id"]),
        readable_id=row["readable_id"],
        amount=Decimal(row["amount"]),
        type=row["type"],
        date=row["date"],
        category_id=str(row["category_id"]) if row["category_id"] else None,
        category_name=row.get("category_name"),
        description=row["description"],
        payment_method=row["payment_method"],
        created_at=row.get("created_at"),
    )


class LedgerRepository(SqlRepository):
    """Transactions, categories, payment methods and monthly reporting."""

    # -- categories ---------------------------------------------------------

    async def list_categories(self, user_id: str, *, type_: str | None = None) -> list[Category]:
        async with self._connection("list_categories") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT id, name, type FROM {self._schema}.categories
                    WHERE (user_id = :uid OR user_id IS NULL)
                      AND (CAST(:type AS VARCHAR) IS NULL OR type = :type)
                    ORDER BY user_id NULLS LAST, name
                """),
                {"uid": user_id, "type": type_},
            )
            rows = result.mappings().all()
        return [Category(id=str(r["id"]), name=r["name"], type=r["type"]) for r in rows]

    async def find_category(self, user_id: str, name: str | None, *, type_: str) -> Category | None:
        if not name:
            return None
        return best_name_match(await self.list_categories(user_id, type_=type_), name)

    # -- payment methods ----------------------------------------------------

    async def list_payment_methods(self, user_id: str) -> list[PaymentMethod]:
        async with self._connection("list_payment_methods") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT id, name, type, credit_mode FROM {self._schema}.payment_methods
                    WHERE user_id = :uid ORDER BY name
                """),
                {"uid": user_id},
            )
            rows = result.mappings().all()
        return [
            PaymentMethod(id=str(r["id"]), name=r["name"], type=r["type"], credit_mode=r["credit_mode"])
            for r in rows
        ]

    async def find_payment_method(self, user_id: str, name: str | None) -> PaymentMethod | None:
        if not name:
            return None
        return best_name_match(await self.list_payment_methods(user_id), name)

    async def list_credit_mode_cards(self, user_id: str) -> list[PaymentMethod]:
        """Credit cards with credit mode enabled: the only ones eligible for installments."""
        async with self._connection("list_credit_mode_cards") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT id, name, type, credit_mode FROM {self._schema}.payment_methods
                    WHERE user_id = :uid AND type = 'credit' AND credit_mode IS TRUE
                    ORDER BY name
                """),
                {"uid": user_id},
            )
            rows = result.mappings().all()
        return [
            PaymentMethod(id=str(r["id"]), name=r["name"], type=r["type"], credit_mode=r["credit_mode"])
            for r in rows
        ]

    async def set_credit_mode_if_unset(self, user_id: str, payment_method_id: str, credit_mode: bool) -> bool:
        """Set credit_mode only while it is still NULL. Returns True if this call set it.

        The NULL guard makes a repeated or concurrent choice update zero rows.
        """
        async with self._connection("set_credit_mode", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE {self._schema}.payment_methods
                    SET credit_mode = :mode
                    WHERE id = CAST(:pmid AS uuid) AND user_id = :uid AND credit_mode IS NULL
                """),
                {"mode": credit_mode, "pmid": payment_method_id, "uid": user_id},
            )
            updated = result.rowcount == 1
        logger.info(
            "credit_mode_update",
            payment_method_id=payment_method_id,
            credit_mode=credit_mode,
            updated=updated,
        )
        return updated

    # -- transactions -------------------------------------------------------

    async def create_transaction(self, user_id: str, draft: TransactionDraft) -> TransactionRecord:
        async with self._connection("create_transaction", write=True) as conn:
            record = await self._insert_transaction(conn, user_id, draft)
        logger.info("transaction_created", readable_id=record.readable_id, type=record.type)
        return record

    async def recent_transactions(
        self, user_id: str, *, type_: str, since: datetime, limit: int
    ) -> list[TransactionRecord]:
        async with self._connection("recent_transactions") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT t.id, t.readable_id, t.amount, t.type, t.category_id, t.description,
                           t.date, t.payment_method, t.created_at, c.name AS category_name
                    FROM {self._schema}.transactions t
                    LEFT JOIN {self._schema}.categories c ON c.id = t.category_id
                    WHERE t.user_id = :uid AND t.type = :type AND t.created_at >= :since
                    ORDER BY t.created_at DESC
                    LIMIT :limit
                """),
                {"uid": user_id, "type": type_, "since": since, "limit": limit},
            )
            rows = result.mappings().all()
        return [_to_transaction(r) for r in rows]

    async def list_transactions(self, user_id: str, *, limit: int = 10) -> list[TransactionRecord]:
        async with self._connection("list_transactions") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT t.id, t.readable_id, t.amount, t.type, t.category_id, t.description,
                           t.date, t.payment_method, t.created_at, c.name AS category_name
                    FROM {self._schema}.transactions t
                    LEFT JOIN {self._schema}.categories c ON c.id = t.category_id
                    WHERE t.user_id = :uid
                    ORDER BY t.date DESC, t.created_at DESC
                    LIMIT :limit
                """),
                {"uid": user_id, "limit": limit},
            )
            rows = result.mappings().all()
        return [_to_transaction(r) for r in rows]

    async def delete_transaction(self, user_id: str, readable_id: str) -> bool:
        async with self._connection("delete_transaction", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    DELETE FROM {self._schema}.transactions
                    WHERE user_id = :uid AND readable_id = :rid
                """),
                {"uid": user_id, "rid": readable_id.upper()},
            )
            return result.rowcount > 0

    async def update_transaction(self, user_id: str, readable_id: str, changes: dict[str, Any]) -> bool:
        """Apply ``changes`` (amount, category_id, date, payment_method, description)."""
        allowed = {"amount", "category_id", "date", "payment_method", "description"}
        fields = {k: v for k, v in changes.items() if k in allowed and v is not None}
        if not fields:
            return False
        assignments = ", ".join(
            f"{k} = CAST(:{k} AS uuid)" if k == "category_id" else f"{k} = :{k}" for k in fields
        )
        async with self._connection("update_transaction", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE {self._schema}.transactions SET {assignments}
                    WHERE user_id = :uid AND readable_id = :rid
                """),
                {**fields, "uid": user_id, "rid": readable_id.upper()},
            )
            return result.rowcount > 0

    # -- reports ------------------------------------------------------------

    async def monthly_report(self, user_id: str, year: int, month: int) -> MonthlyReport:
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        async with self._connection("monthly_report") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT t.type, COALESCE(c.name, '') AS category_name, SUM(t.amount) AS total
                    FROM {self._schema}.transactions t
                    LEFT JOIN {self._schema}.categories c ON c.id = t.category_id
                    WHERE t.user_id = :uid AND t.date >= :start AND t.date < :end
                    GROUP BY t.type, c.name
                    ORDER BY total DESC
                """),
                {"uid": user_id, "start": start, "end": end},
            )
            rows = result.mappings().all()
        income = sum((Decimal(r["total"]) for r in rows if r["type"] == "income"), Decimal("0"))
        expenses = sum((Decimal(r["total"]) for r in rows if r["type"] == "expense"), Decimal("0"))
        by_category = tuple(
            (r["category_name"], Decimal(r["total"])) for r in rows if r["type"] == "expense"
        )
        return MonthlyReport(year=year, month=month, income=income, expenses=expenses, by_category=by_category)

    # -- payment-method preferences ----------------------------------------

    async def suggest_payment_method(self, user_id: str, category_id: str) -> str | None:
        async with self._connection("suggest_payment_method") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT payment_method FROM {self._schema}.payment_method_preferences
                    WHERE user_id = :uid AND category_id = :cid
                    ORDER BY usage_count DESC, updated_at DESC
                    LIMIT 1
                """),
                {"uid": user_id, "cid": category_id},
            )
            return result.scalar_one_or_none()

    async def record_payment_preference(self, user_id: str, category_id: str, payment_method: str) -> None:
        async with self._connection("record_payment_preference", write=True) as conn:
            await conn.execute(
                text(f"""
                    INSERT INTO {self._schema}.payment_method_preferences
                        (user_id, category_id, payment_method, usage_count)
                    VALUES (:uid, :cid, :pm, 1)
                    ON CONFLICT (user_id, category_id, payment_method)
                    DO UPDATE SET usage_count = {self._schema}.payment_method_preferences.usage_count + 1,
                                  updated_at = NOW()
                """),
                {"uid": user_id, "cid": category_id, "pm": payment_method},
            )


def _json(value: dict | None) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)
