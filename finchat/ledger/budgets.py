"""Category budgets: monthly limits and defaults that apply to every month."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import text

from finchat.ledger.repository import SqlRepository
from finchat.ledger.types import BudgetStatus

logger = structlog.get_logger()


class BudgetRepository(SqlRepository):

    async def set_budget(
        self,
        user_id: str,
        category_id: str,
        amount: Decimal,
        *,
        year: int | None = None,
        month: int | None = None,
    ) -> None:
        """Create or replace the budget for a category.

        Without ``month``/``year`` the budget is the category default; a
        monthly budget overrides the default for that month only.
        """
        is_default = month is None or year is None
        params = {
            "uid": user_id,
            "cid": category_id,
            "amount": amount,
            "is_default": is_default,
            "month": None if is_default else month,
            "year": None if is_default else year,
        }
        async with self._connection("set_budget", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE {self._schema}.budgets
                    SET amount = :amount, updated_at = NOW()
                    WHERE user_id = :uid AND category_id = CAST(:cid AS uuid)
                      AND is_default = :is_default
                      AND month IS NOT DISTINCT FROM CAST(:month AS integer)
                      AND year IS NOT DISTINCT FROM CAST(:year AS integer)
                """),
                params,
            )
            if result.rowcount == 0:
                await conn.execute(
                    text(f"""
                        INSERT INTO {self._schema}.budgets
                            (user_id, category_id, amount, is_default, month, year)
                        VALUES (:uid, CAST(:cid AS uuid), :amount, :is_default, :month, :year)
                    """),
                    params,
                )
        logger.info("budget_set", user_id=user_id, category_id=category_id, is_default=is_default)

    async def budget_statuses(self, user_id: str, year: int, month: int) -> list[BudgetStatus]:
        """Effective budget per category for the month (override beats default) with expenses so far."""
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        async with self._connection("budget_statuses") as conn:
            result = await conn.execute(
                text(f"""
                    WITH effective AS (
                        SELECT DISTINCT ON (b.category_id) b.category_id, b.amount, b.is_default
                        FROM {self._schema}.budgets b
                        WHERE b.user_id = :uid
                          AND (b.is_default OR (b.year = :year AND b.month = :month))
                        ORDER BY b.category_id, b.is_default
                    )
                    SELECT c.name AS category_name, e.amount, e.is_default,
                           COALESCE((
                               SELECT SUM(t.amount) FROM {self._schema}.transactions t
                               WHERE t.user_id = :uid AND t.category_id = e.category_id
                                 AND t.type = 'expense' AND t.date >= :start AND t.date < :end
                           ), 0) AS spent
                    FROM effective e
                    JOIN {self._schema}.categories c ON c.id = e.category_id
                    ORDER BY c.name
                """),
                {"uid": user_id, "year": year, "month": month, "start": start, "end": end},
            )
            rows = result.mappings().all()
        return [
            BudgetStatus(
                category_name=r["category_name"],
                amount=Decimal(r["amount"]),
                spent=Decimal(r["spent"]),
                is_default=r["is_default"],
            )
            for r in rows
        ]
