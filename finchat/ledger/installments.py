"""Installment plans: atomic creation with per-payment ledger rows, listing, deletion."""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_DOWN, Decimal

import structlog
from sqlalchemy import text

from finchat.ledger.repository import SqlRepository
from finchat.ledger.types import (
    CreatedInstallmentPlan,
    DeletionImpact,
    InstallmentPlanDraft,
    PlanSummary,
    TransactionDraft,
    TransactionType,
    UpcomingPayment,
)

logger = structlog.get_logger()

_CENT = Decimal("0.01")


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the month's last day (31/01 + 1 -> 28/02)."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def split_installments(total: Decimal, count: int) -> list[Decimal]:
    """Equal cents-rounded parts; the rounding remainder goes to the last payment."""
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    base = (total / count).quantize(_CENT, rounding=ROUND_DOWN)
    parts = [base] * count
    parts[-1] = total - base * (count - 1)
    return parts


class InstallmentRepository(SqlRepository):

    async def create_plan(
        self, user_id: str, draft: InstallmentPlanDraft, *, default_description: str
    ) -> CreatedInstallmentPlan:
        """Insert the plan, its payments and one linked transaction per payment in one transaction."""
        description = draft.description or draft.merchant or default_description
        amounts = split_installments(draft.total_amount, draft.installments)
        due_dates = [add_months(draft.first_payment_date, i) for i in range(draft.installments)]

        async with self._connection("create_installment_plan", write=True) as conn:
            plan_row = await conn.execute(
                text(f"""
                    INSERT INTO {self._schema}.installment_plans
                        (user_id, payment_method_id, description, merchant, total_amount,
                         installments, monthly_amount, first_payment_date, status)
                    VALUES
                        (:uid, CAST(:pmid AS uuid), :description, :merchant, :total,
                         :installments, :monthly, :first, 'active')
                    RETURNING id
                """),
                {
                    "uid": user_id,
                    "pmid": draft.payment_method_id,
                    "description": description,
                    "merchant": draft.merchant,
                    "total": draft.total_amount,
                    "installments": draft.installments,
                    "monthly": amounts[0],
                    "first": draft.first_payment_date,
                },
            )
            plan_id = str(plan_row.scalar_one())

            for number, (amount, due) in enumerate(zip(amounts, due_dates, strict=True), start=1):
                payment_row = await conn.execute(
                    text(f"""
                        INSERT INTO {self._schema}.installment_payments
                            (plan_id, installment_number, amount, due_date, status)
                        VALUES (CAST(:plan_id AS uuid), :number, :amount, :due, 'pending')
                        RETURNING id
                    """),
                    {"plan_id": plan_id, "number": number, "amount": amount, "due": due},
                )
                payment_id = str(payment_row.scalar_one())
                await self._insert_transaction(
                    conn,
                    user_id,
                    TransactionDraft(
                        amount=amount,
                        date=due,
                        type=TransactionType.expense,
                        description=f"{description} ({number}/{draft.installments})",
                        payment_method_id=draft.payment_method_id,
                    ),
                    installment_payment_id=payment_id,
                    extra={
                        "installment_plan_id": plan_id,
                        "installment_number": number,
                        "total_installments": draft.installments,
                    },
                )

        logger.info(
            "installment_plan_created",
            plan_id=plan_id,
            installments=draft.installments,
            total=str(draft.total_amount),
        )
        return CreatedInstallmentPlan(
            plan_id=plan_id,
            description=description,
            total_amount=draft.total_amount,
            installments=draft.installments,
            monthly_amount=amounts[0],
            first_payment_date=due_dates[0],
            last_payment_date=due_dates[-1],
        )

    async def list_active_plans(self, user_id: str) -> list[PlanSummary]:
        async with self._connection("list_active_plans") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT p.id, p.description, p.total_amount, p.installments,
                           COUNT(ip.id) FILTER (WHERE ip.status = 'paid') AS paid_count,
                           COUNT(ip.id) FILTER (WHERE ip.status = 'pending') AS pending_count,
                           COALESCE(SUM(ip.amount) FILTER (WHERE ip.status = 'paid'), 0) AS paid_amount,
                           COALESCE(SUM(ip.amount) FILTER (WHERE ip.status = 'pending'), 0) AS pending_amount
                    FROM {self._schema}.installment_plans p
                    LEFT JOIN {self._schema}.installment_payments ip ON ip.plan_id = p.id
                    WHERE p.user_id = :uid AND p.status = 'active'
                    GROUP BY p.id
                    ORDER BY p.created_at DESC
                """),
                {"uid": user_id},
            )
            rows = result.mappings().all()
        return [
            PlanSummary(
                id=str(r["id"]),
                description=r["description"],
                total_amount=Decimal(r["total_amount"]),
                installments=r["installments"],
                paid_count=r["paid_count"],
                pending_count=r["pending_count"],
                paid_amount=Decimal(r["paid_amount"]),
                pending_amount=Decimal(r["pending_amount"]),
            )
            for r in rows
        ]

    async def delete_plan(self, user_id: str, plan_id: str) -> DeletionImpact | None:
        """Delete a plan the user owns. Returns None when it does not exist or is not theirs.

        Transactions of paid installments are unlinked and kept; transactions of
        pending installments are deleted; the plan delete cascades to its payments.
        """
        async with self._connection("delete_installment_plan", write=True) as conn:
            owner = await conn.execute(
                text(f"""
                    SELECT description FROM {self._schema}.installment_plans
                    WHERE id = CAST(:pid AS uuid) AND user_id = :uid
                    FOR UPDATE
                """),
                {"pid": plan_id, "uid": user_id},
            )
            description = owner.scalar_one_or_none()
            if description is None:
                return None

            unlinked = await conn.execute(
                text(f"""
                    UPDATE {self._schema}.transactions SET installment_payment_id = NULL
                    WHERE installment_payment_id IN (
                        SELECT id FROM {self._schema}.installment_payments
                        WHERE plan_id = CAST(:pid AS uuid) AND status = 'paid'
                    )
                """),
                {"pid": plan_id},
            )
            pending = await conn.execute(
                text(f"""
                    DELETE FROM {self._schema}.transactions
                    WHERE installment_payment_id IN (
                        SELECT id FROM {self._schema}.installment_payments
                        WHERE plan_id = CAST(:pid AS uuid) AND status = 'pending'
                    )
                    RETURNING amount
                """),
                {"pid": plan_id},
            )
            pending_amounts = [Decimal(row[0]) for row in pending.fetchall()]

            await conn.execute(
                text(f"DELETE FROM {self._schema}.installment_plans WHERE id = CAST(:pid AS uuid)"),
                {"pid": plan_id},
            )

        impact = DeletionImpact(
            plan_id=plan_id,
            description=description,
            paid_unlinked=unlinked.rowcount,
            pending_deleted=len(pending_amounts),
            pending_amount=sum(pending_amounts, Decimal("0")),
        )
        logger.info(
            "installment_plan_deleted",
            plan_id=plan_id,
            paid_unlinked=impact.paid_unlinked,
            pending_deleted=impact.pending_deleted,
        )
        return impact

    async def upcoming_payments(self, user_id: str, *, start: date, months: int = 12) -> list[UpcomingPayment]:
        async with self._connection("upcoming_payments") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT p.description, p.installments, ip.installment_number, ip.amount, ip.due_date
                    FROM {self._schema}.installment_payments ip
                    JOIN {self._schema}.installment_plans p ON p.id = ip.plan_id
                    WHERE p.user_id = :uid AND p.status = 'active' AND ip.status = 'pending'
                      AND ip.due_date >= :start AND ip.due_date < :end
                    ORDER BY ip.due_date, p.description
                """),
                {"uid": user_id, "start": start, "end": add_months(start, months)},
            )
            rows = result.mappings().all()
        return [
            UpcomingPayment(
                description=r["description"],
                installment_number=r["installment_number"],
                total_installments=r["installments"],
                amount=Decimal(r["amount"]),
                due_date=r["due_date"],
            )
            for r in rows
        ]
