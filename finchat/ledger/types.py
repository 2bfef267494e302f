"""Plain value objects exchanged between the ledger repository and the conversation layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum


class TransactionType(StrEnum):
    expense = "expense"
    income = "income"


class PaymentMethodType(StrEnum):
    credit = "credit"
    debit = "debit"
    cash = "cash"
    pix = "pix"
    other = "other"


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    name: str
    type: str = PaymentMethodType.other
    credit_mode: bool | None = None

    @property
    def needs_mode_selection(self) -> bool:
        """Credit card whose tracking mode has never been chosen."""
        return self.type == PaymentMethodType.credit and self.credit_mode is None


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    type: str = TransactionType.expense


@dataclass(frozen=True)
class TransactionDraft:
    """Everything needed to insert one transaction row."""

    amount: Decimal
    date: date
    type: str = TransactionType.expense
    category_id: str | None = None
    category_name: str | None = None
    description: str | None = None
    payment_method: str | None = None
    payment_method_id: str | None = None


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    readable_id: str
    amount: Decimal
    type: str
    date: date
    category_id: str | None = None
    category_name: str | None = None
    description: str | None = None
    payment_method: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class InstallmentPlanDraft:
    payment_method_id: str
    total_amount: Decimal
    installments: int
    first_payment_date: date
    description: str | None = None
    merchant: str | None = None


@dataclass(frozen=True)
class CreatedInstallmentPlan:
    plan_id: str
    description: str
    total_amount: Decimal
    installments: int
    monthly_amount: Decimal
    first_payment_date: date
    last_payment_date: date


@dataclass(frozen=True)
class PlanSummary:
    """Active installment plan as listed in the deletion flow."""

    id: str
    description: str
    total_amount: Decimal
    installments: int
    paid_count: int = 0
    pending_count: int = 0
    paid_amount: Decimal = Decimal("0")
    pending_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class DeletionImpact:
    plan_id: str
    description: str
    paid_unlinked: int
    pending_deleted: int
    pending_amount: Decimal


@dataclass(frozen=True)
class UpcomingPayment:
    description: str
    installment_number: int
    total_installments: int
    amount: Decimal
    due_date: date


@dataclass(frozen=True)
class MonthlyReport:
    year: int
    month: int
    income: Decimal
    expenses: Decimal
    by_category: tuple[tuple[str, Decimal], ...] = ()

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses


@dataclass(frozen=True)
class BudgetStatus:
    """Effective budget of one category for a month, with what was spent against it."""

    category_name: str
    amount: Decimal
    spent: Decimal
    is_default: bool = False

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.spent

    @property
    def percentage(self) -> int:
        if self.amount <= 0:
            return 100
        return int(self.spent * 100 / self.amount)
