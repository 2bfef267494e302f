"""Pending-context variants kept between messages of a multi-step flow.

A conversant holds at most one of these at a time (see store.py). Each variant
carries only what its flow needs to resume, plus locale and creation time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import ClassVar

from finchat.constants import DEFAULT_LOCALE
from finchat.ledger.types import PaymentMethod, PlanSummary, TransactionDraft
from finchat.nlp.intent import ResolvedIntent


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ContextKind(StrEnum):
    mode_selection = "mode_selection"
    installment_creation = "installment_creation"
    installment_deletion = "installment_deletion"
    correction = "correction"
    duplicate_confirmation = "duplicate_confirmation"


class DeletionStep(StrEnum):
    select = "select"
    confirm = "confirm"


@dataclass(frozen=True)
class ModeSelectionContext:
    """Transaction parked until the user picks a tracking mode for its card."""

    kind: ClassVar[ContextKind] = ContextKind.mode_selection

    user_id: str
    payment_method_id: str
    transaction: TransactionDraft
    locale: str = DEFAULT_LOCALE
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class InstallmentCreationContext:
    """Validated installment purchase waiting for card disambiguation."""

    kind: ClassVar[ContextKind] = ContextKind.installment_creation

    user_id: str
    amount: Decimal
    installments: int
    candidates: tuple[PaymentMethod, ...]
    description: str | None = None
    merchant: str | None = None
    first_payment_date: date | None = None
    locale: str = DEFAULT_LOCALE
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class InstallmentDeletionContext:
    kind: ClassVar[ContextKind] = ContextKind.installment_deletion

    user_id: str
    plans: tuple[PlanSummary, ...]
    step: DeletionStep = DeletionStep.select
    selected_plan_id: str | None = None
    locale: str = DEFAULT_LOCALE
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def selected_plan(self) -> PlanSummary | None:
        for plan in self.plans:
            if plan.id == self.selected_plan_id:
                return plan
        return None


@dataclass(frozen=True)
class CorrectionContext:
    """Last AI-resolved message, so the next message can correct it."""

    kind: ClassVar[ContextKind] = ContextKind.correction

    original_message: str
    intent: ResolvedIntent
    locale: str = DEFAULT_LOCALE
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class DuplicateConfirmationContext:
    kind: ClassVar[ContextKind] = ContextKind.duplicate_confirmation

    duplicate_id: str
    user_id: str
    transaction: TransactionDraft
    locale: str = DEFAULT_LOCALE
    created_at: datetime = field(default_factory=_utcnow)


PendingContext = (
    ModeSelectionContext
    | InstallmentCreationContext
    | InstallmentDeletionContext
    | CorrectionContext
    | DuplicateConfirmationContext
)
