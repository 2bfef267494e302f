from __future__ import annotations

from typing import TYPE_CHECKING

from finchat.executor.handlers.budgets import BudgetHandler
from finchat.executor.handlers.installments import InstallmentHandler
from finchat.executor.handlers.reports import CategoryHandler, ReportHandler
from finchat.executor.handlers.session import SessionHandler
from finchat.executor.handlers.transactions import TransactionHandler
from finchat.executor.registry import HandlerRegistry

if TYPE_CHECKING:
    from finchat.analytics import AnalyticsSink
    from finchat.auth.gate import AuthorizationGate
    from finchat.flows.duplicate_confirmation import DuplicateConfirmationFlow
    from finchat.flows.installment_creation import InstallmentCreationFlow
    from finchat.flows.installment_deletion import InstallmentDeletionFlow
    from finchat.flows.mode_selection import ModeSelectionFlow
    from finchat.ledger.budgets import BudgetRepository
    from finchat.ledger.installments import InstallmentRepository
    from finchat.ledger.repository import LedgerRepository


def register_handlers(
    registry: HandlerRegistry,
    *,
    ledger: LedgerRepository,
    installments: InstallmentRepository,
    budgets: BudgetRepository,
    gate: AuthorizationGate,
    mode_selection: ModeSelectionFlow,
    duplicates: DuplicateConfirmationFlow,
    installment_creation: InstallmentCreationFlow,
    installment_deletion: InstallmentDeletionFlow,
    analytics: AnalyticsSink | None = None,
) -> None:
    """Register the full handler set."""
    registry.register(
        TransactionHandler(ledger, mode_selection=mode_selection, duplicates=duplicates, analytics=analytics)
    )
    registry.register(ReportHandler(ledger))
    registry.register(CategoryHandler(ledger))
    registry.register(BudgetHandler(ledger, budgets))
    registry.register(
        InstallmentHandler(installments, creation=installment_creation, deletion=installment_deletion)
    )
    registry.register(SessionHandler(gate))
