"""Multi-line replies assembled from catalog entries."""

from __future__ import annotations

from collections.abc import Sequence

from finchat.i18n.catalog import format_currency, format_date, get_message
from finchat.ledger.types import (
    CreatedInstallmentPlan,
    DeletionImpact,
    PaymentMethod,
    PlanSummary,
    TransactionRecord,
)


def transaction_added(record: TransactionRecord, locale: str | None = None) -> str:
    key = "income_added" if record.type == "income" else "expense_added"
    return get_message(
        key,
        locale,
        amount=format_currency(record.amount),
        category=record.category_name or get_message("no_category", locale),
        date=format_date(record.date),
        transaction_id=record.readable_id,
    )


def card_options(cards: Sequence[PaymentMethod]) -> str:
    return "\n".join(f"{number}. {card.name}" for number, card in enumerate(cards, start=1))


def installment_created(plan: CreatedInstallmentPlan, locale: str | None = None) -> str:
    lines = [
        get_message("installment_created_title", locale, description=plan.description),
        "",
        get_message(
            "installment_created_total",
            locale,
            total=format_currency(plan.total_amount),
            count=plan.installments,
            monthly=format_currency(plan.monthly_amount),
        ),
        get_message("installment_first_payment", locale, date=format_date(plan.first_payment_date)),
    ]
    if plan.installments > 1:
        lines.append(get_message("installment_last_payment", locale, date=format_date(plan.last_payment_date)))
    lines += ["", get_message("installment_created_help", locale)]
    return "\n".join(lines)


def plan_list(plans: Sequence[PlanSummary], locale: str | None = None) -> str:
    lines = [get_message("delete_list_prompt", locale), ""]
    for number, plan in enumerate(plans, start=1):
        lines.append(
            get_message(
                "delete_list_item",
                locale,
                number=number,
                description=plan.description,
                total=format_currency(plan.total_amount),
                count=plan.installments,
            )
        )
        lines.append(get_message("delete_list_status", locale, paid=plan.paid_count, pending=plan.pending_count))
    lines += ["", get_message("delete_list_footer", locale)]
    return "\n".join(lines)


def deletion_confirmation(plan: PlanSummary, locale: str | None = None) -> str:
    details = get_message(
        "delete_confirmation",
        locale,
        description=plan.description,
        total=format_currency(plan.total_amount),
        count=plan.installments,
        paid=plan.paid_count,
        paid_amount=format_currency(plan.paid_amount),
        pending=plan.pending_count,
        pending_amount=format_currency(plan.pending_amount),
    )
    return f"{details}\n\n{get_message('delete_confirm_prompt', locale)}"


def deletion_success(impact: DeletionImpact, locale: str | None = None) -> str:
    return get_message(
        "delete_success",
        locale,
        description=impact.description,
        pending=impact.pending_deleted,
        paid=impact.paid_unlinked,
        pending_amount=format_currency(impact.pending_amount),
    )
