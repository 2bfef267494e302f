"""Installment plans: creation and deletion hand off to their flows; commitments are a read."""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from finchat.cascade.types import Outcome
from finchat.executor.base import ActionHandler, HandlerContext
from finchat.flows.installment_creation import InstallmentCreationFlow
from finchat.flows.installment_deletion import InstallmentDeletionFlow
from finchat.i18n.catalog import format_currency, get_message
from finchat.ledger.installments import InstallmentRepository
from finchat.ledger.types import UpcomingPayment
from finchat.nlp.intent import ResolvedIntent

COMMITMENT_MONTHS = 12


def render_commitments(payments: list[UpcomingPayment], locale: str | None = None) -> str:
    if not payments:
        return get_message("commitments_empty", locale)
    by_month: dict[tuple[int, int], list[UpcomingPayment]] = defaultdict(list)
    for payment in payments:
        by_month[(payment.due_date.year, payment.due_date.month)].append(payment)

    lines = [get_message("commitments_title", locale)]
    for (year, month), items in sorted(by_month.items()):
        total = sum((item.amount for item in items), Decimal("0"))
        lines += [
            "",
            get_message(
                "commitments_month", locale, month=month, year=year, amount=format_currency(total), count=len(items)
            ),
        ]
        lines += [
            get_message(
                "commitments_item",
                locale,
                description=item.description,
                current=item.installment_number,
                total=item.total_installments,
                amount=format_currency(item.amount),
            )
            for item in items
        ]
    return "\n".join(lines)


class InstallmentHandler(ActionHandler):
    def __init__(
        self,
        installments: InstallmentRepository,
        *,
        creation: InstallmentCreationFlow,
        deletion: InstallmentDeletionFlow,
    ) -> None:
        self._installments = installments
        self._creation = creation
        self._deletion = deletion

    @property
    def actions(self) -> frozenset[str]:
        return frozenset({"create_installment", "delete_installment", "view_future_commitments"})

    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        user_id = context.require_user()
        if intent.action == "create_installment":
            return await self._creation.start(
                context.conversant,
                user_id=user_id,
                entities=intent.entities,
                locale=context.locale,
                today=context.today,
            )
        if intent.action == "delete_installment":
            return await self._deletion.start(context.conversant, user_id=user_id, locale=context.locale)

        payments = await self._installments.upcoming_payments(
            user_id, start=context.today, months=COMMITMENT_MONTHS
        )
        return Outcome.ok(render_commitments(payments, context.locale), action=intent.action)
