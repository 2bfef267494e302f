"""Tests for installment creation (card disambiguation) and deletion (select + confirm)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from finchat.conversation.contexts import DeletionStep, InstallmentCreationContext, InstallmentDeletionContext
from finchat.conversation.store import InMemoryConversationStore
from finchat.flows.installment_creation import InstallmentCreationFlow, select_card
from finchat.flows.installment_deletion import InstallmentDeletionFlow
from finchat.i18n.catalog import get_message
from finchat.infra.errors import LedgerError
from finchat.ledger.installments import add_months, split_installments
from finchat.ledger.types import (
    CreatedInstallmentPlan,
    DeletionImpact,
    InstallmentPlanDraft,
    PaymentMethod,
    PlanSummary,
)

CONVERSANT = "telegram:111"
TODAY = date(2024, 10, 15)

NUBANK = PaymentMethod(id="pm-nubank", name="Nubank", type="credit", credit_mode=True)
ITAU = PaymentMethod(id="pm-itau", name="Itaú Visa", type="credit", credit_mode=True)

ENTITIES = {"amount": 600.0, "installments": 3, "description": "celular"}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _created(draft: InstallmentPlanDraft) -> CreatedInstallmentPlan:
    amounts = split_installments(draft.total_amount, draft.installments)
    return CreatedInstallmentPlan(
        plan_id="plan-1",
        description=draft.description or "Parcelamento",
        total_amount=draft.total_amount,
        installments=draft.installments,
        monthly_amount=amounts[0],
        first_payment_date=draft.first_payment_date,
        last_payment_date=add_months(draft.first_payment_date, draft.installments - 1),
    )


def _make_creation(cards: list[PaymentMethod]) -> tuple[InstallmentCreationFlow, InMemoryConversationStore, AsyncMock]:
    store = InMemoryConversationStore()
    ledger = AsyncMock()
    ledger.list_credit_mode_cards.return_value = cards
    installments = AsyncMock()
    installments.create_plan.side_effect = lambda user_id, draft, default_description: _created(draft)
    return InstallmentCreationFlow(store, ledger, installments), store, installments


def _plan(plan_id: str = "plan-1", description: str = "celular") -> PlanSummary:
    return PlanSummary(
        id=plan_id,
        description=description,
        total_amount=Decimal("600"),
        installments=3,
        paid_count=1,
        pending_count=2,
        paid_amount=Decimal("200"),
        pending_amount=Decimal("400"),
    )


def _make_deletion(plans: list[PlanSummary]) -> tuple[InstallmentDeletionFlow, InMemoryConversationStore, AsyncMock]:
    store = InMemoryConversationStore()
    installments = AsyncMock()
    installments.list_active_plans.return_value = plans
    installments.delete_plan.return_value = DeletionImpact(
        plan_id="plan-1",
        description="celular",
        paid_unlinked=1,
        pending_deleted=2,
        pending_amount=Decimal("400"),
    )
    return InstallmentDeletionFlow(store, installments), store, installments


# ---------------------------------------------------------------------------
# select_card
# ---------------------------------------------------------------------------


class TestSelectCard:
    def test_by_index(self) -> None:
        assert select_card("2", [NUBANK, ITAU]) == ITAU

    def test_by_exact_name(self) -> None:
        assert select_card("nubank", [NUBANK, ITAU]) == NUBANK

    def test_by_partial_name_ignoring_accents(self) -> None:
        assert select_card("itau", [NUBANK, ITAU]) == ITAU

    def test_no_match(self) -> None:
        assert select_card("xyz", [NUBANK, ITAU]) is None
        assert select_card("3", [NUBANK, ITAU]) is None
        assert select_card("  ", [NUBANK, ITAU]) is None


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestInstallmentCreation:
    @pytest.mark.asyncio
    async def test_single_card_creates_immediately(self) -> None:
        flow, store, installments = _make_creation([NUBANK])

        outcome = await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        assert outcome.success
        assert "3x de R$ 200,00" in outcome.reply
        draft = installments.create_plan.call_args.args[1]
        assert draft == InstallmentPlanDraft(
            payment_method_id="pm-nubank",
            total_amount=Decimal("600.00"),
            installments=3,
            first_payment_date=TODAY,
            description="celular",
        )
        assert not await store.has(CONVERSANT)

    @pytest.mark.asyncio
    async def test_multiple_cards_prompt_then_numeric_choice(self) -> None:
        flow, store, installments = _make_creation([NUBANK, ITAU])

        prompt = await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        assert prompt.success
        assert "1. Nubank\n2. Itaú Visa" in prompt.reply
        installments.create_plan.assert_not_awaited()
        pending = await store.get(CONVERSANT)
        assert isinstance(pending, InstallmentCreationContext)
        assert pending.amount == Decimal("600.00")

        outcome = await flow.handle(CONVERSANT, "1")

        assert outcome.success
        assert "3x de R$ 200,00" in outcome.reply
        assert installments.create_plan.call_args.args[1].payment_method_id == "pm-nubank"
        assert not await store.has(CONVERSANT)

    @pytest.mark.asyncio
    async def test_choice_by_name(self) -> None:
        flow, _, installments = _make_creation([NUBANK, ITAU])
        await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        outcome = await flow.handle(CONVERSANT, "itau")

        assert outcome.success
        assert installments.create_plan.call_args.args[1].payment_method_id == "pm-itau"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["xyz", "²"])
    async def test_unrecognized_card_keeps_context(self, reply: str) -> None:
        flow, store, installments = _make_creation([NUBANK, ITAU])
        await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        outcome = await flow.handle(CONVERSANT, reply)

        assert not outcome.success
        assert outcome.error == "card not recognized"
        assert await store.has(CONVERSANT)
        installments.create_plan.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        flow, store, installments = _make_creation([NUBANK, ITAU])
        await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        outcome = await flow.handle(CONVERSANT, "cancelar")

        assert outcome.success
        assert outcome.reply == get_message("installment_cancelled")
        assert not await store.has(CONVERSANT)
        installments.create_plan.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_credit_mode_card(self) -> None:
        flow, _, installments = _make_creation([])

        outcome = await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        assert not outcome.success
        assert outcome.reply == get_message("installment_needs_credit_mode")
        installments.create_plan.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("entities", "key"),
        [
            ({"installments": 3}, "installment_clarify_amount"),
            ({"amount": 600}, "installment_clarify_installments"),
            ({"amount": -5, "installments": 3}, "installment_amount_positive"),
            ({"amount": 600, "installments": 61}, "installment_count_range"),
            ({"amount": 600, "installments": 0}, "installment_count_range"),
        ],
    )
    async def test_validation(self, entities: dict, key: str) -> None:
        flow, _, installments = _make_creation([NUBANK])

        outcome = await flow.start(CONVERSANT, user_id="u1", entities=entities, locale="pt-br", today=TODAY)

        assert not outcome.success
        assert outcome.reply == get_message(key)
        installments.create_plan.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ledger_failure(self) -> None:
        flow, _, installments = _make_creation([NUBANK])
        installments.create_plan.side_effect = LedgerError("boom")

        outcome = await flow.start(CONVERSANT, user_id="u1", entities=ENTITIES, locale="pt-br", today=TODAY)

        assert not outcome.success
        assert outcome.reply == get_message("installment_error")

    @pytest.mark.asyncio
    async def test_handle_without_context(self) -> None:
        flow, _, _ = _make_creation([NUBANK])
        outcome = await flow.handle(CONVERSANT, "1")
        assert not outcome.success
        assert outcome.error == "no pending installment"


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


class TestInstallmentDeletion:
    @pytest.mark.asyncio
    async def test_no_active_plans(self) -> None:
        flow, store, _ = _make_deletion([])

        outcome = await flow.start(CONVERSANT, user_id="u1", locale="pt-br")

        assert outcome.success
        assert outcome.reply == get_message("delete_no_active")
        assert not await store.has(CONVERSANT)

    @pytest.mark.asyncio
    async def test_select_then_confirm(self) -> None:
        flow, store, installments = _make_deletion([_plan()])

        listing = await flow.start(CONVERSANT, user_id="u1", locale="pt-br")
        assert "1. celular" in listing.reply

        confirmation = await flow.handle(CONVERSANT, "1")
        assert confirmation.success
        pending = await store.get(CONVERSANT)
        assert isinstance(pending, InstallmentDeletionContext)
        assert pending.step == DeletionStep.confirm
        assert pending.selected_plan_id == "plan-1"

        done = await flow.handle(CONVERSANT, "confirmar")
        assert done.success
        assert "Parcelamento Deletado" in done.reply
        installments.delete_plan.assert_awaited_once_with("u1", "plan-1")
        assert not await store.has(CONVERSANT)

    @pytest.mark.asyncio
    async def test_ambiguous_confirmation_deletes_nothing(self) -> None:
        flow, store, installments = _make_deletion([_plan()])
        await flow.start(CONVERSANT, user_id="u1", locale="pt-br")
        await flow.handle(CONVERSANT, "1")

        outcome = await flow.handle(CONVERSANT, "talvez")

        assert not outcome.success
        assert outcome.error == "confirmation not recognized"
        installments.delete_plan.assert_not_awaited()
        pending = await store.get(CONVERSANT)
        assert pending.step == DeletionStep.confirm

    @pytest.mark.asyncio
    async def test_sim_is_not_enough_to_delete(self) -> None:
        flow, _, installments = _make_deletion([_plan()])
        await flow.start(CONVERSANT, user_id="u1", locale="pt-br")
        await flow.handle(CONVERSANT, "1")

        outcome = await flow.handle(CONVERSANT, "sim")

        assert not outcome.success
        installments.delete_plan.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["5", "²"])
    async def test_invalid_selection(self, reply: str) -> None:
        flow, store, _ = _make_deletion([_plan("p1"), _plan("p2", "geladeira")])
        await flow.start(CONVERSANT, user_id="u1", locale="pt-br")

        outcome = await flow.handle(CONVERSANT, reply)

        assert not outcome.success
        assert outcome.reply == get_message("delete_invalid_selection", numbers="1-2")
        pending = await store.get(CONVERSANT)
        assert pending.step == DeletionStep.select

    @pytest.mark.asyncio
    async def test_cancel_at_any_step(self) -> None:
        flow, store, installments = _make_deletion([_plan()])
        await flow.start(CONVERSANT, user_id="u1", locale="pt-br")
        await flow.handle(CONVERSANT, "1")

        outcome = await flow.handle(CONVERSANT, "cancelar")

        assert outcome.success
        assert outcome.reply == get_message("delete_cancelled")
        assert not await store.has(CONVERSANT)
        installments.delete_plan.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_plan_vanished_before_confirmation(self) -> None:
        flow, _, installments = _make_deletion([_plan()])
        installments.delete_plan.return_value = None
        await flow.start(CONVERSANT, user_id="u1", locale="pt-br")
        await flow.handle(CONVERSANT, "1")

        outcome = await flow.handle(CONVERSANT, "confirmar")

        assert not outcome.success
        assert outcome.reply == get_message("delete_not_found")
