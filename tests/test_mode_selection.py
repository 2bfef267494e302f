"""Tests for ModeSelectionFlow: parked transaction, guarded mode write, replay."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from finchat.conversation.contexts import ModeSelectionContext
from finchat.conversation.store import InMemoryConversationStore
from finchat.flows.mode_selection import ModeSelectionFlow, parse_mode_choice
from finchat.i18n.catalog import get_message
from finchat.infra.errors import LedgerError
from finchat.ledger.types import TransactionDraft, TransactionRecord

CONVERSANT = "telegram:111"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _draft() -> TransactionDraft:
    return TransactionDraft(
        amount=Decimal("80.00"),
        date=date(2024, 10, 15),
        description="mercado",
        payment_method="Nubank",
        payment_method_id="pm-nubank",
    )


def _record() -> TransactionRecord:
    return TransactionRecord(
        id="t1", readable_id="MER123", amount=Decimal("80.00"), type="expense", date=date(2024, 10, 15)
    )


def _make_ledger(updated: bool = True) -> AsyncMock:
    ledger = AsyncMock()
    ledger.set_credit_mode_if_unset.return_value = updated
    ledger.create_transaction.return_value = _record()
    return ledger


async def _started_flow(
    ledger: AsyncMock, analytics: MagicMock | None = None
) -> tuple[ModeSelectionFlow, InMemoryConversationStore]:
    store = InMemoryConversationStore()
    flow = ModeSelectionFlow(store, ledger, analytics=analytics)
    await flow.start(CONVERSANT, user_id="u1", payment_method_id="pm-nubank", draft=_draft(), locale="pt-br")
    return flow, store


# ---------------------------------------------------------------------------
# parse_mode_choice
# ---------------------------------------------------------------------------


class TestParseModeChoice:
    @pytest.mark.parametrize("text", ["1", "crédito", "Modo Crédito", "credit"])
    def test_credit(self, text: str) -> None:
        assert parse_mode_choice(text) is True

    @pytest.mark.parametrize("text", ["2", "simples", "simple mode"])
    def test_simple(self, text: str) -> None:
        assert parse_mode_choice(text) is False

    @pytest.mark.parametrize("text", ["3", "talvez", ""])
    def test_unrecognized(self, text: str) -> None:
        assert parse_mode_choice(text) is None


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


class TestModeSelectionFlow:
    @pytest.mark.asyncio
    async def test_start_parks_transaction(self) -> None:
        store = InMemoryConversationStore()
        flow = ModeSelectionFlow(store, _make_ledger())
        outcome = await flow.start(
            CONVERSANT, user_id="u1", payment_method_id="pm-nubank", draft=_draft(), locale="pt-br"
        )
        assert outcome.success
        assert outcome.reply == get_message("credit_mode_prompt")
        pending = await store.get(CONVERSANT)
        assert isinstance(pending, ModeSelectionContext)
        assert pending.transaction == _draft()

    @pytest.mark.asyncio
    async def test_choice_sets_mode_then_creates_transaction(self) -> None:
        ledger = _make_ledger()
        analytics = MagicMock()
        flow, store = await _started_flow(ledger, analytics)

        outcome = await flow.handle(CONVERSANT, "1")

        assert outcome.success
        ledger.set_credit_mode_if_unset.assert_awaited_once_with("u1", "pm-nubank", True)
        ledger.create_transaction.assert_awaited_once_with("u1", _draft())
        assert outcome.reply[0] == get_message("credit_mode_confirmed_credit")
        assert "MER123" in outcome.reply[1]
        assert not await store.has(CONVERSANT)
        analytics.capture.assert_called_once()
        assert analytics.capture.call_args.args[0] == "credit_mode_selected"

    @pytest.mark.asyncio
    async def test_mode_already_set_still_replays_transaction(self) -> None:
        ledger = _make_ledger(updated=False)
        analytics = MagicMock()
        flow, _ = await _started_flow(ledger, analytics)

        outcome = await flow.handle(CONVERSANT, "simples")

        assert outcome.success
        assert outcome.reply[0] == get_message("credit_mode_confirmed_simple")
        ledger.create_transaction.assert_awaited_once()
        analytics.capture.assert_not_called()

    @pytest.mark.asyncio
    async def test_repeated_answer_without_context(self) -> None:
        ledger = _make_ledger()
        flow, _ = await _started_flow(ledger)
        await flow.handle(CONVERSANT, "1")

        outcome = await flow.handle(CONVERSANT, "1")

        assert not outcome.success
        assert outcome.reply == get_message("credit_mode_no_pending")
        assert ledger.set_credit_mode_if_unset.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_choice_keeps_context(self) -> None:
        ledger = _make_ledger()
        flow, store = await _started_flow(ledger)

        outcome = await flow.handle(CONVERSANT, "3")

        assert not outcome.success
        assert outcome.error == "invalid mode choice"
        assert await store.has(CONVERSANT)
        ledger.set_credit_mode_if_unset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        ledger = _make_ledger()
        flow, store = await _started_flow(ledger)

        outcome = await flow.handle(CONVERSANT, "cancelar")

        assert outcome.success
        assert outcome.action == "credit_mode_cancelled"
        assert not await store.has(CONVERSANT)
        ledger.create_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transaction_failure_after_mode_update(self) -> None:
        ledger = _make_ledger()
        ledger.create_transaction.side_effect = LedgerError("insert failed")
        flow, _ = await _started_flow(ledger)

        outcome = await flow.handle(CONVERSANT, "1")

        assert not outcome.success
        assert outcome.reply == [
            get_message("credit_mode_confirmed_credit"),
            get_message("credit_mode_transaction_failed"),
        ]
