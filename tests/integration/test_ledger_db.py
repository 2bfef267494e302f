"""Integration tests for the ledger repositories against a real PostgreSQL database.

Covers transaction CRUD by readable id, the NULL-guarded credit-mode write,
installment creation/deletion, authorization lookup, metric recording,
learned-pattern retirement and budget resolution.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text

from finchat.auth.gate import AuthorizationGate
from finchat.constants import DB_SCHEMA, PATTERN_RETIRE_MIN_USES
from finchat.ledger.budgets import BudgetRepository
from finchat.ledger.installments import InstallmentRepository
from finchat.ledger.repository import LedgerRepository
from finchat.ledger.types import InstallmentPlanDraft, TransactionDraft
from finchat.metrics.recorder import MetricsRecorder, ParsingMetric
from finchat.nlp.patterns import LearnedPatternStore

pytestmark = pytest.mark.integration

USER = "user-1"
TODAY = date(2024, 10, 15)


@pytest.fixture
def ledger(db_engine) -> LedgerRepository:
    return LedgerRepository(db_engine, schema=DB_SCHEMA)


@pytest.fixture
def installments(db_engine) -> InstallmentRepository:
    return InstallmentRepository(db_engine, schema=DB_SCHEMA)


async def _add_payment_method(engine, name: str, *, type_: str = "credit", credit_mode: bool | None = None) -> str:
    async with engine.begin() as conn:
        result = await conn.execute(
            text(f"""
                INSERT INTO {DB_SCHEMA}.payment_methods (user_id, name, type, credit_mode)
                VALUES (:uid, :name, :type, :mode)
                RETURNING id
            """),
            {"uid": USER, "name": name, "type": type_, "mode": credit_mode},
        )
        return str(result.scalar_one())


class TestTransactions:
    async def test_create_list_update_delete(self, ledger: LedgerRepository) -> None:
        category = await ledger.find_category(USER, "alimentacao", type_="expense")
        assert category is not None
        assert category.name == "Alimentação"

        record = await ledger.create_transaction(
            USER,
            TransactionDraft(
                amount=Decimal("50.00"),
                date=TODAY,
                category_id=category.id,
                category_name=category.name,
                description="mercado",
            ),
        )
        assert len(record.readable_id) == 6
        assert record.amount == Decimal("50.00")

        listed = await ledger.list_transactions(USER)
        assert [r.readable_id for r in listed] == [record.readable_id]
        assert listed[0].category_name == "Alimentação"

        assert await ledger.update_transaction(USER, record.readable_id.lower(), {"amount": Decimal("45.00")})
        assert (await ledger.list_transactions(USER))[0].amount == Decimal("45.00")

        assert not await ledger.delete_transaction("someone-else", record.readable_id)
        assert await ledger.delete_transaction(USER, record.readable_id)
        assert await ledger.list_transactions(USER) == []

    async def test_recent_transactions_window(self, ledger: LedgerRepository) -> None:
        await ledger.create_transaction(USER, TransactionDraft(amount=Decimal("30"), date=TODAY, description="uber"))

        recent = await ledger.recent_transactions(
            USER, type_="expense", since=datetime.now(UTC) - timedelta(hours=24), limit=10
        )
        assert [r.description for r in recent] == ["uber"]
        assert await ledger.recent_transactions(USER, type_="income", since=datetime.now(UTC), limit=10) == []

    async def test_monthly_report(self, ledger: LedgerRepository) -> None:
        await ledger.create_transaction(USER, TransactionDraft(amount=Decimal("100"), date=TODAY))
        await ledger.create_transaction(
            USER, TransactionDraft(amount=Decimal("1000"), date=TODAY, type="income")
        )
        await ledger.create_transaction(USER, TransactionDraft(amount=Decimal("999"), date=date(2024, 9, 30)))

        report = await ledger.monthly_report(USER, 2024, 10)

        assert report.income == Decimal("1000")
        assert report.expenses == Decimal("100")
        assert report.balance == Decimal("900")


class TestCreditMode:
    async def test_set_only_while_unset(self, ledger: LedgerRepository, db_engine) -> None:
        pm_id = await _add_payment_method(db_engine, "Nubank")

        method = await ledger.find_payment_method(USER, "nubank")
        assert method is not None
        assert method.needs_mode_selection

        assert await ledger.set_credit_mode_if_unset(USER, pm_id, True) is True
        assert await ledger.set_credit_mode_if_unset(USER, pm_id, False) is False

        cards = await ledger.list_credit_mode_cards(USER)
        assert [c.id for c in cards] == [pm_id]


class TestPaymentPreferences:
    async def test_most_used_method_is_suggested(self, ledger: LedgerRepository) -> None:
        await ledger.record_payment_preference(USER, "cat-1", "PIX")
        await ledger.record_payment_preference(USER, "cat-1", "Nubank")
        await ledger.record_payment_preference(USER, "cat-1", "Nubank")

        assert await ledger.suggest_payment_method(USER, "cat-1") == "Nubank"
        assert await ledger.suggest_payment_method(USER, "cat-2") is None


class TestInstallments:
    async def test_create_and_delete_plan(
        self, installments: InstallmentRepository, ledger: LedgerRepository, db_engine
    ) -> None:
        pm_id = await _add_payment_method(db_engine, "Nubank", credit_mode=True)

        plan = await installments.create_plan(
            USER,
            InstallmentPlanDraft(
                payment_method_id=pm_id,
                total_amount=Decimal("100.00"),
                installments=3,
                first_payment_date=date(2024, 1, 31),
                description="fone",
            ),
            default_description="Parcelamento",
        )
        assert plan.monthly_amount == Decimal("33.33")
        assert plan.last_payment_date == date(2024, 3, 31)

        amounts = sorted(r.amount for r in await ledger.list_transactions(USER))
        assert amounts == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]

        upcoming = await installments.upcoming_payments(USER, start=date(2024, 1, 1), months=12)
        assert [p.due_date for p in upcoming] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

        active = await installments.list_active_plans(USER)
        assert len(active) == 1
        assert active[0].pending_count == 3

        assert await installments.delete_plan("someone-else", plan.plan_id) is None

        impact = await installments.delete_plan(USER, plan.plan_id)
        assert impact is not None
        assert impact.pending_deleted == 3
        assert impact.paid_unlinked == 0
        assert impact.pending_amount == Decimal("100.00")
        assert await installments.list_active_plans(USER) == []
        assert await ledger.list_transactions(USER) == []


class TestAuthorization:
    async def test_granular_grant_then_session_fallback(self, db_engine) -> None:
        gate = AuthorizationGate(db_engine, schema=DB_SCHEMA)
        async with db_engine.begin() as conn:
            await conn.execute(
                text(f"""
                    INSERT INTO {DB_SCHEMA}.authorized_numbers (conversant, user_id, permissions)
                    VALUES ('telegram:1', :uid, CAST(:perms AS jsonb))
                """),
                {"uid": USER, "perms": '{"can_view": true}'},
            )
            await conn.execute(
                text(f"""
                    INSERT INTO {DB_SCHEMA}.chat_sessions (conversant, user_id)
                    VALUES ('telegram:2', :uid)
                """),
                {"uid": USER},
            )

        granular = await gate.check_authorization("telegram:1")
        assert granular.allows("show_expenses")
        assert not granular.allows("add_expense")

        session = await gate.check_authorization("telegram:2")
        assert session.allows("add_expense")

        assert await gate.end_session("telegram:2")
        assert not (await gate.check_authorization("telegram:2")).authorized
        assert not (await gate.check_authorization("telegram:3")).authorized


class TestMetrics:
    async def test_record(self, db_engine) -> None:
        recorder = MetricsRecorder(db_engine, schema=DB_SCHEMA)
        await recorder.record(
            ParsingMetric(
                conversant="telegram:1",
                message_text="blorp",
                strategy_used="unknown",
                success=False,
                error_message="no strategy matched",
            )
        )
        async with db_engine.connect() as conn:
            result = await conn.execute(
                text(f"SELECT strategy_used, success FROM {DB_SCHEMA}.parsing_metrics")
            )
            rows = result.all()
        assert [tuple(r) for r in rows] == [("unknown", False)]


class TestLearnedPatterns:
    async def test_failing_pattern_is_retired(self, db_engine) -> None:
        store = LearnedPatternStore(db_engine, schema=DB_SCHEMA)
        pattern_id = await store.save_pattern(
            USER,
            pattern_type="add_expense",
            regex_pattern="pix (?<amount>\\d+) pro joao",
            example_input="pix 30 pro joao",
            parsed_output={"amount": 30},
        )
        assert pattern_id is not None

        assert await store.record_usage(pattern_id, success=True)
        for _ in range(PATTERN_RETIRE_MIN_USES - 1):
            assert await store.record_usage(pattern_id, success=False)
        assert [p.usage_count for p in await store.active_patterns(USER)] == [PATTERN_RETIRE_MIN_USES]

        assert await store.record_usage(pattern_id, success=False) is False
        assert await store.active_patterns(USER) == []


class TestBudgets:
    async def test_monthly_override_beats_default(self, ledger: LedgerRepository, db_engine) -> None:
        budgets = BudgetRepository(db_engine, schema=DB_SCHEMA)
        food = await ledger.find_category(USER, "alimentacao", type_="expense")
        transport = await ledger.find_category(USER, "transporte", type_="expense")
        assert food is not None and transport is not None

        await budgets.set_budget(USER, food.id, Decimal("500"))
        await budgets.set_budget(USER, food.id, Decimal("400"), year=2024, month=10)
        await budgets.set_budget(USER, food.id, Decimal("450"), year=2024, month=10)
        await budgets.set_budget(USER, transport.id, Decimal("200"))
        await ledger.create_transaction(
            USER, TransactionDraft(amount=Decimal("120"), date=TODAY, category_id=food.id)
        )
        await ledger.create_transaction(
            USER, TransactionDraft(amount=Decimal("80"), date=date(2024, 9, 30), category_id=food.id)
        )

        october = {s.category_name: s for s in await budgets.budget_statuses(USER, 2024, 10)}
        assert october["Alimentação"].amount == Decimal("450")
        assert not october["Alimentação"].is_default
        assert october["Alimentação"].spent == Decimal("120")
        assert october["Transporte"].is_default
        assert october["Transporte"].spent == Decimal("0")

        november = {s.category_name: s for s in await budgets.budget_statuses(USER, 2024, 11)}
        assert november["Alimentação"].amount == Decimal("500")
        assert november["Alimentação"].is_default
