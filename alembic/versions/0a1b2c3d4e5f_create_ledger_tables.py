"""Create ledger, authorization, learned-pattern and metrics tables.

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from finchat.constants import DB_SCHEMA

revision = "0a1b2c3d4e5f"
down_revision = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")
    )


def upgrade() -> None:
    op.create_table(
        "categories",
        _uuid_pk(),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="expense"),
        _created_at(),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_categories_user_id", "categories", ["user_id"], schema=DB_SCHEMA)

    op.create_table(
        "payment_methods",
        _uuid_pk(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="other"),
        sa.Column("credit_mode", sa.Boolean(), nullable=True),
        _created_at(),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_payment_methods_user_id", "payment_methods", ["user_id"], schema=DB_SCHEMA)

    op.create_table(
        "installment_plans",
        _uuid_pk(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column(
            "payment_method_id",
            sa.UUID(),
            sa.ForeignKey(f"{DB_SCHEMA}.payment_methods.id"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("merchant", sa.String(255), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("installments", sa.Integer(), nullable=False),
        sa.Column("monthly_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("first_payment_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        _created_at(),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_installment_plans_user_id", "installment_plans", ["user_id"], schema=DB_SCHEMA)

    op.create_table(
        "installment_payments",
        _uuid_pk(),
        sa.Column(
            "plan_id",
            sa.UUID(),
            sa.ForeignKey(f"{DB_SCHEMA}.installment_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("installment_number", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.UniqueConstraint("plan_id", "installment_number", name="uq_installment_payments_plan_number"),
        schema=DB_SCHEMA,
    )
    op.create_index(
        "ix_installment_payments_plan_id", "installment_payments", ["plan_id"], schema=DB_SCHEMA
    )

    op.create_table(
        "transactions",
        _uuid_pk(),
        sa.Column("readable_id", sa.String(6), nullable=False, unique=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="expense"),
        sa.Column(
            "category_id",
            sa.UUID(),
            sa.ForeignKey(f"{DB_SCHEMA}.categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(64), nullable=True),
        sa.Column(
            "payment_method_id",
            sa.UUID(),
            sa.ForeignKey(f"{DB_SCHEMA}.payment_methods.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "installment_payment_id",
            sa.UUID(),
            sa.ForeignKey(f"{DB_SCHEMA}.installment_payments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("metadata", JSONB(), nullable=True),
        _created_at(),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"], schema=DB_SCHEMA)
    op.create_index(
        "ix_transactions_installment_payment_id",
        "transactions",
        ["installment_payment_id"],
        schema=DB_SCHEMA,
    )

    op.create_table(
        "authorized_numbers",
        _uuid_pk(),
        sa.Column("conversant", sa.String(64), nullable=False, unique=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("permissions", JSONB(), nullable=True),
        _created_at(),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_authorized_numbers_user_id", "authorized_numbers", ["user_id"], schema=DB_SCHEMA)

    op.create_table(
        "chat_sessions",
        _uuid_pk(),
        sa.Column("conversant", sa.String(64), nullable=False, unique=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.Column(
            "last_activity", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")
        ),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_chat_sessions_user_id", "chat_sessions", ["user_id"], schema=DB_SCHEMA)

    op.create_table(
        "learned_patterns",
        _uuid_pk(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("pattern_type", sa.String(32), nullable=False),
        sa.Column("regex_pattern", sa.Text(), nullable=False),
        sa.Column("example_input", sa.Text(), nullable=False, server_default=""),
        sa.Column("parsed_output", JSONB(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False, server_default=sa.text("0.8")),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("success_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("failure_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_learned_patterns_user_id", "learned_patterns", ["user_id"], schema=DB_SCHEMA)

    op.create_table(
        "payment_method_preferences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("category_id", sa.String(64), nullable=False),
        sa.Column("payment_method", sa.String(64), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")
        ),
        sa.UniqueConstraint(
            "user_id", "category_id", "payment_method", name="uq_payment_preferences_user_category_method"
        ),
        schema=DB_SCHEMA,
    )
    op.create_index(
        "ix_payment_method_preferences_user_id",
        "payment_method_preferences",
        ["user_id"],
        schema=DB_SCHEMA,
    )

    op.create_table(
        "parsing_metrics",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("conversant", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("message_text", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(16), nullable=False),
        sa.Column("strategy_used", sa.String(32), nullable=False),
        sa.Column("intent_action", sa.String(64), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("parse_duration_ms", sa.Integer(), nullable=False),
        sa.Column("execution_duration_ms", sa.Integer(), nullable=True),
        sa.Column("permission_required", sa.String(32), nullable=True),
        sa.Column("permission_granted", sa.Boolean(), nullable=True),
        _created_at(),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_parsing_metrics_conversant", "parsing_metrics", ["conversant"], schema=DB_SCHEMA)


def downgrade() -> None:
    for table in (
        "parsing_metrics",
        "payment_method_preferences",
        "learned_patterns",
        "chat_sessions",
        "authorized_numbers",
        "transactions",
        "installment_payments",
        "installment_plans",
        "payment_methods",
        "categories",
    ):
        op.drop_table(table, schema=DB_SCHEMA)
