"""Create the category budgets table.

Revision ID: 1b2c3d4e5f6a
Revises: 0a1b2c3d4e5f
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

from finchat.constants import DB_SCHEMA

revision = "1b2c3d4e5f6a"
down_revision = "0a1b2c3d4e5f"


def upgrade() -> None:
    op.create_table(
        "budgets",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column(
            "category_id",
            sa.UUID(),
            sa.ForeignKey(f"{DB_SCHEMA}.categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("month", sa.Integer(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        schema=DB_SCHEMA,
    )
    op.create_index("ix_budgets_user_id", "budgets", ["user_id"], schema=DB_SCHEMA)


def downgrade() -> None:
    op.drop_table("budgets", schema=DB_SCHEMA)
