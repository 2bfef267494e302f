"""SQLAlchemy 2.0 models for the ledger tables the chat core reads and writes."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from finchat.constants import DB_SCHEMA

_UUID_DEFAULT = text("gen_random_uuid()")


class Base(DeclarativeBase):
    pass


class CategoryRecord(Base):
    __tablename__ = "categories"
    __table_args__ = {"schema": DB_SCHEMA}

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=_UUID_DEFAULT)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)  # NULL = default
    name: Mapped[str] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(16), server_default="expense")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class PaymentMethodRecord(Base):
    __tablename__ = "payment_methods"
    __table_args__ = {"schema": DB_SCHEMA}

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=_UUID_DEFAULT)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(16), server_default="other")
    # NULL until the user picks a mode; only meaningful for type='credit'
    credit_mode: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class InstallmentPlanRecord(Base):
    __tablename__ = "installment_plans"
    __table_args__ = {"schema": DB_SCHEMA}

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=_UUID_DEFAULT)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    payment_method_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey(f"{DB_SCHEMA}.payment_methods.id")
    )
    description: Mapped[str] = mapped_column(String(255))
    merchant: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    installments: Mapped[int] = mapped_column(Integer)
    monthly_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    first_payment_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(16), server_default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    payments: Mapped[list[InstallmentPaymentRecord]] = relationship(
        back_populates="plan",
        order_by="InstallmentPaymentRecord.installment_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class InstallmentPaymentRecord(Base):
    __tablename__ = "installment_payments"
    __table_args__ = (
        UniqueConstraint("plan_id", "installment_number", name="uq_installment_payments_plan_number"),
        {"schema": DB_SCHEMA},
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=_UUID_DEFAULT)
    plan_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey(f"{DB_SCHEMA}.installment_plans.id", ondelete="CASCADE"),
        index=True,
    )
    installment_number: Mapped[int] = mapped_column(Integer)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    due_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(16), server_default="pending")
    plan: Mapped[InstallmentPlanRecord] = relationship(back_populates="payments")


class TransactionRecordRow(Base):
    __tablename__ = "transactions"
    __table_args__ = {"schema": DB_SCHEMA}

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=_UUID_DEFAULT)
    readable_id: Mapped[str] = mapped_column(String(6), unique=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    type: Mapped[str] = mapped_column(String(16), server_default="expense")
    category_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey(f"{DB_SCHEMA}.categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    txn_date: Mapped[date] = mapped_column("date", Date)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_method_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey(f"{DB_SCHEMA}.payment_methods.id", ondelete="SET NULL"),
        nullable=True,
    )
    installment_payment_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey(f"{DB_SCHEMA}.installment_payments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    extra: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class BudgetRecord(Base):
    """Per-category spending limit. Default rows (month/year NULL) apply to every month."""

    __tablename__ = "budgets"
    __table_args__ = {"schema": DB_SCHEMA}

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, server_default=_UUID_DEFAULT)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    category_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey(f"{DB_SCHEMA}.categories.id", ondelete="CASCADE"),
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    is_default: Mapped[bool] = mapped_column(Boolean, server_default=text("false"))
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
