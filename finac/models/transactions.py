"""ORM models for categorised income/expense transactions."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import MONEY, Base, OwnedMixin, new_id
from .enums import PaymentMethod, TransactionStatus, TransactionType


class Category(OwnedMixin, Base):
    """User-defined transaction category (Food, Rent, Salary, ...)."""

    __tablename__ = "category"

    name: Mapped[str] = mapped_column(String(80), nullable=False)
    color: Mapped[str | None] = mapped_column(String(16))

    sub_categories: Mapped[list["SubCategory"]] = relationship(
        back_populates="category", cascade="all, delete-orphan"
    )


class SubCategory(Base):
    """Finer-grained label nested under a category."""

    __tablename__ = "sub_category"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    category_id: Mapped[str] = mapped_column(ForeignKey("category.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(80), nullable=False)

    category: Mapped[Category] = relationship(back_populates="sub_categories")


class Transaction(OwnedMixin, Base):
    """A single income or expense entry, optionally linked to a bank account."""

    __tablename__ = "transaction"

    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, native_enum=False, length=16), nullable=False
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(TransactionStatus, native_enum=False, length=16),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        SQLEnum(PaymentMethod, native_enum=False, length=16)
    )
    category_id: Mapped[str | None] = mapped_column(ForeignKey("category.id"))
    sub_category_id: Mapped[str | None] = mapped_column(ForeignKey("sub_category.id"))
    bank_account_id: Mapped[str | None] = mapped_column(ForeignKey("bank_account.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    category: Mapped[Category | None] = relationship()
    sub_category: Mapped[SubCategory | None] = relationship()
    bank_account: Mapped["BankAccount | None"] = relationship()  # noqa: F821
