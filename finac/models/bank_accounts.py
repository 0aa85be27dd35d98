"""ORM models for bank accounts and their running-balance ledger."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import MONEY, Base, OwnedMixin
from .enums import TransactionType


class BankAccount(OwnedMixin, Base):
    """Savings/current account tracked by the user."""

    __tablename__ = "bank_account"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    account_number: Mapped[str | None] = mapped_column(String(34))
    bank_name: Mapped[str | None] = mapped_column(String(120))
    account_type: Mapped[str | None] = mapped_column(String(32))
    starting_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    insurance_amount: Mapped[Decimal | None] = mapped_column(MONEY)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    transactions: Mapped[list["BankTransaction"]] = relationship(
        back_populates="bank_account", cascade="all, delete-orphan"
    )


class BankTransaction(OwnedMixin, Base):
    """Deposit or withdrawal posted against a bank account."""

    __tablename__ = "bank_transaction"

    bank_account_id: Mapped[str] = mapped_column(ForeignKey("bank_account.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, native_enum=False, length=16), nullable=False
    )
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))
    current_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    total_deposit: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    total_withdrawal: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))

    bank_account: Mapped[BankAccount] = relationship(back_populates="transactions")
