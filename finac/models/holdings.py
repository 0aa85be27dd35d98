"""ORM models for investments, savings goals and physical assets."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import MONEY, Base, OwnedMixin
from .enums import AssetType, InvestmentType


class Investment(OwnedMixin, Base):
    """Market-linked or fixed-income holding."""

    __tablename__ = "investment"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[InvestmentType] = mapped_column(
        SQLEnum(InvestmentType, native_enum=False, length=24), nullable=False
    )
    symbol: Mapped[str | None] = mapped_column(String(32))
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False, default=Decimal(0))
    current_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    invested_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    current_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    purchase_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Goal(OwnedMixin, Base):
    """Savings target tracked towards a date."""

    __tablename__ = "goal"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Asset(OwnedMixin, Base):
    """Physical asset such as property, a vehicle or jewellery."""

    __tablename__ = "asset"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[AssetType] = mapped_column(
        SQLEnum(AssetType, native_enum=False, length=16), nullable=False
    )
    current_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    purchase_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal(0))
    purchase_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sell_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sell_price: Mapped[Decimal | None] = mapped_column(MONEY)
    profit_loss: Mapped[Decimal | None] = mapped_column(MONEY)
