"""Database models for the personal-finance domain."""
from __future__ import annotations

from .base import Base
from .bank_accounts import BankAccount, BankTransaction
from .chat import Chat, ChatMessage
from .enums import (
    AssetType,
    ChatRole,
    InvestmentType,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
)
from .holdings import Asset, Goal, Investment
from .transactions import Category, SubCategory, Transaction

__all__ = [
    "Base",
    "Asset",
    "AssetType",
    "BankAccount",
    "BankTransaction",
    "Category",
    "Chat",
    "ChatMessage",
    "ChatRole",
    "Goal",
    "Investment",
    "InvestmentType",
    "PaymentMethod",
    "SubCategory",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
