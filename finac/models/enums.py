"""Closed enumerations shared by the finance models."""
from __future__ import annotations

from enum import Enum


class TransactionType(str, Enum):
    """Direction of money movement; CREDIT is inflow, DEBIT is outflow."""

    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    UPI = "UPI"
    CARD = "CARD"
    ONLINE = "ONLINE"
    OTHER = "OTHER"


class InvestmentType(str, Enum):
    STOCKS = "STOCKS"
    MUTUAL_FUNDS = "MUTUAL_FUNDS"
    GOLD = "GOLD"
    FIXED_DEPOSIT = "FIXED_DEPOSIT"
    NPS = "NPS"
    PF = "PF"


class AssetType(str, Enum):
    PROPERTY = "PROPERTY"
    VEHICLE = "VEHICLE"
    JEWELRY = "JEWELRY"
    ELECTRONICS = "ELECTRONICS"
    OTHER = "OTHER"


class ChatRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"
