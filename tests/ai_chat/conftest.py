"""Shared fixtures for the AI chat tests."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from finac.models import (
    Asset,
    AssetType,
    BankAccount,
    BankTransaction,
    Base,
    Category,
    Goal,
    Investment,
    InvestmentType,
    Transaction,
    TransactionStatus,
    TransactionType,
)

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture()
def session_factory() -> sessionmaker:
    """In-memory database shared by every session of one test."""

    engine = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, future=True)
    engine.dispose()


@pytest.fixture()
def session(session_factory: sessionmaker) -> Session:
    """Provide an in-memory database session for each test."""

    with session_factory() as session:
        yield session


@dataclass
class Ledger:
    food: Category
    rent: Category
    salary: Category
    account: BankAccount


def _transaction(
    session: Session,
    *,
    amount: str,
    kind: TransactionType,
    when: datetime,
    category: Category | None = None,
    status: TransactionStatus = TransactionStatus.COMPLETED,
    is_active: bool = True,
    user_id: str = USER_ID,
) -> Transaction:
    row = Transaction(
        user_id=user_id,
        amount=Decimal(amount),
        transaction_type=kind,
        status=status,
        date=when,
        category=category,
        is_active=is_active,
        description=f"{kind.value.lower()} {amount}",
    )
    session.add(row)
    return row


@pytest.fixture()
def ledger(session: Session) -> Ledger:
    """Seed one user's finances plus a second user's noise."""

    food = Category(user_id=USER_ID, name="Food", color="#ff0000")
    rent = Category(user_id=USER_ID, name="Rent")
    salary = Category(user_id=USER_ID, name="Salary")
    session.add_all([food, rent, salary])

    _transaction(session, amount="5000", kind=TransactionType.CREDIT, when=datetime(2024, 1, 1, 10), category=salary)
    _transaction(session, amount="500", kind=TransactionType.DEBIT, when=datetime(2024, 1, 5, 12), category=food)
    _transaction(
        session,
        amount="1200",
        kind=TransactionType.DEBIT,
        when=datetime(2024, 1, 5, 9),
        category=rent,
        status=TransactionStatus.PENDING,
    )
    _transaction(session, amount="300", kind=TransactionType.DEBIT, when=datetime(2024, 2, 10, 18))
    # soft deleted
    _transaction(
        session, amount="999", kind=TransactionType.DEBIT, when=datetime(2024, 1, 6), category=food, is_active=False
    )
    _transaction(
        session, amount="10000", kind=TransactionType.CREDIT, when=datetime(2024, 1, 3), user_id=OTHER_USER_ID
    )

    session.add_all(
        [
            Investment(
                user_id=USER_ID,
                name="Acme",
                type=InvestmentType.STOCKS,
                invested_amount=Decimal("1000"),
                current_value=Decimal("1500"),
                purchase_date=datetime(2023, 6, 1),
            ),
            Investment(
                user_id=USER_ID,
                name="Globex",
                type=InvestmentType.STOCKS,
                invested_amount=Decimal("700"),
                current_value=Decimal("500"),
                purchase_date=datetime(2023, 7, 1),
            ),
            Investment(
                user_id=USER_ID,
                name="Sovereign Gold Bond",
                type=InvestmentType.GOLD,
                invested_amount=Decimal("1800"),
                current_value=Decimal("2000"),
                purchase_date=datetime(2022, 1, 1),
            ),
            Investment(
                user_id=OTHER_USER_ID,
                name="Other",
                type=InvestmentType.GOLD,
                invested_amount=Decimal("1"),
                current_value=Decimal("99999"),
            ),
        ]
    )

    session.add_all(
        [
            Goal(user_id=USER_ID, name="Car", target_amount=Decimal("1000"), current_amount=Decimal("100")),
            Goal(
                user_id=USER_ID,
                name="Trip",
                target_amount=Decimal("500"),
                current_amount=Decimal("50"),
                is_active=False,
            ),
        ]
    )

    session.add(
        Asset(
            user_id=USER_ID,
            name="Flat",
            type=AssetType.PROPERTY,
            current_value=Decimal("1000000"),
            purchase_value=Decimal("800000"),
            purchase_date=datetime(2020, 5, 1),
        )
    )

    account = BankAccount(
        user_id=USER_ID,
        name="Salary Account",
        bank_name="HDFC",
        starting_balance=Decimal("10000"),
    )
    session.add(account)
    session.add_all(
        [
            BankTransaction(
                user_id=USER_ID,
                bank_account=account,
                amount=Decimal("2000"),
                transaction_type=TransactionType.CREDIT,
                transaction_date=datetime(2024, 3, 1),
            ),
            BankTransaction(
                user_id=USER_ID,
                bank_account=account,
                amount=Decimal("500"),
                transaction_type=TransactionType.DEBIT,
                transaction_date=datetime(2024, 3, 2),
            ),
        ]
    )
    session.commit()
    return Ledger(food=food, rent=rent, salary=salary, account=account)
