"""Tests for parsing loosely-typed directives into query descriptors."""
from __future__ import annotations

from datetime import datetime, time

import pytest

from finac.ai_chat.errors import UnknownEntityError
from finac.ai_chat.types import (
    Aggregation,
    BankAccountFilters,
    Entity,
    GoalFilters,
    GroupBy,
    InvestmentFilters,
    QueryDescriptor,
    TransactionFilters,
)
from finac.models import InvestmentType, TransactionStatus, TransactionType


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("transaction", Entity.TRANSACTION),
        ("bankAccount", Entity.BANK_ACCOUNT),
        ("bank_account", Entity.BANK_ACCOUNT),
        ("BankTransaction", Entity.BANK_TRANSACTION),
        (" Goal ", Entity.GOAL),
    ],
)
def test_entity_names_are_normalised(raw, expected):
    assert Entity.parse(raw) is expected


@pytest.mark.parametrize("raw", ["budget", "", None])
def test_unknown_entity(raw):
    with pytest.raises(UnknownEntityError):
        QueryDescriptor.from_directive({"entity": raw})


def test_aggregation_and_group_by_are_permissive():
    assert Aggregation.parse("avg") is Aggregation.AVERAGE
    assert Aggregation.parse("SUM") is Aggregation.SUM
    assert Aggregation.parse("median") is None
    assert GroupBy.parse("transactionType") is GroupBy.TYPE
    assert GroupBy.parse("week") is None


def test_descriptor_picks_the_entity_filter_variant():
    descriptor = QueryDescriptor.from_directive(
        {
            "entity": "investment",
            "filters": {"type": "mutual_funds", "category": "ignored"},
            "aggregation": "count",
            "groupBy": None,
        }
    )

    assert isinstance(descriptor.filters, InvestmentFilters)
    assert descriptor.filters.type is InvestmentType.MUTUAL_FUNDS
    assert descriptor.aggregation is Aggregation.COUNT
    assert descriptor.group_by is None


def test_non_mapping_filters_are_dropped():
    descriptor = QueryDescriptor.from_directive({"entity": "goal", "filters": "active"})

    assert descriptor.filters == GoalFilters()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("INCOME", TransactionType.CREDIT),
        ("revenue", TransactionType.CREDIT),
        ("Expenses", TransactionType.DEBIT),
        ("spending", TransactionType.DEBIT),
        ("DEBIT", TransactionType.DEBIT),
        ("refund", None),
    ],
)
def test_transaction_type_synonyms(raw, expected):
    assert TransactionFilters.model_validate({"type": raw}).resolved_type is expected


def test_transaction_type_key_wins_over_type():
    filters = TransactionFilters.model_validate({"type": "DEBIT", "transactionType": "income"})

    assert filters.resolved_type is TransactionType.CREDIT


def test_transaction_status_is_case_insensitive():
    assert TransactionFilters.model_validate({"status": "failed"}).status is TransactionStatus.FAILED
    assert TransactionFilters.model_validate({"status": "done"}).status is None


@pytest.mark.parametrize(("raw", "expected"), [("active", True), ("Inactive", False), ("closed", None)])
def test_active_flag_filters(raw, expected):
    assert GoalFilters.model_validate({"status": raw}).is_active is expected
    assert BankAccountFilters.model_validate({"status": raw}).is_active is expected


def test_date_bounds():
    filters = TransactionFilters.model_validate({"dateFrom": "2024-01-01", "dateTo": "2024-01-31"})

    assert filters.date_from == datetime(2024, 1, 1)
    assert filters.date_to == datetime.combine(datetime(2024, 1, 31).date(), time.max)


def test_timestamps_are_normalised_to_naive_utc():
    filters = TransactionFilters.model_validate({"dateFrom": "2024-01-01T05:30:00+05:30"})

    assert filters.date_from == datetime(2024, 1, 1, 0, 0)


def test_unparseable_dates_are_dropped():
    filters = TransactionFilters.model_validate({"dateFrom": "last month", "dateTo": 42})

    assert filters.date_from is None
    assert filters.date_to is None
