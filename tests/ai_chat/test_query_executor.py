"""Tests for user-scoped query execution, aggregation and grouping."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from finac.ai_chat.errors import QueryExecutionError, UnknownEntityError
from finac.ai_chat.query_executor import QueryExecutor, _day_key, execute_query

USER_ID = "user-1"


class SpyRepository:
    """Records calls instead of touching storage."""

    def __init__(self, count_result: int = 0, fetch_error: Exception | None = None):
        self.count_result = count_result
        self.fetch_error = fetch_error
        self.count_calls: list = []
        self.fetch_calls: list = []

    def count(self, model, where):
        self.count_calls.append((model, list(where)))
        return self.count_result

    def fetch(self, model, where, order_by, joins=()):
        self.fetch_calls.append((model, list(where)))
        if self.fetch_error is not None:
            raise self.fetch_error
        return []


# ---------------------------------------------------------------------------
# Scoping and failures
# ---------------------------------------------------------------------------


def test_count_short_circuits_without_materialising_rows():
    repository = SpyRepository(count_result=7)

    result = QueryExecutor(repository).execute(USER_ID, {"entity": "transaction", "aggregation": "count"})

    assert result == 7
    assert repository.fetch_calls == []
    model, where = repository.count_calls[0]
    assert "user_id" in str(where[0])


def test_every_query_is_scoped_to_the_user_first():
    repository = SpyRepository()

    QueryExecutor(repository).execute(USER_ID, {"entity": "goal", "filters": {"status": "active"}})

    _, where = repository.fetch_calls[0]
    assert str(where[0]) == "goal.user_id = :user_id_1"
    assert where[0].right.value == USER_ID


@pytest.mark.parametrize(
    ("entity", "table"),
    [
        ("transaction", "transaction"),
        ("investment", "investment"),
        ("goal", "goal"),
        ("asset", "asset"),
        ("bank_account", "bank_account"),
        ("bankTransaction", "bank_transaction"),
    ],
)
@pytest.mark.parametrize("aggregation", [None, "count"])
def test_ownership_predicate_comes_first_for_every_entity(entity, table, aggregation):
    repository = SpyRepository()

    QueryExecutor(repository).execute(USER_ID, {"entity": entity, "aggregation": aggregation})

    calls = repository.count_calls if aggregation == "count" else repository.fetch_calls
    _, where = calls[0]
    ownership = where[0]
    assert ownership.left.table.name == table
    assert ownership.left.name == "user_id"
    assert ownership.right.value == USER_ID
    assert str(ownership).endswith(".user_id = :user_id_1")


def test_unknown_entity_fails_before_any_storage_call():
    repository = SpyRepository()

    with pytest.raises(UnknownEntityError, match="Unknown entity: budget"):
        QueryExecutor(repository).execute(USER_ID, {"entity": "budget"})

    assert repository.count_calls == []
    assert repository.fetch_calls == []


def test_storage_failure_is_wrapped_with_entity_name():
    repository = SpyRepository(fetch_error=RuntimeError("connection lost"))

    with pytest.raises(QueryExecutionError) as excinfo:
        QueryExecutor(repository).execute(USER_ID, {"entity": "transaction"})

    assert str(excinfo.value) == "Failed to query transaction: connection lost"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_missing_user_is_rejected():
    with pytest.raises(PermissionError):
        QueryExecutor(SpyRepository()).execute("", {"entity": "goal"})


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def test_rows_are_scoped_active_and_newest_first(session, ledger):
    rows = execute_query(session, USER_ID, {"entity": "transaction"})

    assert len(rows) == 4
    assert {row["user_id"] for row in rows} == {USER_ID}
    assert [row["amount"] for row in rows] == [300.0, 500.0, 1200.0, 5000.0]
    assert all(isinstance(row["amount"], float) for row in rows)


def test_rows_carry_joined_lookups(session, ledger):
    rows = execute_query(session, USER_ID, {"entity": "transaction"})

    food_row = next(row for row in rows if row["amount"] == 500.0)
    assert food_row["category"] == {"id": ledger.food.id, "name": "Food", "color": "#ff0000"}
    assert food_row["transaction_type"] == "DEBIT"
    uncategorised = rows[0]
    assert uncategorised["category"] is None


def test_sum_is_signed_by_direction(session, ledger):
    total = execute_query(session, USER_ID, {"entity": "transaction", "aggregation": "sum"})

    assert total == pytest.approx(3000.0)


def test_count_matches_materialised_rows(session, ledger):
    count = execute_query(session, USER_ID, {"entity": "transaction", "aggregation": "count"})
    rows = execute_query(session, USER_ID, {"entity": "transaction"})

    assert count == len(rows) == 4


def test_average_is_unsigned(session, ledger):
    average = execute_query(session, USER_ID, {"entity": "transaction", "aggregation": "average"})

    assert average == pytest.approx(1750.0)


def test_average_of_nothing_is_zero(session, ledger):
    average = execute_query(session, "nobody", {"entity": "goal", "aggregation": "average"})

    assert average == 0


def test_group_by_type_totals_are_unsigned(session, ledger):
    buckets = execute_query(session, USER_ID, {"entity": "transaction", "groupBy": "type"})

    by_type = {bucket["type"]: bucket for bucket in buckets}
    assert by_type["CREDIT"] == {"type": "CREDIT", "count": 1, "total": 5000.0}
    assert by_type["DEBIT"] == {"type": "DEBIT", "count": 3, "total": 2000.0}


def test_group_by_transaction_type_alias(session, ledger):
    buckets = execute_query(session, USER_ID, {"entity": "transaction", "groupBy": "transactionType"})

    assert {bucket["type"] for bucket in buckets} == {"CREDIT", "DEBIT"}


def test_group_by_date_is_signed_and_ascending(session, ledger):
    buckets = execute_query(session, USER_ID, {"entity": "transaction", "groupBy": "date"})

    assert buckets == [
        {"date": "2024-01-01", "count": 1, "total": 5000.0},
        {"date": "2024-01-05", "count": 2, "total": -1700.0},
        {"date": "2024-02-10", "count": 1, "total": -300.0},
    ]


def test_group_by_category_defaults_to_uncategorized(session, ledger):
    buckets = execute_query(session, USER_ID, {"entity": "transaction", "groupBy": "category"})

    totals = {bucket["category"]: (bucket["count"], bucket["total"]) for bucket in buckets}
    assert totals == {
        "Salary": (1, 5000.0),
        "Food": (1, -500.0),
        "Rent": (1, -1200.0),
        "Uncategorized": (1, -300.0),
    }


def test_aggregation_takes_precedence_over_grouping(session, ledger):
    total = execute_query(
        session, USER_ID, {"entity": "transaction", "aggregation": "sum", "groupBy": "category"}
    )

    assert total == pytest.approx(3000.0)


@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        ({"type": "EXPENSE"}, 3),
        ({"type": "debit"}, 3),
        ({"transactionType": "income"}, 1),
        ({"status": "pending"}, 1),
        ({"status": "archived"}, 4),
        ({"category": "fo"}, 1),
        ({"category": "100%"}, 0),
        ({"dateFrom": "2024-01-05", "dateTo": "2024-01-05"}, 2),
        ({"dateFrom": "2024-02-01"}, 1),
        ({"dateFrom": "not a date"}, 4),
        ({"colour": "blue"}, 4),
    ],
)
def test_transaction_filters(session, ledger, filters, expected):
    count = execute_query(
        session, USER_ID, {"entity": "transaction", "filters": filters, "aggregation": "count"}
    )

    assert count == expected


# ---------------------------------------------------------------------------
# Other entities
# ---------------------------------------------------------------------------


def test_investment_sum_uses_current_value(session, ledger):
    total = execute_query(session, USER_ID, {"entity": "investment", "aggregation": "sum"})

    assert total == pytest.approx(4000.0)


def test_investment_group_by_type(session, ledger):
    buckets = execute_query(session, USER_ID, {"entity": "investment", "groupBy": "type"})

    by_type = {bucket["type"]: bucket for bucket in buckets}
    assert by_type["STOCKS"] == {
        "type": "STOCKS",
        "count": 2,
        "total": 2000.0,
        "total_invested": 1700.0,
        "total_current_value": 2000.0,
    }
    assert by_type["GOLD"]["total_invested"] == 1800.0


@pytest.mark.parametrize(("kind", "expected"), [("gold", 1), ("Mutual Funds", 0), ("crypto", 3)])
def test_investment_type_filter(session, ledger, kind, expected):
    count = execute_query(
        session, USER_ID, {"entity": "investment", "filters": {"type": kind}, "aggregation": "count"}
    )

    assert count == expected


@pytest.mark.parametrize(("status", "expected"), [("active", 1), ("INACTIVE", 1), ("paused", 2)])
def test_goal_status_filter(session, ledger, status, expected):
    count = execute_query(
        session, USER_ID, {"entity": "goal", "filters": {"status": status}, "aggregation": "count"}
    )

    assert count == expected


def test_goal_average_uses_current_amount(session, ledger):
    average = execute_query(session, USER_ID, {"entity": "goal", "aggregation": "avg"})

    assert average == pytest.approx(75.0)


def test_asset_sum_and_type_filter(session, ledger):
    total = execute_query(session, USER_ID, {"entity": "asset", "aggregation": "sum"})
    vehicles = execute_query(
        session, USER_ID, {"entity": "asset", "filters": {"type": "vehicle"}, "aggregation": "count"}
    )

    assert total == pytest.approx(1_000_000.0)
    assert vehicles == 0


def test_bank_account_sum_uses_starting_balance(session, ledger):
    total = execute_query(session, USER_ID, {"entity": "bank_account", "aggregation": "sum"})

    assert total == pytest.approx(10000.0)


def test_bank_transactions_are_signed_and_joined(session, ledger):
    total = execute_query(session, USER_ID, {"entity": "bankTransaction", "aggregation": "sum"})
    rows = execute_query(session, USER_ID, {"entity": "bankTransaction"})

    assert total == pytest.approx(1500.0)
    assert [row["amount"] for row in rows] == [500.0, 2000.0]
    assert rows[0]["bank_account"]["name"] == "Salary Account"


def test_group_by_ignored_where_it_does_not_apply(session, ledger):
    rows = execute_query(session, USER_ID, {"entity": "goal", "groupBy": "category"})

    assert len(rows) == 2
    assert {row["name"] for row in rows} == {"Car", "Trip"}


def test_day_buckets_use_utc_calendar_day():
    early_morning_in_kolkata = datetime(2024, 1, 5, 1, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))

    assert _day_key(early_morning_in_kolkata) == "2024-01-04"
    assert _day_key(datetime(2024, 1, 5, 23, 59)) == "2024-01-05"
