"""
Query Executor
Turns a chat query descriptor into a user-scoped ORM query and shapes the result
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Sequence

from sqlalchemy import inspect
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from finac.core.logger import get_logger, log_context, timeit
from finac.models import (
    Asset,
    BankAccount,
    BankTransaction,
    Category,
    Goal,
    Investment,
    Transaction,
    TransactionType,
)

from .errors import QueryExecutionError
from .repository import FinanceRepository
from .types import (
    Aggregation,
    AssetFilters,
    BankAccountFilters,
    BankTransactionFilters,
    Entity,
    GoalFilters,
    GroupBy,
    InvestmentFilters,
    QueryDescriptor,
    TransactionFilters,
)

logger = get_logger(__name__)

QueryResult = int | float | list[dict[str, Any]]

UNCATEGORIZED = "Uncategorized"


# ---------------------------------------------------------------------------
# Where-clause builders (ownership predicate is added by the executor)
# ---------------------------------------------------------------------------


def _date_range(column: Any, date_from: datetime | None, date_to: datetime | None) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if date_from is not None:
        clauses.append(column >= date_from)
    if date_to is not None:
        clauses.append(column <= date_to)
    return clauses


def transaction_where(filters: TransactionFilters) -> list[ColumnElement[bool]]:
    """Soft-deleted rows are always excluded."""
    clauses = [Transaction.is_active.is_(True)]
    clauses += _date_range(Transaction.date, filters.date_from, filters.date_to)
    if filters.resolved_type is not None:
        clauses.append(Transaction.transaction_type == filters.resolved_type)
    if filters.status is not None:
        clauses.append(Transaction.status == filters.status)
    if filters.category:
        clauses.append(
            Transaction.category.has(Category.name.icontains(filters.category, autoescape=True))
        )
    return clauses


def investment_where(filters: InvestmentFilters) -> list[ColumnElement[bool]]:
    clauses = _date_range(Investment.purchase_date, filters.date_from, filters.date_to)
    if filters.type is not None:
        clauses.append(Investment.type == filters.type)
    return clauses


def goal_where(filters: GoalFilters) -> list[ColumnElement[bool]]:
    if filters.is_active is None:
        return []
    return [Goal.is_active.is_(filters.is_active)]


def asset_where(filters: AssetFilters) -> list[ColumnElement[bool]]:
    clauses = _date_range(Asset.purchase_date, filters.date_from, filters.date_to)
    if filters.type is not None:
        clauses.append(Asset.type == filters.type)
    return clauses


def bank_account_where(filters: BankAccountFilters) -> list[ColumnElement[bool]]:
    if filters.is_active is None:
        return []
    return [BankAccount.is_active.is_(filters.is_active)]


def bank_transaction_where(filters: BankTransactionFilters) -> list[ColumnElement[bool]]:
    clauses = _date_range(BankTransaction.transaction_date, filters.date_from, filters.date_to)
    if filters.transaction_type is not None:
        clauses.append(BankTransaction.transaction_type == filters.transaction_type)
    return clauses


# ---------------------------------------------------------------------------
# Row normalisation
# ---------------------------------------------------------------------------


def to_plain(value: Any) -> Any:
    """Convert storage types to JSON-friendly plain values.

    Decimals become floats (non-finite numbers become ``None``) and enums
    their values; dates and strings pass through.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else None
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Enum):
        return value.value
    return value


def _columns_as_dict(row: Any) -> dict[str, Any]:
    mapper = inspect(row).mapper
    return {attr.key: to_plain(getattr(row, attr.key)) for attr in mapper.column_attrs}


def _lookup(row: Any, relationship: str, *fields: str) -> dict[str, Any] | None:
    related = getattr(row, relationship)
    if related is None:
        return None
    return {field: to_plain(getattr(related, field)) for field in ("id", *fields)}


def serialize_transaction(row: Transaction) -> dict[str, Any]:
    record = _columns_as_dict(row)
    record["category"] = _lookup(row, "category", "name", "color")
    record["sub_category"] = _lookup(row, "sub_category", "name")
    record["bank_account"] = _lookup(row, "bank_account", "name", "bank_name")
    return record


def serialize_bank_transaction(row: BankTransaction) -> dict[str, Any]:
    record = _columns_as_dict(row)
    record["bank_account"] = _lookup(row, "bank_account", "name", "bank_name")
    return record


# ---------------------------------------------------------------------------
# Entity registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityHandler:
    """How one record kind is filtered, ordered, aggregated and grouped."""

    entity: Entity
    model: type[Any]
    build_where: Callable[[Any], list[ColumnElement[bool]]]
    order_column: Any
    amount_field: str
    date_field: str | None = None
    signed: bool = False
    joins: tuple[Any, ...] = ()
    group_keys: frozenset[GroupBy] = frozenset()
    serialize: Callable[[Any], dict[str, Any]] = _columns_as_dict

    def amount(self, row: Any) -> Decimal:
        return _as_decimal(getattr(row, self.amount_field))

    def signed_amount(self, row: Any) -> Decimal:
        """CREDIT adds, DEBIT subtracts; unsigned entities return the raw amount."""
        amount = self.amount(row)
        if self.signed and row.transaction_type != TransactionType.CREDIT:
            return -amount
        return amount


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


ENTITY_HANDLERS: dict[Entity, EntityHandler] = {
    Entity.TRANSACTION: EntityHandler(
        entity=Entity.TRANSACTION,
        model=Transaction,
        build_where=transaction_where,
        order_column=Transaction.date,
        amount_field="amount",
        date_field="date",
        signed=True,
        joins=(Transaction.category, Transaction.sub_category, Transaction.bank_account),
        group_keys=frozenset({GroupBy.DATE, GroupBy.CATEGORY, GroupBy.TYPE}),
        serialize=serialize_transaction,
    ),
    Entity.INVESTMENT: EntityHandler(
        entity=Entity.INVESTMENT,
        model=Investment,
        build_where=investment_where,
        order_column=Investment.created_at,
        amount_field="current_value",
        group_keys=frozenset({GroupBy.TYPE}),
    ),
    Entity.GOAL: EntityHandler(
        entity=Entity.GOAL,
        model=Goal,
        build_where=goal_where,
        order_column=Goal.created_at,
        amount_field="current_amount",
    ),
    Entity.ASSET: EntityHandler(
        entity=Entity.ASSET,
        model=Asset,
        build_where=asset_where,
        order_column=Asset.created_at,
        amount_field="current_value",
    ),
    Entity.BANK_ACCOUNT: EntityHandler(
        entity=Entity.BANK_ACCOUNT,
        model=BankAccount,
        build_where=bank_account_where,
        order_column=BankAccount.created_at,
        amount_field="starting_balance",
    ),
    Entity.BANK_TRANSACTION: EntityHandler(
        entity=Entity.BANK_TRANSACTION,
        model=BankTransaction,
        build_where=bank_transaction_where,
        order_column=BankTransaction.transaction_date,
        amount_field="amount",
        date_field="transaction_date",
        signed=True,
        joins=(BankTransaction.bank_account,),
        group_keys=frozenset({GroupBy.DATE, GroupBy.TYPE}),
        serialize=serialize_bank_transaction,
    ),
}


# ---------------------------------------------------------------------------
# Aggregation and grouping
# ---------------------------------------------------------------------------


def _sum(handler: EntityHandler, rows: Sequence[Any]) -> float:
    return float(sum((handler.signed_amount(row) for row in rows), Decimal(0)))


def _average(handler: EntityHandler, rows: Sequence[Any]) -> float:
    if not rows:
        return 0.0
    total = sum((handler.amount(row) for row in rows), Decimal(0))
    return float(total / len(rows))


def _day_key(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def _bucket(grouped: dict[str, dict[str, Any]], key_name: str, key: str) -> dict[str, Any]:
    if key not in grouped:
        grouped[key] = {key_name: key, "count": 0, "total": Decimal(0)}
    bucket = grouped[key]
    bucket["count"] += 1
    return bucket


def _finish_buckets(buckets: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{key: to_plain(value) for key, value in bucket.items()} for bucket in buckets]


def _group(handler: EntityHandler, rows: Sequence[Any], group_by: GroupBy) -> list[dict[str, Any]]:
    grouped: dict[str, dict[str, Any]] = {}

    if group_by is GroupBy.DATE:
        for row in rows:
            bucket = _bucket(grouped, "date", _day_key(getattr(row, handler.date_field)))
            bucket["total"] += handler.signed_amount(row)
        return _finish_buckets(sorted(grouped.values(), key=lambda b: b["date"]))

    if group_by is GroupBy.CATEGORY:
        for row in rows:
            name = row.category.name if row.category is not None else UNCATEGORIZED
            bucket = _bucket(grouped, "category", name)
            bucket["total"] += handler.signed_amount(row)
        return _finish_buckets(list(grouped.values()))

    if handler.entity is Entity.INVESTMENT:
        return _group_investments_by_type(rows)
    # volume per direction: both CREDIT and DEBIT add
    for row in rows:
        bucket = _bucket(grouped, "type", to_plain(row.transaction_type))
        bucket["total"] += handler.amount(row)
    return _finish_buckets(list(grouped.values()))


def _group_investments_by_type(rows: Sequence[Any]) -> list[dict[str, Any]]:
    grouped: dict[str, dict[str, Any]] = {}
    for row in rows:
        key = to_plain(row.type) or "UNKNOWN"
        bucket = _bucket(grouped, "type", key)
        bucket.setdefault("total_invested", Decimal(0))
        bucket.setdefault("total_current_value", Decimal(0))
        current_value = _as_decimal(row.current_value)
        bucket["total"] += current_value
        bucket["total_invested"] += _as_decimal(row.invested_amount)
        bucket["total_current_value"] += current_value
    return _finish_buckets(list(grouped.values()))


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class QueryExecutor:
    """Execute query descriptors against the finance store, scoped to one user."""

    def __init__(self, repository: FinanceRepository) -> None:
        self._repository = repository

    @classmethod
    def for_session(cls, session: Session) -> "QueryExecutor":
        return cls(FinanceRepository(session))

    def execute(self, user_id: str, descriptor: QueryDescriptor | Mapping[str, Any]) -> QueryResult:
        """
        Run ``descriptor`` for ``user_id``.

        Returns an ``int`` for count, a ``float`` for sum/average, otherwise a
        list of plain-valued dicts (rows or groupBy buckets).

        Raises:
            UnknownEntityError: the entity is not one of the six kinds
            QueryExecutionError: storage or shaping failed
        """
        if not user_id:
            raise PermissionError("A user id is required to scope chat queries")
        if not isinstance(descriptor, QueryDescriptor):
            descriptor = QueryDescriptor.from_directive(descriptor)

        handler = ENTITY_HANDLERS[descriptor.entity]
        entity_name = descriptor.entity.value
        with log_context.scope(entity=entity_name):
            try:
                with timeit(f"query {entity_name}", logger=logger) as timer:
                    result = self._run(handler, user_id, descriptor)
                    if isinstance(result, list):
                        timer.set_count(len(result))
                return result
            except Exception as exc:
                logger.error("Error executing query for %s: %s", entity_name, exc, exc_info=True)
                raise QueryExecutionError(entity_name, exc) from exc

    def _run(self, handler: EntityHandler, user_id: str, descriptor: QueryDescriptor) -> QueryResult:
        where = [handler.model.user_id == user_id, *handler.build_where(descriptor.filters)]

        if descriptor.aggregation is Aggregation.COUNT:
            return self._repository.count(handler.model, where)

        rows = self._repository.fetch(
            handler.model,
            where,
            order_by=[handler.order_column.desc()],
            joins=handler.joins,
        )

        if descriptor.aggregation is Aggregation.SUM:
            return _sum(handler, rows)
        if descriptor.aggregation is Aggregation.AVERAGE:
            return _average(handler, rows)

        if descriptor.group_by is not None and descriptor.group_by in handler.group_keys:
            return _group(handler, rows, descriptor.group_by)

        return [handler.serialize(row) for row in rows]


def execute_query(
    session: Session,
    user_id: str,
    descriptor: QueryDescriptor | Mapping[str, Any],
) -> QueryResult:
    """Convenience wrapper: execute ``descriptor`` with a session-backed repository."""
    return QueryExecutor.for_session(session).execute(user_id, descriptor)


__all__ = [
    "ENTITY_HANDLERS",
    "EntityHandler",
    "QueryExecutor",
    "QueryResult",
    "execute_query",
    "to_plain",
]
