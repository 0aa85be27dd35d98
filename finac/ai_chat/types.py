"""Typed models for chat query directives and formatted responses."""
from __future__ import annotations

import re
from datetime import datetime, time, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from finac.models import AssetType, InvestmentType, TransactionStatus, TransactionType

from .errors import UnknownEntityError


def _normalize_token(value: Any) -> str:
    return re.sub(r"[\s_\-]", "", str(value)).lower()


class Entity(str, Enum):
    """The six record kinds a directive may query."""

    TRANSACTION = "transaction"
    INVESTMENT = "investment"
    GOAL = "goal"
    ASSET = "asset"
    BANK_ACCOUNT = "bankAccount"
    BANK_TRANSACTION = "bankTransaction"

    @classmethod
    def parse(cls, value: Any) -> "Entity":
        """Resolve ``bankAccount``, ``bank_account`` or ``BankAccount`` alike."""
        if isinstance(value, cls):
            return value
        if value is not None:
            token = _normalize_token(value)
            for member in cls:
                if _normalize_token(member.value) == token:
                    return member
        raise UnknownEntityError(value)


class Aggregation(str, Enum):
    SUM = "sum"
    COUNT = "count"
    AVERAGE = "average"

    @classmethod
    def parse(cls, value: Any) -> Optional["Aggregation"]:
        if isinstance(value, cls) or value is None:
            return value
        token = _normalize_token(value)
        if token in {"avg", "mean"}:
            return cls.AVERAGE
        return next((member for member in cls if member.value == token), None)


class GroupBy(str, Enum):
    DATE = "date"
    CATEGORY = "category"
    TYPE = "type"

    @classmethod
    def parse(cls, value: Any) -> Optional["GroupBy"]:
        if isinstance(value, cls) or value is None:
            return value
        token = _normalize_token(value)
        if token == "transactiontype":
            return cls.TYPE
        return next((member for member in cls if member.value == token), None)


class ChartType(str, Enum):
    LINE = "line"
    BAR = "bar"
    PIE = "pie"
    DONUT = "donut"

    @classmethod
    def parse(cls, value: Any) -> Optional["ChartType"]:
        if isinstance(value, cls) or value is None:
            return value
        token = _normalize_token(value)
        if token == "doughnut":
            return cls.DONUT
        return next((member for member in cls if member.value == token), None)


class ResponseType(str, Enum):
    TEXT = "TEXT"
    TABLE = "TABLE"
    CHART = "CHART"

    @classmethod
    def parse(cls, value: Any) -> "ResponseType":
        if isinstance(value, cls):
            return value
        token = str(value or "").strip().upper()
        return next((member for member in cls if member.value == token), cls.TEXT)


# ---------------------------------------------------------------------------
# Per-entity filter variants
# ---------------------------------------------------------------------------

_TRANSACTION_TYPE_SYNONYMS = {
    "INCOME": TransactionType.CREDIT,
    "INCOMES": TransactionType.CREDIT,
    "REVENUE": TransactionType.CREDIT,
    "CREDIT": TransactionType.CREDIT,
    "EXPENSE": TransactionType.DEBIT,
    "EXPENSES": TransactionType.DEBIT,
    "SPENDING": TransactionType.DEBIT,
    "DEBIT": TransactionType.DEBIT,
}


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _enum_member(enum_cls: type[Enum], value: Any) -> Optional[Enum]:
    text = _optional_text(value)
    if text is None:
        return None
    key = re.sub(r"[\s\-]+", "_", text).upper()
    try:
        return enum_cls(key)
    except ValueError:
        return None


def _parse_bound(value: Any, *, end_of_day: bool) -> Optional[datetime]:
    """Parse ``YYYY-MM-DD`` (or a full ISO timestamp) into a naive UTC datetime.

    A bare date used as an upper bound covers the whole day. Unparseable
    values yield ``None`` so the bound is dropped.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _optional_text(value)
        if text is None:
            return None
        try:
            if len(text) == 10:
                day = datetime.fromisoformat(text).date()
                return datetime.combine(day, time.max if end_of_day else time.min)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _active_flag(value: Any) -> Optional[bool]:
    text = (_optional_text(value) or "").lower()
    if text == "active":
        return True
    if text == "inactive":
        return False
    return None


class _Filters(BaseModel):
    """Base for filter variants: unknown keys are dropped, never rejected."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class _DateBoundedFilters(_Filters):
    date_from: Optional[datetime] = Field(default=None, alias="dateFrom")
    date_to: Optional[datetime] = Field(default=None, alias="dateTo")

    @field_validator("date_from", mode="before")
    @classmethod
    def _parse_date_from(cls, value: Any) -> Optional[datetime]:
        return _parse_bound(value, end_of_day=False)

    @field_validator("date_to", mode="before")
    @classmethod
    def _parse_date_to(cls, value: Any) -> Optional[datetime]:
        return _parse_bound(value, end_of_day=True)


class TransactionFilters(_DateBoundedFilters):
    """Filters accepted for income/expense transactions."""

    transaction_type: Optional[TransactionType] = Field(default=None, alias="type")
    transaction_type_alias: Optional[TransactionType] = Field(default=None, alias="transactionType")
    status: Optional[TransactionStatus] = None
    category: Optional[str] = None

    @field_validator("transaction_type", "transaction_type_alias", mode="before")
    @classmethod
    def _map_type(cls, value: Any) -> Optional[TransactionType]:
        text = _optional_text(value)
        return _TRANSACTION_TYPE_SYNONYMS.get(text.upper()) if text else None

    @field_validator("status", mode="before")
    @classmethod
    def _map_status(cls, value: Any) -> Optional[TransactionStatus]:
        return _enum_member(TransactionStatus, value)

    @field_validator("category", mode="before")
    @classmethod
    def _clean_category(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @property
    def resolved_type(self) -> Optional[TransactionType]:
        return self.transaction_type_alias or self.transaction_type


class InvestmentFilters(_DateBoundedFilters):
    type: Optional[InvestmentType] = None

    @field_validator("type", mode="before")
    @classmethod
    def _map_type(cls, value: Any) -> Optional[InvestmentType]:
        return _enum_member(InvestmentType, value)


class GoalFilters(_Filters):
    is_active: Optional[bool] = Field(default=None, alias="status")

    @field_validator("is_active", mode="before")
    @classmethod
    def _map_status(cls, value: Any) -> Optional[bool]:
        return _active_flag(value)


class AssetFilters(_DateBoundedFilters):
    type: Optional[AssetType] = None

    @field_validator("type", mode="before")
    @classmethod
    def _map_type(cls, value: Any) -> Optional[AssetType]:
        return _enum_member(AssetType, value)


class BankAccountFilters(_Filters):
    is_active: Optional[bool] = Field(default=None, alias="status")

    @field_validator("is_active", mode="before")
    @classmethod
    def _map_status(cls, value: Any) -> Optional[bool]:
        return _active_flag(value)


class BankTransactionFilters(_DateBoundedFilters):
    transaction_type: Optional[TransactionType] = Field(default=None, alias="type")

    @field_validator("transaction_type", mode="before")
    @classmethod
    def _map_type(cls, value: Any) -> Optional[TransactionType]:
        return _enum_member(TransactionType, value)


EntityFilters = Union[
    TransactionFilters,
    InvestmentFilters,
    GoalFilters,
    AssetFilters,
    BankAccountFilters,
    BankTransactionFilters,
]

FILTERS_BY_ENTITY: dict[Entity, type[_Filters]] = {
    Entity.TRANSACTION: TransactionFilters,
    Entity.INVESTMENT: InvestmentFilters,
    Entity.GOAL: GoalFilters,
    Entity.ASSET: AssetFilters,
    Entity.BANK_ACCOUNT: BankAccountFilters,
    Entity.BANK_TRANSACTION: BankTransactionFilters,
}


class QueryDescriptor(BaseModel):
    """What to query and how to aggregate or group it."""

    model_config = ConfigDict(frozen=True)

    entity: Entity
    filters: EntityFilters
    aggregation: Optional[Aggregation] = None
    group_by: Optional[GroupBy] = None

    @classmethod
    def from_directive(cls, raw: Mapping[str, Any]) -> "QueryDescriptor":
        """Build a descriptor from the loosely-typed model directive.

        Raises ``UnknownEntityError`` for an entity outside the six kinds;
        everything else is interpreted permissively.
        """
        entity = Entity.parse(raw.get("entity"))
        raw_filters = raw.get("filters")
        filters = FILTERS_BY_ENTITY[entity].model_validate(
            raw_filters if isinstance(raw_filters, Mapping) else {}
        )
        return cls(
            entity=entity,
            filters=filters,
            aggregation=Aggregation.parse(raw.get("aggregation")),
            group_by=GroupBy.parse(raw.get("groupBy", raw.get("group_by"))),
        )


# ---------------------------------------------------------------------------
# Formatted responses
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChartSeries(_CamelModel):
    label: str
    color: str


class TableData(_CamelModel):
    columns: list[str]
    rows: list[dict[str, Any]]


class ChartData(_CamelModel):
    type: ChartType
    data: list[dict[str, Any]]
    config: dict[str, ChartSeries]
    x_axis_key: Optional[str] = None
    y_axis_key: Optional[str] = None
    data_key: Optional[str] = None
    name_key: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None


class FormattedResponse(_CamelModel):
    """Tagged TEXT / TABLE / CHART payload for the transport boundary."""

    type: ResponseType
    content: Optional[str] = None
    table: Optional[TableData] = None
    chart: Optional[ChartData] = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys, omitting absent parts."""
        absent = {name for name in ("content", "table", "chart") if getattr(self, name) is None}
        return self.model_dump(mode="json", by_alias=True, exclude=absent)


__all__ = [
    "Aggregation",
    "AssetFilters",
    "BankAccountFilters",
    "BankTransactionFilters",
    "ChartData",
    "ChartSeries",
    "ChartType",
    "Entity",
    "EntityFilters",
    "FILTERS_BY_ENTITY",
    "FormattedResponse",
    "GoalFilters",
    "GroupBy",
    "InvestmentFilters",
    "QueryDescriptor",
    "ResponseType",
    "TableData",
    "TransactionFilters",
]
