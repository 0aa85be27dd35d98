"""Storage collaborator used by the query executor."""
from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement


class FinanceRepository:
    """Count and fetch user records by predicate.

    Thin wrapper around a SQLAlchemy ``Session`` so the executor never builds
    statements against the session directly.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def count(self, model: type[Any], where: Sequence[ColumnElement[bool]]) -> int:
        statement = select(func.count()).select_from(model).where(*where)
        return int(self._session.execute(statement).scalar() or 0)

    def fetch(
        self,
        model: type[Any],
        where: Sequence[ColumnElement[bool]],
        order_by: Sequence[Any],
        joins: Sequence[Any] = (),
    ) -> list[Any]:
        statement = select(model).where(*where).order_by(*order_by)
        if joins:
            statement = statement.options(*(selectinload(relationship) for relationship in joins))
        return list(self._session.scalars(statement).all())
