"""
Integration layer for the AI chat router.

Provides the database session and user id dependencies the router expects.
Authentication itself happens upstream; this layer only reads its result.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Iterator

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker

from finac.core.logger import get_logger
from finac.db.session import get_sessionmaker

LOGGER = get_logger(__name__)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured database, built on first use."""

    return get_sessionmaker()


def get_db_session() -> Iterator[Session]:
    """Provide a database session for the chat router."""

    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def get_current_user_id(request: Request) -> str:
    """Return the authenticated user id for ``request``.

    Only the id an upstream auth middleware placed on ``request.state.user_id``
    is accepted; request headers are never trusted for identity.

    Raises:
        HTTPException: 401 when no user is attached to the request
    """
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        LOGGER.info("Rejected unauthenticated chat request", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized. Please sign in to continue.",
        )
    return str(user_id)
