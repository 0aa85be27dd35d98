"""
FastAPI Router for the AI chat assistant
Streaming chat endpoint plus chat history management
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, AsyncIterator, Callable, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from finac.core.logger import get_logger

from .chat_service import ChatService, ChatTurn, sse_event
from .chat_store import ChatStore, serialize_chat
from .errors import ChatNotFoundError, LLMProviderError
from .llm_providers import LLMProvider, create_provider

logger = get_logger(__name__)

# Create router
router = APIRouter(prefix="/api/ai", tags=["AI Chat"])


# Pydantic models for request/response
class ChatRequest(BaseModel):
    """Request model for a chat turn"""

    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    chat_id: Optional[str] = Field(default=None, alias="chatId")


class RenameChatRequest(BaseModel):
    """Request model for renaming a chat"""

    title: str = Field(min_length=1, max_length=120)


# Dependency injection placeholders (to be configured by integrating app)
_get_db_session: Optional[Callable[[], Iterator[Session]]] = None
_get_current_user: Optional[Callable[[Request], str]] = None
_get_provider: Callable[[], LLMProvider] = create_provider


def configure_dependencies(
    get_db: Callable[[], Iterator[Session]],
    get_user: Callable[[Request], str],
    get_provider: Optional[Callable[[], LLMProvider]] = None,
):
    """
    Configure dependencies for the chat router

    Args:
        get_db: Generator function that yields a database session
        get_user: Function returning the authenticated user id for a request
        get_provider: Optional factory for the language-model provider
    """
    global _get_db_session, _get_current_user, _get_provider

    _get_db_session = get_db
    _get_current_user = get_user
    _get_provider = get_provider or create_provider


def get_db_session():
    """Get database session dependency"""
    if _get_db_session is None:
        raise RuntimeError("Database dependency not configured. Call configure_dependencies() first.")
    yield from _get_db_session()


def get_current_user(request: Request) -> str:
    """Get current user id dependency"""
    if _get_current_user is None:
        raise RuntimeError("User dependency not configured. Call configure_dependencies() first.")
    return _get_current_user(request)


@contextmanager
def _stream_session() -> Iterator[Session]:
    """A session owned by the response stream rather than the request."""
    if _get_db_session is None:
        raise RuntimeError("Database dependency not configured. Call configure_dependencies() first.")
    yield from _get_db_session()


def _chat_not_found(exc: ChatNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")


# Routes
@router.post("/chat")
async def chat(
    payload: ChatRequest,
    db: Session = Depends(get_db_session),
    user_id: str = Depends(get_current_user),
):
    """
    Answer a chat message as a server-sent event stream

    Request body:
    - message: The user's message
    - chatId: Optional existing chat to continue

    Stream:
    - data: {"content": "...", "done": false} per model chunk
    - data: {"done": true, "chatId", "responseType", "content", "table"?, "chart"?}
    """
    try:
        provider = _get_provider()
    except LLMProviderError as exc:
        logger.error("Chat provider unavailable: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    if not payload.message or not payload.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    service = ChatService(db, provider)
    try:
        turn = service.prepare_turn(user_id, payload.message, payload.chat_id)
    except ChatNotFoundError as exc:
        raise _chat_not_found(exc)

    return StreamingResponse(
        _event_stream(turn, provider),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


async def _event_stream(turn: ChatTurn, provider: LLMProvider) -> AsyncIterator[str]:
    with _stream_session() as session:
        service = ChatService(session, provider)
        async for chunk in service.stream_reply(turn):
            yield sse_event(chunk)


@router.get("/chats")
async def list_chats(
    db: Session = Depends(get_db_session),
    user_id: str = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """List the user's chats, most recent first, with a first-message preview"""
    chats = ChatStore(db).list_chats(user_id)
    return [serialize_chat(chat, preview=True) for chat in chats]


@router.get("/chat/{chat_id}")
async def get_chat(
    chat_id: str,
    db: Session = Depends(get_db_session),
    user_id: str = Depends(get_current_user),
) -> Dict[str, Any]:
    """Get one chat with all of its messages"""
    try:
        chat = ChatStore(db).get_chat(user_id, chat_id)
    except ChatNotFoundError as exc:
        raise _chat_not_found(exc)
    return serialize_chat(chat)


@router.patch("/chat/{chat_id}")
async def rename_chat(
    chat_id: str,
    payload: RenameChatRequest,
    db: Session = Depends(get_db_session),
    user_id: str = Depends(get_current_user),
) -> Dict[str, Any]:
    """Rename a chat"""
    try:
        chat = ChatStore(db).rename_chat(user_id, chat_id, payload.title)
    except ChatNotFoundError as exc:
        raise _chat_not_found(exc)
    return {"success": True, "id": chat.id, "title": chat.title}


@router.delete("/chat/{chat_id}")
async def delete_chat(
    chat_id: str,
    db: Session = Depends(get_db_session),
    user_id: str = Depends(get_current_user),
) -> Dict[str, Any]:
    """Delete a chat and its messages"""
    try:
        ChatStore(db).delete_chat(user_id, chat_id)
    except ChatNotFoundError as exc:
        raise _chat_not_found(exc)
    return {"success": True}


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "dependencies_configured": all([
            _get_db_session is not None,
            _get_current_user is not None,
        ]),
    }
