"""Persistence for chat threads and their messages."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from finac.core.logger import get_logger
from finac.models import Chat, ChatMessage, ChatRole
from finac.models.base import utcnow

from .config import ChatConfig, chat_config
from .errors import ChatNotFoundError

LOGGER = get_logger(__name__)


def make_title(message: str, max_length: int = chat_config.chat_title_max_length) -> str:
    """Chat title derived from the opening message."""
    if len(message) > max_length:
        return message[:max_length] + "..."
    return message


class ChatStore:
    """Create, read, rename and delete chats owned by a user."""

    def __init__(self, session: Session, config: Optional[ChatConfig] = None) -> None:
        self._session = session
        self.config = config or chat_config

    @staticmethod
    def _require_user(user_id: str) -> None:
        if not user_id:
            raise PermissionError("A user id is required to access chats")

    def create_chat(self, user_id: str, title: Optional[str] = None) -> Chat:
        self._require_user(user_id)
        chat = Chat(user_id=user_id, title=title or self.config.default_chat_title)
        self._session.add(chat)
        self._session.commit()
        LOGGER.info("Created chat %s", chat.id)
        return chat

    def list_chats(self, user_id: str) -> List[Chat]:
        """Most recently active first."""
        self._require_user(user_id)
        statement = (
            select(Chat)
            .where(Chat.user_id == user_id)
            .options(selectinload(Chat.messages))
            .order_by(Chat.updated_at.desc())
        )
        return list(self._session.scalars(statement).all())

    def get_chat(self, user_id: str, chat_id: str) -> Chat:
        """Return the chat with its messages.

        Raises:
            ChatNotFoundError: no such chat for this user
        """
        self._require_user(user_id)
        statement = (
            select(Chat)
            .where(Chat.id == chat_id, Chat.user_id == user_id)
            .options(selectinload(Chat.messages))
        )
        chat = self._session.scalars(statement).first()
        if chat is None:
            raise ChatNotFoundError(f"Chat not found: {chat_id}")
        return chat

    def rename_chat(self, user_id: str, chat_id: str, title: str) -> Chat:
        chat = self.get_chat(user_id, chat_id)
        chat.title = title
        self._session.commit()
        return chat

    def delete_chat(self, user_id: str, chat_id: str) -> None:
        chat = self.get_chat(user_id, chat_id)
        self._session.delete(chat)
        self._session.commit()
        LOGGER.info("Deleted chat %s", chat_id)

    def save_message(
        self,
        chat: Chat,
        role: ChatRole,
        content: str,
        response_type: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ChatMessage:
        """Append a message and touch the chat.

        The first user message of a chat still carrying the default title
        becomes its title.
        """
        message = ChatMessage(
            chat_id=chat.id,
            role=role,
            content=content,
            response_type=response_type,
            payload=payload or None,
        )
        self._session.add(message)
        chat.updated_at = utcnow()

        if role is ChatRole.USER and chat.title == self.config.default_chat_title:
            self._session.flush()
            user_messages = self._session.scalar(
                select(func.count())
                .select_from(ChatMessage)
                .where(ChatMessage.chat_id == chat.id, ChatMessage.role == ChatRole.USER)
            )
            if user_messages == 1:
                chat.title = make_title(content, self.config.chat_title_max_length)

        self._session.commit()
        self._session.refresh(chat)
        return message

    def history(self, chat: Chat) -> List[Dict[str, str]]:
        """Prior turns as ``{"role", "content"}`` dicts, oldest first."""
        return [
            {"role": message.role.value.lower(), "content": message.content}
            for message in chat.messages
        ]


def serialize_message(message: ChatMessage) -> Dict[str, Any]:
    return {
        "id": message.id,
        "chatId": message.chat_id,
        "role": message.role.value,
        "content": message.content,
        "responseType": message.response_type,
        "metadata": message.payload,
        "createdAt": message.created_at.isoformat() if message.created_at else None,
    }


def serialize_chat(chat: Chat, *, preview: bool = False) -> Dict[str, Any]:
    """JSON view of a chat; ``preview`` keeps only the first message."""
    messages = chat.messages[:1] if preview else chat.messages
    return {
        "id": chat.id,
        "title": chat.title,
        "userId": chat.user_id,
        "createdAt": chat.created_at.isoformat() if chat.created_at else None,
        "updatedAt": chat.updated_at.isoformat() if chat.updated_at else None,
        "messages": [serialize_message(message) for message in messages],
    }


__all__ = ["ChatStore", "make_title", "serialize_chat", "serialize_message"]
