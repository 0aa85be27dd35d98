"""ORM models for persisted AI chat conversations."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, OwnedMixin, new_id, utcnow
from .enums import ChatRole


class Chat(OwnedMixin, Base):
    """A conversation thread owned by a single user."""

    __tablename__ = "chat"

    title: Mapped[str] = mapped_column(String(120), nullable=False, default="New Chat")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    messages: Mapped[list["ChatMessage"]] = relationship(
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )


class ChatMessage(Base):
    """One user or assistant turn; assistant turns may carry a table/chart payload."""

    __tablename__ = "chat_message"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    chat_id: Mapped[str] = mapped_column(ForeignKey("chat.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[ChatRole] = mapped_column(SQLEnum(ChatRole, native_enum=False, length=16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    response_type: Mapped[str | None] = mapped_column(String(8))
    # ``metadata`` is reserved on declarative classes
    payload: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    chat: Mapped[Chat] = relationship(back_populates="messages")
