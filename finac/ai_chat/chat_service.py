"""
Chat turn orchestration
Streams the model reply, runs the embedded query directive and persists the answer
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy.orm import Session

from finac.core.logger import get_logger, log_context
from finac.models import ChatRole

from .chat_store import ChatStore, make_title
from .config import ChatConfig, chat_config
from .directive import extract_directive
from .errors import ChatQueryError
from .llm_providers import PRIVACY_SETTINGS_URL, LLMProvider
from .prompt_builder import PromptBuilder
from .query_executor import QueryExecutor
from .response_formatter import ResponseFormatter
from .types import ResponseType

logger = get_logger(__name__)


@dataclass
class ChatTurn:
    """A user message accepted into a chat, ready to be answered."""

    user_id: str
    chat_id: str
    message: str
    llm_messages: List[Dict[str, str]]


def sse_event(chunk: Dict[str, Any]) -> str:
    """Encode one stream chunk as a server-sent event."""
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n"


class ChatService:
    """Runs chat turns against the language model and the finance store"""

    def __init__(
        self,
        session: Session,
        provider: LLMProvider,
        formatter: Optional[ResponseFormatter] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        config: Optional[ChatConfig] = None,
    ):
        self.config = config or chat_config
        self.provider = provider
        self.session = session
        self.store = ChatStore(session, self.config)
        self.executor = QueryExecutor.for_session(session)
        self.formatter = formatter or ResponseFormatter(self.config)
        self.prompt_builder = prompt_builder or PromptBuilder(self.config)

    def prepare_turn(self, user_id: str, message: str, chat_id: Optional[str] = None) -> ChatTurn:
        """
        Resolve (or open) the chat, record the user message and build the prompt.

        Raises:
            ChatNotFoundError: ``chat_id`` does not belong to this user
        """
        if chat_id:
            chat = self.store.get_chat(user_id, chat_id)
        else:
            chat = self.store.create_chat(
                user_id, make_title(message, self.config.chat_title_max_length)
            )

        # history is read before the new message is stored so it is sent once
        history = self.store.history(chat)
        self.store.save_message(chat, ChatRole.USER, message)
        llm_messages = self.prompt_builder.build_messages(history, message)

        with log_context.scope(user_id=user_id, chat_id=chat.id):
            logger.info("Prepared chat turn with %d prior messages", len(history))
        return ChatTurn(user_id=user_id, chat_id=chat.id, message=message, llm_messages=llm_messages)

    def _save_reply(
        self,
        turn: ChatTurn,
        content: str,
        response_type: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        chat = self.store.get_chat(turn.user_id, turn.chat_id)
        self.store.save_message(chat, ChatRole.ASSISTANT, content, response_type, payload)

    async def stream_reply(self, turn: ChatTurn) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield incremental ``{content, done: False}`` chunks, then one final chunk.

        The final chunk carries ``chatId``, ``responseType``, ``content`` and,
        for query results, ``table`` or ``chart``. Failures end the stream with
        a final chunk that also carries ``error``.
        """
        full_response = ""
        try:
            async for content in self.provider.stream_chat(turn.llm_messages):
                full_response += content
                yield {"content": content, "done": False}
        except Exception as exc:
            yield self._fail(turn, exc)
            return

        try:
            final = self._finish(turn, full_response)
        except Exception as exc:
            self.session.rollback()
            final = self._fail(turn, exc)
        yield final

    def _finish(self, turn: ChatTurn, full_response: str) -> Dict[str, Any]:
        with log_context.scope(user_id=turn.user_id, chat_id=turn.chat_id):
            directive = extract_directive(full_response)
            if directive and directive.get("entity"):
                return self._answer_query(turn, directive, full_response)

            if full_response.strip():
                self._save_reply(turn, full_response, ResponseType.TEXT.value)
            return {
                "done": True,
                "chatId": turn.chat_id,
                "responseType": ResponseType.TEXT.value,
                "content": full_response or self.config.empty_reply,
            }

    def _answer_query(self, turn: ChatTurn, directive: Dict[str, Any], full_response: str) -> Dict[str, Any]:
        try:
            result = self.executor.execute(turn.user_id, directive)
        except ChatQueryError as exc:
            logger.error("Error executing query: %s", exc, exc_info=True)
            self.session.rollback()
            error_message = f"I encountered an error while querying the database: {exc}. {full_response}"
            self._save_reply(turn, error_message, ResponseType.TEXT.value)
            return {
                "done": True,
                "chatId": turn.chat_id,
                "responseType": ResponseType.TEXT.value,
                "content": error_message,
            }

        formatted = self.formatter.format_response(
            directive.get("queryType") or ResponseType.TEXT.value,
            result,
            directive.get("chartType"),
            directive.get("explanation") or full_response,
        )
        payload = formatted.to_payload()
        attachments = {key: payload[key] for key in ("table", "chart") if key in payload}

        self._save_reply(
            turn,
            formatted.content or full_response,
            formatted.type.value,
            attachments or None,
        )
        return {
            "done": True,
            "chatId": turn.chat_id,
            "responseType": formatted.type.value,
            "content": formatted.content,
            **attachments,
        }

    def _fail(self, turn: ChatTurn, exc: Exception) -> Dict[str, Any]:
        with log_context.scope(user_id=turn.user_id, chat_id=turn.chat_id):
            logger.error("Error in chat stream: %s", exc, exc_info=True)
            detail = str(exc)
            if "privacy" in detail or "data policy" in detail:
                error_message = (
                    f"OpenRouter Configuration Required: {detail}. Please configure your privacy "
                    f"settings at {PRIVACY_SETTINGS_URL} to allow free model access."
                )
            else:
                error_message = f"Error: {detail}"

            try:
                self._save_reply(turn, error_message, ResponseType.TEXT.value)
            except Exception as save_error:
                logger.error("Error saving error message: %s", save_error, exc_info=True)

        return {
            "done": True,
            "chatId": turn.chat_id,
            "error": error_message,
            "responseType": ResponseType.TEXT.value,
            "content": error_message,
        }


__all__ = ["ChatService", "ChatTurn", "sse_event"]
