"""AI chat assistant: query directives, execution, formatting and streaming."""

from .directive import extract_directive
from .errors import (
    ChatNotFoundError,
    ChatQueryError,
    LLMProviderError,
    QueryExecutionError,
    UnknownEntityError,
)
from .query_executor import QueryExecutor, execute_query
from .response_formatter import ResponseFormatter, format_response, generate_summary
from .router import configure_dependencies, router
from .types import FormattedResponse, QueryDescriptor

__all__ = [
    "ChatNotFoundError",
    "ChatQueryError",
    "FormattedResponse",
    "LLMProviderError",
    "QueryDescriptor",
    "QueryExecutionError",
    "QueryExecutor",
    "ResponseFormatter",
    "UnknownEntityError",
    "configure_dependencies",
    "execute_query",
    "extract_directive",
    "format_response",
    "generate_summary",
    "router",
]
