"""
AI Chat Configuration Module
Centralized tuning for the language-model stream, query pipeline and chart output
"""
from typing import Literal

from pydantic import BaseModel


class LLMStreamConfig(BaseModel):
    """Configuration for the OpenRouter streaming client"""

    # Used in order when OPENROUTER_MODEL is not set
    fallback_models: list[str] = [
        "openai/gpt-oss-120b:free",
        "openai/gpt-4o-mini",
        "meta-llama/llama-3.2-3b-instruct:free",
        "google/gemini-flash-1.5:free",
        "mistralai/mistral-7b-instruct:free",
    ]
    temperature: float = 0.7
    request_timeout: float = 60.0

    # Failures that mean "this model is unavailable to this key", try the next one
    skippable_status_codes: list[int] = [401, 404]
    skippable_error_markers: list[str] = [
        "User not found",
        "data policy",
        "privacy",
        "No endpoints found",
        "Free model publication",
    ]


class ChatConfig(BaseModel):
    """General chat + presentation configuration"""

    # Conversation settings
    max_conversation_history: int = 20
    chat_title_max_length: int = 50
    default_chat_title: str = "New Chat"
    empty_reply: str = "I'm here to help! Ask me anything about your finances."

    # Currency formatting pair for table cells and summaries
    currency: str = "INR"
    locale: str = "en-IN"
    table_date_format: str = "%d/%m/%Y"

    # Chart settings
    bar_color_palette: list[str] = [
        "hsl(var(--chart-1))",
        "hsl(var(--chart-2))",
        "hsl(var(--chart-3))",
        "hsl(var(--chart-4))",
        "hsl(var(--chart-5))",
    ]
    line_color: str = "hsl(var(--chart-1))"
    pie_color_palette: list[str] = [
        "#14b8a6",  # teal-500
        "#f43f5e",  # rose-500
        "#a855f7",  # purple-500
        "#3b82f6",  # blue-500
        "#10b981",  # green-500
        "#f472b6",  # pink-400
        "#fbbf24",  # yellow-400
        "#6366f1",  # indigo-500
        "#ef4444",  # red-500
        "#f59e42",  # orange-400
        "#8b5cf6",  # violet-500
        "#22d3ee",  # cyan-400
    ]
    chart_default_type: Literal["bar", "line", "pie", "donut"] = "bar"
    pie_keywords: list[str] = [
        "pie",
        "donut",
        "circular",
        "proportion",
        "percentage",
        "breakdown",
        "distribution",
    ]
    no_chart_data_message: str = "No data available for chart"

    # Cells in columns whose name contains one of these are currency formatted
    currency_column_markers: list[str] = ["amount", "value", "price", "total"]


# Global config instances
llm_stream_config = LLMStreamConfig()
chat_config = ChatConfig()
