"""Finac: AI chat assistant over a personal-finance store."""

from .core import get_logger, get_settings

__all__ = ["get_logger", "get_settings"]
