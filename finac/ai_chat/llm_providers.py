"""
LLM Provider Abstraction Layer
Streams chat completions from OpenRouter's OpenAI-compatible API
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from finac.core.config import OpenRouterSettings, get_settings
from finac.core.logger import get_logger

from .config import LLMStreamConfig, llm_stream_config
from .errors import LLMProviderError

logger = get_logger(__name__)

PRIVACY_SETTINGS_URL = "https://openrouter.ai/settings/privacy"


class LLMProvider(ABC):
    """Base class for streaming chat providers"""

    @abstractmethod
    def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Yield incremental text for ``messages`` (system/user/assistant dicts)."""
        raise NotImplementedError


class _SkipModel(Exception):
    """The current model is unavailable for this key; try the next one."""

    def __init__(self, status_code: Optional[int], detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


class OpenRouterProvider(LLMProvider):
    """OpenRouter provider with model fallback"""

    def __init__(
        self,
        settings: Optional[OpenRouterSettings] = None,
        config: Optional[LLMStreamConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings().openrouter
        self.config = config or llm_stream_config
        self._transport = transport

        if not self.settings.api_key:
            raise LLMProviderError("OpenRouter API key is not configured. Set OPENROUTER_API_KEY.")

    @property
    def models(self) -> List[str]:
        """The preferred model alone when configured, else the fallback list."""
        if self.settings.model:
            return [self.settings.model]
        return list(self.config.fallback_models)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.referer,
            "X-Title": self.settings.app_title,
        }

    def _is_skippable(self, status_code: Optional[int], detail: str) -> bool:
        if status_code in self.config.skippable_status_codes:
            return True
        return any(marker in detail for marker in self.config.skippable_error_markers)

    async def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        tried: List[str] = []
        last_error: Optional[_SkipModel] = None

        async with httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.config.request_timeout,
            transport=self._transport,
        ) as client:
            for model in self.models:
                tried.append(model)
                logger.info("Attempting OpenRouter model %s", model)
                try:
                    async for content in self._stream_model(client, model, messages):
                        yield content
                    return
                except _SkipModel as skip:
                    last_error = skip
                    logger.warning(
                        "Model %s failed (status: %s) - %s. Trying next model...",
                        model,
                        skip.status_code,
                        skip.detail,
                    )

        raise LLMProviderError(self._exhausted_message(tried, last_error))

    async def _stream_model(
        self,
        client: httpx.AsyncClient,
        model: str,
        messages: List[Dict[str, str]],
    ) -> AsyncIterator[str]:
        payload = {
            "model": model,
            "messages": messages,
            "stream": True,
            "temperature": self.config.temperature,
        }
        produced = False
        try:
            async with client.stream("POST", "/chat/completions", headers=self._headers(), json=payload) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    if self._is_skippable(response.status_code, body):
                        raise _SkipModel(response.status_code, body)
                    logger.error("OpenRouter error %s for %s: %s", response.status_code, model, body)
                    raise LLMProviderError(f"OpenRouter request failed ({response.status_code}): {body}")

                async for line in response.aiter_lines():
                    chunk = self._parse_event(line)
                    if chunk is None:
                        continue
                    if chunk is _DONE:
                        break
                    error = chunk.get("error")
                    if error:
                        detail = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                        if not produced and self._is_skippable(error.get("code") if isinstance(error, dict) else None, detail):
                            raise _SkipModel(None, detail)
                        raise LLMProviderError(f"OpenRouter stream error: {detail}")
                    content = self._delta_content(chunk)
                    if content:
                        produced = True
                        yield content
        except httpx.HTTPError as exc:
            logger.error("OpenRouter request failed for %s: %s", model, exc)
            raise LLMProviderError(f"OpenRouter request failed: {exc}") from exc

    @staticmethod
    def _parse_event(line: str) -> Any:
        line = line.strip()
        if not line.startswith("data:"):
            # blank separators and ": OPENROUTER PROCESSING" keep-alives
            return None
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            return _DONE
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed stream event: %s", data[:200])
            return None
        return parsed if isinstance(parsed, dict) else None

    @staticmethod
    def _delta_content(chunk: Dict[str, Any]) -> str:
        choices = chunk.get("choices") or [{}]
        delta = choices[0].get("delta") or {}
        return delta.get("content") or ""

    @staticmethod
    def _exhausted_message(tried: List[str], last_error: Optional[_SkipModel]) -> str:
        models = ", ".join(tried)
        if last_error is None:
            return f"All models failed. Tried: {models}."
        detail = last_error.detail
        if any(marker in detail for marker in ("data policy", "privacy", "No endpoints found")):
            return (
                "OpenRouter Configuration Required: No free models are available with your current "
                f"privacy settings. Configure {PRIVACY_SETTINGS_URL} or set OPENROUTER_MODEL. "
                f"Tried models: {models}"
            )
        if last_error.status_code == 401 or "User not found" in detail:
            return (
                "OpenRouter Authentication Error: check OPENROUTER_API_KEY and model access. "
                f"Tried models: {models}. Last error: {detail}"
            )
        return f"All models failed. Tried: {models}. Last error: {detail}"


_DONE = object()


def create_provider(settings: Optional[OpenRouterSettings] = None) -> LLMProvider:
    """Build the configured chat provider."""
    return OpenRouterProvider(settings=settings)


__all__ = ["LLMProvider", "OpenRouterProvider", "create_provider"]
