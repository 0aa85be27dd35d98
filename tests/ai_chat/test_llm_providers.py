"""Tests for the OpenRouter streaming client against a mocked transport."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from finac.ai_chat.config import LLMStreamConfig
from finac.ai_chat.errors import LLMProviderError
from finac.ai_chat.llm_providers import OpenRouterProvider
from finac.core.config import OpenRouterSettings

MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def _settings(model: str | None = None, api_key: str = "sk-test") -> OpenRouterSettings:
    return OpenRouterSettings(
        api_key=api_key,
        base_url="https://openrouter.test/api/v1",
        model=model,
        referer="http://localhost:3000",
    )


def _sse(*contents: str) -> bytes:
    events = [
        "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}) for content in contents
    ]
    return ("\n\n".join([": OPENROUTER PROCESSING", *events, "data: [DONE]"]) + "\n\n").encode()


def _collect(provider: OpenRouterProvider) -> list[str]:
    async def run():
        return [chunk async for chunk in provider.stream_chat(MESSAGES)]

    return asyncio.run(run())


def _provider(handler, model: str | None = None, models: list[str] | None = None) -> OpenRouterProvider:
    config = LLMStreamConfig(fallback_models=models or ["model-a", "model-b"])
    return OpenRouterProvider(_settings(model), config, transport=httpx.MockTransport(handler))


def test_streams_delta_content():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=_sse("Hel", "lo"))

    chunks = _collect(_provider(handler))

    assert chunks == ["Hel", "lo"]
    request = seen[0]
    assert request.url == "https://openrouter.test/api/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert request.headers["X-Title"] == "Finac AI Assistant"
    body = json.loads(request.content)
    assert body["model"] == "model-a"
    assert body["stream"] is True
    assert body["messages"] == MESSAGES


def test_unavailable_models_fall_back_to_the_next():
    models: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        model = json.loads(request.content)["model"]
        models.append(model)
        if model == "model-a":
            return httpx.Response(404, json={"error": {"message": "No endpoints found"}})
        return httpx.Response(200, content=_sse("ok"))

    assert _collect(_provider(handler)) == ["ok"]
    assert models == ["model-a", "model-b"]


def test_privacy_errors_are_skippable_regardless_of_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if json.loads(request.content)["model"] == "model-a":
            return httpx.Response(403, json={"error": {"message": "violates your data policy"}})
        return httpx.Response(200, content=_sse("ok"))

    assert _collect(_provider(handler)) == ["ok"]


def test_exhausted_models_report_what_was_tried():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "User not found"}})

    with pytest.raises(LLMProviderError, match="Tried models: model-a, model-b"):
        _collect(_provider(handler))


def test_other_errors_propagate_immediately():
    models: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        models.append(json.loads(request.content)["model"])
        return httpx.Response(429, json={"error": {"message": "Rate limited"}})

    with pytest.raises(LLMProviderError, match=r"\(429\)"):
        _collect(_provider(handler))
    assert models == ["model-a"]


def test_preferred_model_is_used_alone():
    models: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        models.append(json.loads(request.content)["model"])
        return httpx.Response(404, json={})

    with pytest.raises(LLMProviderError):
        _collect(_provider(handler, model="paid/model"))
    assert models == ["paid/model"]


def test_transport_failures_are_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(LLMProviderError, match="unreachable"):
        _collect(_provider(handler))


def test_missing_api_key_is_rejected():
    with pytest.raises(LLMProviderError, match="OPENROUTER_API_KEY"):
        OpenRouterProvider(_settings(api_key=""))
