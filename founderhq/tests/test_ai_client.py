"""
Tests for the AI gateway client, using httpx.MockTransport.
"""
import json

import httpx
import pytest

from founderhq.core.errors import (
    AIPaymentRequiredError,
    AIProviderError,
    AITimeoutError,
    RateLimitError,
)
from founderhq.features.ai.client import AIClient, function_tool

TOOL = function_tool("return_ideas", "Return ideas", {"type": "object", "properties": {}})
MESSAGES = [{"role": "user", "content": "hi"}]


def _client(handler, **kwargs):
    return AIClient(api_key="k", base_url="https://gateway.test/v1/chat/completions", model="m", transport=httpx.MockTransport(handler), **kwargs)


def _completion(message):
    return httpx.Response(200, json={"choices": [{"message": message}]})


@pytest.mark.asyncio
async def test_tool_call_arguments_are_parsed():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["authorization"]
        return _completion({"tool_calls": [{"function": {"name": "return_ideas", "arguments": '{"ideas": [{"title": "A"}]}'}}]})

    result = await _client(handler).complete(MESSAGES, tool=TOOL)

    assert result == {"ideas": [{"title": "A"}]}
    assert seen["auth"] == "Bearer k"
    assert seen["body"]["model"] == "m"
    assert seen["body"]["tool_choice"] == {"type": "function", "function": {"name": "return_ideas"}}


@pytest.mark.asyncio
async def test_content_with_code_fence_is_parsed():
    def handler(request):
        return _completion({"content": '```json\n{"ok": true}\n```'})

    assert await _client(handler).complete(MESSAGES) == {"ok": True}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,error",
    [(429, RateLimitError), (402, AIPaymentRequiredError), (500, AIProviderError), (400, AIProviderError)],
)
async def test_status_codes_map_to_errors(status, error):
    def handler(request):
        return httpx.Response(status, json={"error": "nope"})

    with pytest.raises(error):
        await _client(handler).complete(MESSAGES)


@pytest.mark.asyncio
async def test_timeout_maps_to_ai_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(AITimeoutError) as exc:
        await _client(handler).complete(MESSAGES)
    assert exc.value.status_code == 504


@pytest.mark.asyncio
async def test_connection_error_maps_to_provider_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(AIProviderError) as exc:
        await _client(handler).complete(MESSAGES)
    assert not isinstance(exc.value, AITimeoutError)


@pytest.mark.asyncio
async def test_missing_tool_call_is_provider_error():
    def handler(request):
        return _completion({"content": "I'd rather chat"})

    with pytest.raises(AIProviderError):
        await _client(handler).complete(MESSAGES, tool=TOOL)


@pytest.mark.asyncio
async def test_invalid_json_is_provider_error():
    def handler(request):
        return _completion({"content": "not json at all"})

    with pytest.raises(AIProviderError):
        await _client(handler).complete(MESSAGES)


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_request(monkeypatch):
    from founderhq.core.config import settings

    monkeypatch.setattr(settings, "AI_API_KEY", None)
    calls = []

    def handler(request):
        calls.append(request)
        return _completion({"content": "{}"})

    client = AIClient(api_key=None, transport=httpx.MockTransport(handler))
    with pytest.raises(AIProviderError):
        await client.complete(MESSAGES)
    assert calls == []
