"""Chat-completions client for the AI gateway.

One endpoint, a system/user message array, an optional forced tool call.
The caller gets back parsed JSON from either the message content or the
tool-call arguments.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from founderhq.core.config import settings
from founderhq.core.errors import (
    AIPaymentRequiredError,
    AIProviderError,
    AITimeoutError,
    RateLimitError,
)

logger = logging.getLogger("founderhq")

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def _parse_json(raw: str) -> Any:
    cleaned = _FENCE_RE.sub("", raw.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AIProviderError("AI response was not valid JSON") from exc


def function_tool(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


class AIClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.AI_API_KEY
        self.base_url = base_url or settings.AI_GATEWAY_URL
        self.model = model or settings.AI_MODEL
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS
        self._transport = transport

    def _payload(self, messages: List[Dict[str, str]], tool: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if tool:
            payload["tools"] = [tool]
            payload["tool_choice"] = {"type": "function", "function": {"name": tool["function"]["name"]}}
        return payload

    async def complete(self, messages: List[Dict[str, str]], tool: Optional[Dict[str, Any]] = None) -> Any:
        """Send one chat completion and return the parsed JSON result.

        Raises:
            RateLimitError: gateway returned 429
            AIPaymentRequiredError: gateway returned 402
            AITimeoutError: request exceeded the configured timeout
            AIProviderError: anything else (non-2xx, malformed body)
        """
        if not self.api_key:
            raise AIProviderError("AI_API_KEY not configured")

        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.base_url, json=self._payload(messages, tool), headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("[ai] request timed out", extra={"timeout_s": self.timeout})
            raise AITimeoutError("AI request timed out, please try again") from exc
        except httpx.HTTPError as exc:
            logger.error("[ai] transport error", exc_info=True)
            raise AIProviderError("AI provider unavailable") from exc

        if response.status_code == 429:
            raise RateLimitError("Rate limits exceeded, please try again later.")
        if response.status_code == 402:
            raise AIPaymentRequiredError("AI credits exhausted. Please add funds to continue.")
        if response.status_code >= 400:
            logger.error(
                "[ai] gateway error",
                extra={"status": response.status_code, "body": response.text[:500]},
            )
            raise AIProviderError("AI generation failed")

        try:
            data = response.json()
            message = data["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AIProviderError("Malformed AI response") from exc

        if tool:
            tool_calls = message.get("tool_calls") or []
            arguments = tool_calls[0].get("function", {}).get("arguments") if tool_calls else None
            if not arguments:
                raise AIProviderError("No tool call in AI response")
            return _parse_json(arguments) if isinstance(arguments, str) else arguments

        content = message.get("content")
        if not content:
            raise AIProviderError("Empty AI response")
        return _parse_json(content)
