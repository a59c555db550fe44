"""
OpenAI-Compatible LLM Provider

Universal provider for any API that follows the OpenAI chat completion format:
OpenRouter, local models (Ollama, LM Studio), Gemini's OpenAI endpoint, etc.

Structured output uses ``response_format: json_schema``; many compatible
servers ignore it, so the raw text is returned for the agent to parse.
"""

import logging
from typing import Any, Optional, Union

import httpx

from ..errors import LLMAPIError
from ..utils import parse_json_lenient
from .provider import LLMConfig, LLMProvider, Message, ToolCall

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    """
    OpenAI-compatible API provider.

    Works with any API that follows the OpenAI chat completion format.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def supports_function_calling(self) -> bool:
        return True

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout,
            )

    def _payload(self, messages: list[Message], options: dict[str, Any]) -> dict:
        return {
            "model": self.config.model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "max_tokens": options.get("max_tokens", self.config.max_tokens),
            "temperature": options.get("temperature", self.config.temperature),
        }

    async def _post(self, payload: dict) -> dict:
        await self.initialize()
        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            raise TimeoutError(f"LLM request timed out after {self.config.timeout}s")
        except httpx.HTTPStatusError as e:
            raise LLMAPIError(e.response.status_code, e.response.text) from e

    async def invoke(
        self,
        messages: list[Message],
        output_schema: Optional[dict[str, Any]] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> Union[dict[str, Any], str]:
        """
        Generate a completion constrained to ``output_schema``.

        Returns:
            The message content as text; parsing is left to the caller so
            malformed JSON can be repaired there
        """
        options = options or {}
        payload = self._payload(messages, options)
        if output_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": options.get("schema_name", "structured_output"),
                    "schema": output_schema,
                },
            }

        data = await self._post(payload)
        return data["choices"][0]["message"].get("content") or ""

    async def invoke_with_tools(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> list[ToolCall]:
        """Generate function calls in OpenAI ``tools`` format."""
        options = options or {}
        payload = self._payload(messages, options)
        payload["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool.get("description", ""),
                    "parameters": tool["input_schema"],
                },
            }
            for tool in tools
        ]
        payload["tool_choice"] = "required"

        data = await self._post(payload)
        message = data["choices"][0]["message"]

        calls = []
        for call in message.get("tool_calls") or []:
            function = call.get("function", {})
            arguments = function.get("arguments") or "{}"
            if isinstance(arguments, str):
                arguments = parse_json_lenient(arguments)
            calls.append(ToolCall(name=function["name"], arguments=arguments))
        return calls

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
