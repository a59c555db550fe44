"""
Anthropic Claude LLM Provider

Native implementation for Anthropic's Claude API.
Structured output is obtained by forcing a single tool call whose input
schema is the requested output schema.
"""

import logging
from typing import Any, Optional, Union

from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage

from .provider import LLMConfig, LLMProvider, Message, ToolCall

logger = logging.getLogger(__name__)


def _convert_part(part: dict[str, Any]) -> dict[str, Any]:
    """Convert an OpenAI-style content part to Anthropic's format."""
    if part.get("type") != "image_url":
        return part

    url = part["image_url"]["url"]
    header, _, data = url.partition(",")
    media_type = header.removeprefix("data:").split(";")[0] or "image/jpeg"
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": data},
    }


def _convert_messages(messages: list[Message]) -> tuple[Optional[str], list[dict]]:
    """
    Split out the system prompt and convert the rest.

    Anthropic takes the system prompt as a separate parameter.
    """
    system_parts = []
    converted = []

    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.text)
            continue
        if isinstance(msg.content, str):
            content: Union[str, list] = msg.content
        else:
            content = [_convert_part(part) for part in msg.content]
        converted.append({"role": msg.role, "content": content})

    system = "\n\n".join(system_parts) if system_parts else None
    return system, converted


class AnthropicProvider(LLMProvider):
    """
    Anthropic Claude API provider.

    Provides native integration with Anthropic's Claude models
    using the official Anthropic Python SDK.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Optional[AsyncAnthropic] = None

    @property
    def supports_function_calling(self) -> bool:
        return True

    async def initialize(self) -> None:
        """Initialize the Anthropic async client."""
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
            )

    def _base_params(self, messages: list[Message], options: dict[str, Any]) -> dict:
        system, anthropic_messages = _convert_messages(messages)
        params = {
            "model": self.config.model,
            "messages": anthropic_messages,
            "max_tokens": options.get("max_tokens", self.config.max_tokens),
            "temperature": options.get("temperature", self.config.temperature),
        }
        if system:
            params["system"] = system
        return params

    async def invoke(
        self,
        messages: list[Message],
        output_schema: Optional[dict[str, Any]] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> Union[dict[str, Any], str]:
        """
        Generate a structured completion using Anthropic's API.

        Returns:
            The forced tool call's input, or the text content when the model
            answered without calling the tool
        """
        await self.initialize()
        options = options or {}

        params = self._base_params(messages, options)
        if output_schema is not None:
            tool_name = options.get("schema_name", "structured_output")
            params["tools"] = [
                {
                    "name": tool_name,
                    "description": "Respond with output matching this schema.",
                    "input_schema": output_schema,
                }
            ]
            params["tool_choice"] = {"type": "tool", "name": tool_name}

        response: AnthropicMessage = await self._client.messages.create(**params)

        for block in response.content:
            if block.type == "tool_use":
                return dict(block.input)

        text = "".join(block.text for block in response.content if block.type == "text")
        if output_schema is not None:
            logger.warning("Anthropic returned text instead of a tool call")
        return text

    async def invoke_with_tools(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> list[ToolCall]:
        """Generate tool calls, letting the model pick any of the given tools."""
        await self.initialize()
        options = options or {}

        params = self._base_params(messages, options)
        params["tools"] = tools
        params["tool_choice"] = {"type": "any"}

        response: AnthropicMessage = await self._client.messages.create(**params)

        return [
            ToolCall(name=block.name, arguments=dict(block.input))
            for block in response.content
            if block.type == "tool_use"
        ]

    async def close(self) -> None:
        """Close the Anthropic client."""
        if self._client:
            await self._client.close()
            self._client = None
