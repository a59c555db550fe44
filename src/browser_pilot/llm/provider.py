"""
Base LLM Provider Interface and Configuration

Defines the ChatModel abstraction the agents talk to. Providers return
structured output (a dict matching the requested JSON schema, or raw text
for the agent to parse) and surface authentication, forbidden-access and
cancellation failures as distinguishable exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel


class ProviderType(str, Enum):
    """Supported LLM transports."""

    ANTHROPIC = "anthropic"
    OPENAI_COMPATIBLE = "openai-compatible"


@dataclass
class LLMConfig:
    """
    Configuration for LLM provider connection.

    Supports both Anthropic native and OpenAI-compatible APIs.
    """

    api_key: str
    base_url: Optional[str] = None  # None for Anthropic native, URL for OpenAI-compatible
    model: str = "claude-sonnet-4-20250514"

    max_tokens: int = 8192
    temperature: float = 0.1
    timeout: int = 60

    provider_type: ProviderType = ProviderType.ANTHROPIC


class Message(BaseModel):
    """
    Chat message sent to a provider.

    ``content`` is either plain text or a list of OpenAI-style parts:
    ``{"type": "text", "text": ...}`` and
    ``{"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,..."}}``.
    """

    role: str  # "user", "assistant", "system"
    content: Union[str, list[dict[str, Any]]]

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "".join(
            part.get("text", "") for part in self.content if part.get("type") == "text"
        )

    @property
    def image_count(self) -> int:
        if isinstance(self.content, str):
            return 0
        return sum(1 for part in self.content if part.get("type") == "image_url")


def system_message(content: str) -> Message:
    return Message(role="system", content=content)


def user_message(content: Union[str, list[dict[str, Any]]]) -> Message:
    return Message(role="user", content=content)


def assistant_message(content: str) -> Message:
    return Message(role="assistant", content=content)


class ToolCall(BaseModel):
    """A function call requested by the model."""

    name: str
    arguments: dict[str, Any] = {}


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers (the agents' ChatModel).

    All providers must implement ``invoke``; function calling is optional.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    @property
    def provider_type(self) -> ProviderType:
        return self.config.provider_type

    @property
    def model_name(self) -> str:
        return self.config.model

    @property
    def supports_function_calling(self) -> bool:
        return False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the provider client."""
        pass

    @abstractmethod
    async def invoke(
        self,
        messages: list[Message],
        output_schema: Optional[dict[str, Any]] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> Union[dict[str, Any], str]:
        """
        Run one completion constrained to a JSON schema.

        Args:
            messages: Conversation to send
            output_schema: JSON schema the answer must follow (free text if None)
            options: Call options (``schema_name``, ``max_tokens``, ``temperature``)

        Returns:
            Parsed structured result, or raw text when the provider could not
            produce structured output
        """
        pass

    async def invoke_with_tools(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]],
        options: Optional[dict[str, Any]] = None,
    ) -> list[ToolCall]:
        """
        Run one completion with native function calling.

        Args:
            messages: Conversation to send
            tools: ``{"name", "description", "input_schema"}`` definitions

        Returns:
            Tool calls in the order the model produced them
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not support function calling"
        )

    async def close(self) -> None:
        """Close the provider connection."""
        if self._client:
            await self._client.close()
            self._client = None
