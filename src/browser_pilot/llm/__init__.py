"""
LLM Provider Abstraction

Supports multiple LLM providers through a unified ChatModel interface:
- Anthropic Claude (native)
- OpenAI-compatible APIs (OpenRouter, local models, etc.)
"""

from .provider import (
    LLMConfig,
    LLMProvider,
    Message,
    ProviderType,
    ToolCall,
    assistant_message,
    system_message,
    user_message,
)
from .anthropic_provider import AnthropicProvider
from .openai_compatible_provider import OpenAICompatibleProvider
from .factory import create_provider, create_provider_from_env

__all__ = [
    "LLMConfig",
    "LLMProvider",
    "Message",
    "ProviderType",
    "ToolCall",
    "assistant_message",
    "system_message",
    "user_message",
    "AnthropicProvider",
    "OpenAICompatibleProvider",
    "create_provider",
    "create_provider_from_env",
]
