"""
LLM Provider Factory

Creates provider instances per agent role from configuration.
"""

import os
from typing import Optional

from dotenv import load_dotenv

from .anthropic_provider import AnthropicProvider
from .openai_compatible_provider import OpenAICompatibleProvider
from .provider import LLMConfig, LLMProvider, ProviderType

load_dotenv()

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Environment variable holding the model name for each agent role
ROLE_MODEL_ENV = {
    "planner": "PLANNER_MODEL",
    "navigator": "NAVIGATOR_MODEL",
    "validator": "VALIDATOR_MODEL",
}


def create_provider_from_env(role: str = "navigator") -> LLMProvider:
    """
    Create an LLM provider for an agent role from environment variables.

    Reads:
    - OPENAI_API_BASE + OPENAI_API_KEY: OpenAI-compatible endpoint
    - ANTHROPIC_API_KEY (+ optional ANTHROPIC_BASE_URL): Anthropic Claude
    - PLANNER_MODEL / NAVIGATOR_MODEL / VALIDATOR_MODEL: model per role

    Args:
        role: "planner", "navigator" or "validator"

    Returns:
        Configured LLM provider instance
    """
    if role not in ROLE_MODEL_ENV:
        raise ValueError(
            f"Unknown agent role: {role}. Available roles: {list(ROLE_MODEL_ENV)}"
        )
    model = os.getenv(ROLE_MODEL_ENV[role], DEFAULT_MODEL)

    base_url = os.getenv("OPENAI_API_BASE")
    api_key = os.getenv("OPENAI_API_KEY")

    if base_url and api_key:
        config = LLMConfig(
            api_key=api_key,
            base_url=base_url,
            model=model,
            provider_type=ProviderType.OPENAI_COMPATIBLE,
        )
        return OpenAICompatibleProvider(config)

    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ValueError(
            "No LLM provider configured. Set either:\n"
            "  - ANTHROPIC_API_KEY for Anthropic Claude\n"
            "  - OPENAI_API_BASE + OPENAI_API_KEY for OpenAI-compatible provider"
        )

    config = LLMConfig(
        api_key=api_key,
        base_url=os.getenv("ANTHROPIC_BASE_URL"),
        model=model,
        provider_type=ProviderType.ANTHROPIC,
    )
    return AnthropicProvider(config)


def create_provider(
    provider_type: ProviderType = ProviderType.ANTHROPIC,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    model: str = DEFAULT_MODEL,
    **kwargs,
) -> LLMProvider:
    """
    Create an LLM provider with explicit configuration.

    Example:
        >>> provider = create_provider(
        ...     provider_type=ProviderType.ANTHROPIC,
        ...     api_key="sk-ant-...",
        ... )
    """
    config = LLMConfig(
        api_key=api_key,
        base_url=base_url,
        model=model,
        provider_type=ProviderType(provider_type),
        **kwargs,
    )

    if config.provider_type == ProviderType.OPENAI_COMPATIBLE:
        return OpenAICompatibleProvider(config)
    return AnthropicProvider(config)
