"""
AI Provider Manager
Translation Queue - LLM Adapters

Builds the translation provider from settings, falling back to whichever
provider has credentials.
"""

from typing import Dict, List, Optional, Type

from config.logging_config import get_logger

from .base import BaseAIProvider, AIProviderType, AIConfig
from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider

logger = get_logger(__name__)


# Registry of all available providers
PROVIDER_REGISTRY: Dict[AIProviderType, Type[BaseAIProvider]] = {
    AIProviderType.CLAUDE: ClaudeProvider,
    AIProviderType.OPENAI: OpenAIProvider,
}

# Aliases accepted for DEFAULT_PROVIDER
PROVIDER_ALIASES: Dict[str, AIProviderType] = {
    "anthropic": AIProviderType.CLAUDE,
    "claude": AIProviderType.CLAUDE,
    "openai": AIProviderType.OPENAI,
    "gpt": AIProviderType.OPENAI,
}


def resolve_provider_type(name: str) -> AIProviderType:
    provider_type = PROVIDER_ALIASES.get(name.lower())
    if not provider_type:
        raise ValueError(f"Unknown provider: {name}")
    return provider_type


def _model_for(provider_type: AIProviderType, settings) -> str:
    if provider_type is AIProviderType.OPENAI:
        return settings.openai_model or OpenAIProvider.DEFAULT_MODEL
    return settings.anthropic_model or ClaudeProvider.DEFAULT_MODEL


def available_provider_types(settings) -> List[AIProviderType]:
    """Providers that have API keys configured, default first"""
    return [resolve_provider_type(name) for name in settings.available_providers()]


def create_translation_provider(settings=None, provider: Optional[str] = None) -> BaseAIProvider:
    """
    Factory function to create the translation provider.

    Args:
        settings: Settings instance (global settings if None)
        provider: Force a provider by name instead of settings.default_provider

    Raises:
        ValueError: no provider has an API key configured
    """
    if settings is None:
        from config.settings import settings

    if provider:
        provider_type = resolve_provider_type(provider)
        if not settings.get_api_key(provider_type.value):
            raise ValueError(f"API key not configured for {provider_type.value}")
    else:
        available = available_provider_types(settings)
        if not available:
            raise ValueError(
                "No AI provider configured. Set ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )
        provider_type = available[0]
        requested = resolve_provider_type(settings.default_provider)
        if provider_type is not requested:
            logger.warning(
                f"{requested.value} has no API key, falling back to {provider_type.value}"
            )

    config = AIConfig(
        api_key=settings.get_api_key(provider_type.value),
        model=_model_for(provider_type, settings),
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )
    provider_instance = PROVIDER_REGISTRY[provider_type](config)
    logger.info(f"Using {provider_type.value} provider ({config.model})")
    return provider_instance
