"""
AI Providers Package
Translation Queue - LLM Adapters

Supports:
- Anthropic Claude (claude-3.5-sonnet, claude-sonnet-4, etc.)
- OpenAI GPT (gpt-4o, gpt-4o-mini, etc.)

Usage:
    from ai_providers import create_translation_provider

    provider = create_translation_provider()
    text = await provider.translate("Hello, world!", "fr", "This is a quiz question")
"""

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIResponse,
    AIConfig,
    build_translation_prompt,
    clean_translation,
)

from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider

from .manager import (
    PROVIDER_REGISTRY,
    available_provider_types,
    create_translation_provider,
    resolve_provider_type,
)

__all__ = [
    # Base classes
    "BaseAIProvider",
    "AIProviderType",
    "AIResponse",
    "AIConfig",
    "build_translation_prompt",
    "clean_translation",

    # Providers
    "ClaudeProvider",
    "OpenAIProvider",

    # Manager
    "PROVIDER_REGISTRY",
    "available_provider_types",
    "create_translation_provider",
    "resolve_provider_type",
]

__version__ = "1.0.0"
