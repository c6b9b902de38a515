"""
Base AI Provider - Abstract Interface
Translation Queue - LLM Adapters

Providers implement complete(); translate() builds the translation prompt
and cleans the model's reply. Provider errors are mapped onto the queue's
error taxonomy so the rate-limit controller can tell throttling apart
from other failures.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from core.translation_queue.errors import FatalCallError


class AIProviderType(Enum):
    """Supported AI Providers"""
    CLAUDE = "anthropic"
    OPENAI = "openai"


@dataclass
class AIResponse:
    """Unified response format"""
    content: str
    model: str
    provider: AIProviderType
    usage: Optional[Dict[str, int]] = None  # tokens used
    finish_reason: Optional[str] = None
    raw_response: Optional[Any] = None


@dataclass
class AIConfig:
    """Provider configuration"""
    api_key: str
    model: str
    max_tokens: int = 1024
    temperature: float = 0.0
    base_url: Optional[str] = None  # For custom endpoints


TRANSLATION_PROMPT = (
    "Translate the following text to {language}. "
    "Return ONLY the translation, without any prefixes or explanations:\n\n"
    "Context: {context}\n"
    "Text to translate: \"{text}\""
)


def build_translation_prompt(text: str, target_language: str, context: str = "") -> str:
    return TRANSLATION_PROMPT.format(language=target_language, context=context, text=text)


def clean_translation(content: str, target_language: str) -> str:
    """Strip 'Translation:'-style prefixes and wrapping quotes from a reply"""
    lang = re.escape(target_language)
    prefixes = [
        rf"^Here'?s the {lang} translation:\s*",
        rf"^The {lang} translation is:\s*",
        rf"^{lang} translation:\s*",
        r"^Translation:\s*",
        r"^Translated text:\s*",
    ]
    cleaned = content.strip()
    for pattern in prefixes:
        cleaned = re.sub(pattern, "", cleaned, flags=re.IGNORECASE)
    cleaned = cleaned.strip()
    if len(cleaned) >= 2 and cleaned.startswith('"') and cleaned.endswith('"'):
        cleaned = cleaned[1:-1].strip()
    return cleaned


class BaseAIProvider(ABC):
    """
    Abstract base class for AI providers.
    All providers must implement these methods.
    """

    def __init__(self, config: AIConfig):
        self.config = config
        self._client = None

    @property
    @abstractmethod
    def provider_type(self) -> AIProviderType:
        """Return the provider type"""
        pass

    @property
    @abstractmethod
    def supported_models(self) -> List[str]:
        """Return list of supported models"""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the client connection"""
        pass

    @abstractmethod
    async def complete(self, prompt: str, **kwargs) -> AIResponse:
        """
        Generate a completion from the AI model.

        Args:
            prompt: User prompt
            **kwargs: model / max_tokens / temperature overrides

        Returns:
            AIResponse with the generated content

        Raises:
            ThrottledError: provider rate limited the request
            TransientCallError: retryable failure
            FatalCallError: anything else
        """
        pass

    async def translate(self, source_text: str, target_language: str, context: str = "") -> str:
        """
        Translate one piece of text.

        Raises:
            FatalCallError: the cleaned reply is empty
        """
        response = await self.complete(build_translation_prompt(source_text, target_language, context))
        cleaned = clean_translation(response.content or "", target_language)
        if not cleaned:
            raise FatalCallError(f"Empty translation returned for {target_language}")
        return cleaned

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.config.model}>"
