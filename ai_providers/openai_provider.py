"""
OpenAI Provider - GPT-4o, GPT-4o-mini, etc.
Translation Queue - LLM Adapters
"""

from typing import List

import openai
from openai import AsyncOpenAI

from core.translation_queue.errors import FatalCallError, ThrottledError, TransientCallError

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIResponse,
)


class OpenAIProvider(BaseAIProvider):
    """
    OpenAI GPT Provider

    Supports:
    - GPT-4o
    - GPT-4o-mini (fast, cost-effective)
    - GPT-4-turbo
    """

    MODELS = {
        "gpt-4o": "GPT-4o (Latest, Multimodal)",
        "gpt-4o-mini": "GPT-4o Mini (Fast)",
        "gpt-4-turbo": "GPT-4 Turbo",
    }

    DEFAULT_MODEL = "gpt-4o-mini"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.OPENAI

    @property
    def supported_models(self) -> List[str]:
        return list(self.MODELS.keys())

    async def initialize(self) -> None:
        """Initialize OpenAI client"""
        self._client = AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            max_retries=0,
        )

    async def complete(self, prompt: str, **kwargs) -> AIResponse:
        """Generate completion using OpenAI"""
        if not self._client:
            await self.initialize()

        try:
            response = await self._client.chat.completions.create(
                model=kwargs.get("model", self.config.model),
                max_tokens=kwargs.get("max_tokens", self.config.max_tokens),
                temperature=kwargs.get("temperature", self.config.temperature),
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.RateLimitError as e:
            raise ThrottledError(f"OpenAI rate limit: {e}") from e
        except openai.APIConnectionError as e:
            raise TransientCallError(f"OpenAI connection error: {e}") from e
        except openai.InternalServerError as e:
            raise TransientCallError(f"OpenAI server error ({e.status_code}): {e}") from e
        except openai.APIStatusError as e:
            raise FatalCallError(f"OpenAI API error ({e.status_code}): {e}") from e

        if not response.choices:
            raise FatalCallError("OpenAI returned no choices")
        choice = response.choices[0]

        return AIResponse(
            content=choice.message.content or "",
            model=response.model,
            provider=self.provider_type,
            usage={
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens
            } if response.usage else None,
            finish_reason=choice.finish_reason,
            raw_response=response
        )
