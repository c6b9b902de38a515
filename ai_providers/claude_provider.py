"""
Claude AI Provider - Anthropic
Translation Queue - LLM Adapters
"""

from typing import List

import anthropic

from core.translation_queue.errors import FatalCallError, ThrottledError, TransientCallError

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIResponse,
)


class ClaudeProvider(BaseAIProvider):
    """
    Anthropic Claude AI Provider

    Supports:
    - Claude 3.5 Sonnet (recommended for translation)
    - Claude 3.5 Haiku (fast, cost-effective)
    """

    MODELS = {
        "claude-sonnet-4-20250514": "Claude Sonnet 4 (Latest)",
        "claude-3-5-sonnet-20241022": "Claude 3.5 Sonnet",
        "claude-3-5-haiku-20241022": "Claude 3.5 Haiku",
    }

    DEFAULT_MODEL = "claude-3-5-sonnet-20241022"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.CLAUDE

    @property
    def supported_models(self) -> List[str]:
        return list(self.MODELS.keys())

    async def initialize(self) -> None:
        """Initialize Anthropic client"""
        self._client = anthropic.AsyncAnthropic(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            max_retries=0,
        )

    async def complete(self, prompt: str, **kwargs) -> AIResponse:
        """Generate completion using Claude"""
        if not self._client:
            await self.initialize()

        try:
            response = await self._client.messages.create(
                model=kwargs.get("model", self.config.model),
                max_tokens=kwargs.get("max_tokens", self.config.max_tokens),
                temperature=kwargs.get("temperature", self.config.temperature),
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            raise ThrottledError(f"Claude rate limit: {e}") from e
        except anthropic.APIConnectionError as e:
            raise TransientCallError(f"Claude connection error: {e}") from e
        except anthropic.InternalServerError as e:
            raise TransientCallError(f"Claude server error ({e.status_code}): {e}") from e
        except anthropic.APIStatusError as e:
            raise FatalCallError(f"Claude API error ({e.status_code}): {e}") from e

        text_blocks = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        if not text_blocks:
            raise FatalCallError("Claude returned no text content")

        return AIResponse(
            content=text_blocks[0],
            model=response.model,
            provider=self.provider_type,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens
            },
            finish_reason=response.stop_reason,
            raw_response=response
        )
