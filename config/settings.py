#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    AVERAGE_JOB_SECONDS,
    CALL_DELAY_SECONDS,
    CALL_TIMEOUT_SECONDS,
    CHUNK_DELAY_SECONDS,
    CONTENT_API_BATCH_SIZE,
    CONTENT_API_FALLBACK_BATCH_SIZE,
    CONTENT_API_TIMEOUT,
    CONTENT_API_URL,
    COOLDOWN_BASE_SECONDS,
    INITIAL_BATCH_SIZE,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    MAX_BACKOFF_MULTIPLIER,
    MAX_CALL_RETRIES,
    QUEUE_IDLE_POLL_SECONDS,
    QUEUE_MAX_CONCURRENT,
    RETENTION_SECONDS,
    RETRY_BASE_SECONDS,
    RETRY_JITTER_SECONDS,
    STOP_GRACE_SECONDS,
    SWEEP_INTERVAL_SECONDS,
    THROTTLE_CLEAR_SECONDS,
    THROTTLED_CALL_DELAY_SECONDS,
    THROTTLED_CHUNK_DELAY_SECONDS,
)


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== API Keys ==========
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # ========== Provider & Model ==========
    default_provider: str = "anthropic"  # anthropic | openai
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    llm_max_tokens: int = LLM_MAX_TOKENS
    llm_temperature: float = LLM_TEMPERATURE

    # ========== Content API ==========
    content_api_url: str = CONTENT_API_URL
    content_api_key: str = ""
    content_api_timeout: float = CONTENT_API_TIMEOUT
    content_api_batch_size: int = CONTENT_API_BATCH_SIZE
    content_api_fallback_batch_size: int = CONTENT_API_FALLBACK_BATCH_SIZE

    # ========== Scheduler ==========
    queue_max_concurrent: int = QUEUE_MAX_CONCURRENT
    queue_idle_poll_seconds: float = QUEUE_IDLE_POLL_SECONDS
    average_job_seconds: float = AVERAGE_JOB_SECONDS
    retention_seconds: float = RETENTION_SECONDS
    sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS
    stop_grace_seconds: float = STOP_GRACE_SECONDS

    # ========== Rate Limiting ==========
    initial_batch_size: int = INITIAL_BATCH_SIZE
    cooldown_base_seconds: float = COOLDOWN_BASE_SECONDS
    throttle_clear_seconds: float = THROTTLE_CLEAR_SECONDS
    max_backoff_multiplier: float = MAX_BACKOFF_MULTIPLIER

    # ========== External Calls ==========
    retry_base_seconds: float = RETRY_BASE_SECONDS
    retry_jitter_seconds: float = RETRY_JITTER_SECONDS
    max_call_retries: int = MAX_CALL_RETRIES
    call_timeout_seconds: float = CALL_TIMEOUT_SECONDS
    call_delay_seconds: float = CALL_DELAY_SECONDS
    throttled_call_delay_seconds: float = THROTTLED_CALL_DELAY_SECONDS
    chunk_delay_seconds: float = CHUNK_DELAY_SECONDS
    throttled_chunk_delay_seconds: float = THROTTLED_CHUNK_DELAY_SECONDS

    def get_api_key(self, provider: str) -> str:
        """Get API key for a provider ("" when unset)"""
        if provider == "openai":
            return self.openai_api_key
        elif provider == "anthropic":
            return self.anthropic_api_key
        else:
            raise ValueError(f"Unsupported provider: {provider}")

    def available_providers(self) -> list:
        """Providers with credentials, default provider first"""
        ordered = [self.default_provider] + [
            p for p in ("anthropic", "openai") if p != self.default_provider
        ]
        return [p for p in ordered if p in ("anthropic", "openai") and self.get_api_key(p)]


# Global settings instance
settings = Settings()
