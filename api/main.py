#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for the translation queue.

Usage:
    # Start server
    uvicorn api.main:app --host 0.0.0.0 --port 8000

    # Or run directly
    python -m api.main

Key Endpoints:
    POST   /api/translation/category/{uuid}        - Queue category translation
    POST   /api/translation/course/{uuid}          - Queue course translation
    POST   /api/translation/quiz/{uuid}            - Queue quiz translation
    POST   /api/translation/quiz/{uuid}/questions  - Queue question set translation
    GET    /api/translation/status/{queue_id}      - Job status
    GET    /api/translation/queue-status           - Queue overview
    DELETE /api/translation/cancel/{queue_id}      - Cancel a queued job
    GET    /api/health                             - Scheduler and rate-limit state

Configuration:
    Environment variables (or .env):
    - ANTHROPIC_API_KEY / OPENAI_API_KEY: provider credentials
    - DEFAULT_PROVIDER: anthropic | openai
    - CONTENT_API_URL / CONTENT_API_KEY: downstream content API
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from ai_providers import create_translation_provider
from api.content_client import ContentApiClient
from api.translation_router import router as translation_router
from config.logging_config import get_logger
from core.translation_queue import (
    BatchExecutor,
    ExecutorConfig,
    RateLimitConfig,
    RateLimitController,
    SchedulerConfig,
    TranslationJobRunner,
    TranslationScheduler,
)

logger = get_logger(__name__)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")
    if origin.strip()
]


def build_scheduler(settings, content_client: ContentApiClient):
    """
    Wire provider, rate-limit controller, executor and runner into a scheduler.

    Returns:
        (scheduler, controller)
    """
    provider = create_translation_provider(settings)
    controller = RateLimitController(RateLimitConfig.from_settings(settings))
    executor = BatchExecutor(provider, controller, ExecutorConfig.from_settings(settings))
    runner = TranslationJobRunner(executor, content_client)
    scheduler = TranslationScheduler(runner, SchedulerConfig.from_settings(settings))
    return scheduler, controller


def create_app(
    scheduler: Optional[TranslationScheduler] = None,
    content_client: Optional[ContentApiClient] = None,
    controller: Optional[RateLimitController] = None,
) -> FastAPI:
    """
    Application factory.

    Components not passed in are built from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_client = False
        if app.state.scheduler is None:
            from config.settings import settings

            if app.state.content_client is None:
                app.state.content_client = ContentApiClient.from_settings(settings)
                owns_client = True
            app.state.scheduler, app.state.rate_limiter = build_scheduler(
                settings, app.state.content_client
            )

        await app.state.scheduler.start()
        try:
            yield
        finally:
            await app.state.scheduler.stop()
            if owns_client:
                await app.state.content_client.aclose()

    app = FastAPI(
        title="Translation Queue API",
        description="Queued, rate-limit aware translation of categories, courses, quizzes and questions",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.scheduler = scheduler
    app.state.content_client = content_client
    app.state.rate_limiter = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(translation_router)

    @app.get("/api/health")
    async def health(request: Request):
        """Scheduler and rate-limit state"""
        state = request.app.state
        rate_limiter = state.rate_limiter
        return {
            "status": "ok",
            "scheduler_running": bool(state.scheduler and state.scheduler.is_running),
            "queue": state.scheduler.list_queue()["stats"] if state.scheduler else None,
            "rate_limit": rate_limiter.snapshot() if rate_limiter else None,
        }

    return app


app = create_app()


def main():
    import uvicorn

    logger.info("Starting Translation Queue API Server...")
    logger.info("API Documentation: http://localhost:8000/docs")

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")


if __name__ == "__main__":
    main()
