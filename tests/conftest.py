"""
Pytest configuration and shared fixtures for translation queue tests.
"""
import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.translation_queue import (
    BatchExecutor,
    ExecutorConfig,
    RateLimitConfig,
    RateLimitController,
    ThrottledError,
    TransientCallError,
    FatalCallError,
)
from core.translation_queue.job import JobKind


# ============================================================================
# Fakes
# ============================================================================

class FakeTime:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeDateClock:
    """datetime.now replacement that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeTranslator:
    """
    Translator that prefixes text with the language code.

    throttle_calls / transient_calls / fatal_calls hold 1-based call numbers
    that raise the matching error instead of translating.
    """

    def __init__(
        self,
        throttle_calls=(),
        transient_calls=(),
        fatal_calls=(),
        delay: float = 0.0,
    ):
        self.throttle_calls = set(throttle_calls)
        self.transient_calls = set(transient_calls)
        self.fatal_calls = set(fatal_calls)
        self.delay = delay
        self.calls: List[tuple] = []

    async def translate(self, source_text: str, target_language: str, context: str = "") -> str:
        self.calls.append((source_text, target_language, context))
        number = len(self.calls)
        if self.delay:
            await asyncio.sleep(self.delay)
        if number in self.throttle_calls:
            raise ThrottledError("429 Too Many Requests")
        if number in self.transient_calls:
            raise TransientCallError("503 Service Unavailable")
        if number in self.fatal_calls:
            raise FatalCallError("Malformed response from provider")
        return f"[{target_language}] {source_text}"


class FakeContentStore:
    """In-memory content API."""

    def __init__(self, entities: Optional[Dict[str, Dict[str, Any]]] = None):
        self.entities = entities or {}
        self.updates: List[tuple] = []
        self.question_uploads: List[tuple] = []

    async def fetch_entity(self, kind: JobKind, uuid: str) -> Dict[str, Any]:
        if uuid not in self.entities:
            raise FatalCallError(f"{kind.value.capitalize()} not found: {uuid}")
        return self.entities[uuid]

    async def update_entity(self, kind: JobKind, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.updates.append((kind, payload))
        return {"status": "00", "message": "Updated"}

    async def update_quiz_questions(self, quiz_uuid: str, questions: List[Dict[str, Any]]) -> Dict[str, Any]:
        self.question_uploads.append((quiz_uuid, questions))
        return {"uploaded": len(questions), "batches": 1}


def make_question(uuid: str, text: str = "What is 2 + 2?", translations=None) -> Dict[str, Any]:
    """Raw question as a client would submit it."""
    question = {
        "uuid": uuid,
        "questionType": "single-choice",
        "difficulty": "easy",
        "points": 1,
    }
    if translations is not None:
        question["translations"] = translations
    else:
        question.update({
            "questionText": text,
            "options": {"option_1": "Three", "option_2": "Four", "option_3": "4"},
            "correctAnswer": "option_2",
            "explanation": "Two plus two equals four",
        })
    return question


async def wait_for_status(scheduler, job_id: str, statuses, timeout: float = 5.0) -> Dict[str, Any]:
    """Poll a scheduler until the job reaches one of the given statuses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        status = scheduler.get_status(job_id)
        if status["status"] in statuses:
            return status
        if loop.time() > deadline:
            raise AssertionError(f"Job {job_id} stuck in {status['status']}")
        await asyncio.sleep(0.01)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def date_clock():
    return FakeDateClock()


@pytest.fixture
def rate_config():
    """Controller config matching production defaults."""
    return RateLimitConfig(retry_jitter_seconds=0.0)


@pytest.fixture
def controller(rate_config, fake_time):
    return RateLimitController(rate_config, clock=fake_time.monotonic)


@pytest.fixture
def executor_config():
    return ExecutorConfig(call_timeout_seconds=5.0)


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def content_store():
    return FakeContentStore()


@pytest.fixture
def make_executor(controller, executor_config, fake_time):
    """Build an executor around a translator; sleeps advance fake time."""
    def _make(translator):
        return BatchExecutor(translator, controller, executor_config, sleep=fake_time.sleep)
    return _make


@pytest.fixture
def translator_factory():
    """FakeTranslator class, for tests that script errors."""
    return FakeTranslator


@pytest.fixture
def question_data():
    """Builder for raw question dicts."""
    return make_question


@pytest.fixture
def wait_status():
    """Async poller: await wait_status(scheduler, job_id, {"completed"})."""
    return wait_for_status
