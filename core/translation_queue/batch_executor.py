"""
Batch Executor
Translation Queue - Adaptive Execution

Runs the work-units of one job against the translation provider with
adaptive parallelism. Chunk sizes come from the RateLimitController and
are re-derived after every chunk.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

from config.constants import (
    CALL_DELAY_SECONDS,
    CALL_TIMEOUT_SECONDS,
    CHUNK_DELAY_SECONDS,
    MAX_CALL_RETRIES,
    THROTTLED_CALL_DELAY_SECONDS,
    THROTTLED_CHUNK_DELAY_SECONDS,
)
from config.logging_config import get_logger

from .errors import FatalCallError, ThrottledError, TransientCallError
from .rate_limiter import RateLimitController

logger = get_logger(__name__)


ProgressSink = Callable[[int, int, str], None]
Sleeper = Callable[[float], Awaitable[None]]


class Translator(Protocol):
    """The single external-call primitive"""

    async def translate(self, source_text: str, target_language: str, context: str = "") -> str:
        ...


@dataclass
class WorkUnit:
    """
    One source item into one target language.

    fields are sent to the provider, verbatim fields are copied as-is,
    and a unit with existing set is a pass-through that makes no calls.
    """
    source_id: str
    target_language: str
    fields: Dict[str, str] = field(default_factory=dict)
    contexts: Dict[str, str] = field(default_factory=dict)
    verbatim: Dict[str, str] = field(default_factory=dict)
    existing: Optional[Dict[str, str]] = None

    @property
    def is_pass_through(self) -> bool:
        return self.existing is not None


@dataclass
class UnitResult:
    source_id: str
    target_language: str
    fields: Dict[str, str]
    skipped: bool = False


@dataclass
class ExecutorConfig:
    """Executor timing and retry budget"""
    max_retries: int = MAX_CALL_RETRIES
    call_timeout_seconds: float = CALL_TIMEOUT_SECONDS
    call_delay_seconds: float = CALL_DELAY_SECONDS
    throttled_call_delay_seconds: float = THROTTLED_CALL_DELAY_SECONDS
    chunk_delay_seconds: float = CHUNK_DELAY_SECONDS
    throttled_chunk_delay_seconds: float = THROTTLED_CHUNK_DELAY_SECONDS

    @classmethod
    def from_settings(cls, settings) -> "ExecutorConfig":
        return cls(
            max_retries=settings.max_call_retries,
            call_timeout_seconds=settings.call_timeout_seconds,
            call_delay_seconds=settings.call_delay_seconds,
            throttled_call_delay_seconds=settings.throttled_call_delay_seconds,
            chunk_delay_seconds=settings.chunk_delay_seconds,
            throttled_chunk_delay_seconds=settings.throttled_chunk_delay_seconds,
        )


class BatchExecutor:
    """
    Executes work-units in chunks sized by the controller.

    - Parallel(n): up to n units concurrently; units that hit a throttle
      signal are re-run one by one with an inter-call delay
    - Sequential / OneAtATime: one unit at a time, delay grows while throttled
    - After each chunk: record_success() if no throttle event happened
      during the chunk, then report progress

    Any non-throttle failure that survives the retry budget aborts the run.
    """

    def __init__(
        self,
        translator: Translator,
        controller: RateLimitController,
        config: Optional[ExecutorConfig] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.translator = translator
        self.controller = controller
        self.config = config or ExecutorConfig()
        self._sleep = sleep

    async def execute(
        self,
        units: List[WorkUnit],
        progress: Optional[ProgressSink] = None,
    ) -> List[UnitResult]:
        """
        Run all work-units.

        Returns:
            One UnitResult per unit, in input order

        Raises:
            FatalCallError: a unit failed permanently
        """
        total = len(units)
        results: List[Optional[UnitResult]] = [None] * total
        done = 0

        pending: List[int] = []
        for index, unit in enumerate(units):
            if unit.is_pass_through:
                results[index] = UnitResult(
                    unit.source_id, unit.target_language, dict(unit.existing), skipped=True
                )
                done += 1
            else:
                pending.append(index)

        if done:
            logger.info(f"Skipping {done} work-units that are already translated")
            self._report(progress, done, total, f"Skipped {done} existing translations")

        position = 0
        while position < len(pending):
            plan = self.controller.recommend_concurrency()
            chunk = pending[position:position + plan.batch_size]
            position += len(chunk)

            throttles_before = self.controller.state.total_throttle_events
            logger.info(
                f"Dispatching chunk of {len(chunk)} work-units ({plan.mode.value}), "
                f"{len(pending) - position} remaining"
            )

            if plan.is_parallel:
                await self._run_parallel(units, chunk, results)
            else:
                await self._run_sequential(units, chunk, results)

            if self.controller.state.total_throttle_events == throttles_before:
                self.controller.record_success()

            done += len(chunk)
            self._report(progress, done, total, f"Translated {done} of {total}")

            if position < len(pending):
                await self._sleep(self._chunk_delay())

        return results

    # =========================================
    # Chunk strategies
    # =========================================

    async def _run_parallel(self, units: List[WorkUnit], chunk: List[int], results: List):
        outcomes = await asyncio.gather(
            *(self._run_unit(units[i], retry_throttle=False) for i in chunk),
            return_exceptions=True,
        )

        throttled = []
        for index, outcome in zip(chunk, outcomes):
            if isinstance(outcome, ThrottledError):
                throttled.append(index)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[index] = outcome

        if throttled:
            logger.warning(
                f"Parallel chunk throttled, retrying {len(throttled)} work-units sequentially"
            )
            await self._sleep(self._call_delay())
            await self._run_sequential(units, throttled, results)

    async def _run_sequential(self, units: List[WorkUnit], chunk: List[int], results: List):
        for n, index in enumerate(chunk):
            if n:
                await self._sleep(self._call_delay())
            results[index] = await self._run_unit(units[index], retry_throttle=True)

    # =========================================
    # Units and calls
    # =========================================

    async def _run_unit(self, unit: WorkUnit, retry_throttle: bool) -> UnitResult:
        translated: Dict[str, str] = dict(unit.verbatim)
        for key, text in unit.fields.items():
            if not text or not text.strip():
                translated[key] = text
                continue
            translated[key] = await self._call(
                text,
                unit.target_language,
                unit.contexts.get(key, ""),
                retry_throttle=retry_throttle,
            )
        return UnitResult(unit.source_id, unit.target_language, translated)

    async def _call(
        self,
        text: str,
        target_language: str,
        context: str,
        retry_throttle: bool = True,
    ) -> str:
        """One provider call with wait, timeout and bounded retries"""
        retries = 0
        while True:
            wait = self.controller.should_wait_before_call()
            if wait > 0:
                logger.info(f"Throttled, waiting {wait:.1f}s before next call")
                await self._sleep(wait)

            try:
                return await asyncio.wait_for(
                    self.translator.translate(text, target_language, context),
                    timeout=self.config.call_timeout_seconds,
                )
            except asyncio.TimeoutError:
                raise FatalCallError(
                    f"Translation to {target_language} timed out after "
                    f"{self.config.call_timeout_seconds}s"
                )
            except ThrottledError as e:
                self.controller.record_throttle_event()
                if not retry_throttle:
                    raise
                if retries >= self.config.max_retries:
                    raise FatalCallError(
                        f"Translation to {target_language} still throttled after "
                        f"{retries} retries: {e}"
                    ) from e
            except TransientCallError as e:
                if retries >= self.config.max_retries:
                    raise FatalCallError(
                        f"Translation to {target_language} failed after "
                        f"{retries} retries: {e}"
                    ) from e
                logger.warning(
                    f"Transient error for {target_language}: {e} "
                    f"(retry {retries + 1}/{self.config.max_retries})"
                )

            delay = self.controller.retry_delay(retries)
            retries += 1
            await self._sleep(delay)

    # =========================================
    # Helpers
    # =========================================

    def _call_delay(self) -> float:
        state = self.controller.state
        if state.throttled:
            return self.config.throttled_call_delay_seconds * state.backoff_multiplier
        return self.config.call_delay_seconds

    def _chunk_delay(self) -> float:
        if self.controller.state.throttled:
            return self.config.throttled_chunk_delay_seconds
        return self.config.chunk_delay_seconds

    @staticmethod
    def _report(progress: Optional[ProgressSink], done: int, total: int, message: str):
        if progress:
            progress(done, total, message)

