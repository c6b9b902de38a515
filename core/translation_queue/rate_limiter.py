"""
Rate-Limit Controller
Translation Queue - Adaptive Execution

Tracks provider back-pressure for the whole process and turns it into
call delays and a concurrency recommendation for the batch executor.
"""

import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Any, Optional

from config.constants import (
    BACKOFF_DECAY,
    BACKOFF_GROWTH,
    COOLDOWN_BASE_SECONDS,
    INITIAL_BATCH_SIZE,
    MAX_BACKOFF_MULTIPLIER,
    RETRY_BASE_SECONDS,
    RETRY_JITTER_SECONDS,
    THROTTLE_CLEAR_SECONDS,
)
from config.logging_config import get_logger

logger = get_logger(__name__)


class ConcurrencyMode(Enum):
    """Execution strategy for the next chunk"""
    PARALLEL = "parallel"            # up to batch_size concurrent units
    SEQUENTIAL = "sequential"        # one by one, normal delay
    ONE_AT_A_TIME = "one_at_a_time"  # one by one while throttled


@dataclass(frozen=True)
class ConcurrencyPlan:
    """Recommendation returned by RateLimitController.recommend_concurrency"""
    mode: ConcurrencyMode
    batch_size: int

    @property
    def is_parallel(self) -> bool:
        return self.mode is ConcurrencyMode.PARALLEL


@dataclass
class RateLimitConfig:
    """Controller tuning"""
    initial_batch_size: int = INITIAL_BATCH_SIZE
    cooldown_base_seconds: float = COOLDOWN_BASE_SECONDS
    throttle_clear_seconds: float = THROTTLE_CLEAR_SECONDS
    max_multiplier: float = MAX_BACKOFF_MULTIPLIER
    growth: float = BACKOFF_GROWTH
    decay: float = BACKOFF_DECAY
    retry_base_seconds: float = RETRY_BASE_SECONDS
    retry_jitter_seconds: float = RETRY_JITTER_SECONDS

    @classmethod
    def from_settings(cls, settings) -> "RateLimitConfig":
        return cls(
            initial_batch_size=settings.initial_batch_size,
            cooldown_base_seconds=settings.cooldown_base_seconds,
            throttle_clear_seconds=settings.throttle_clear_seconds,
            max_multiplier=settings.max_backoff_multiplier,
            retry_base_seconds=settings.retry_base_seconds,
            retry_jitter_seconds=settings.retry_jitter_seconds,
        )


@dataclass
class RateLimitState:
    """Process-wide throttling state"""
    throttled: bool = False
    consecutive_throttle_events: int = 0
    total_throttle_events: int = 0
    last_throttle_at: Optional[float] = None
    backoff_multiplier: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "throttled": self.throttled,
            "consecutive_throttle_events": self.consecutive_throttle_events,
            "total_throttle_events": self.total_throttle_events,
            "backoff_multiplier": round(self.backoff_multiplier, 3),
        }


class RateLimitController:
    """
    Single owner of batch-size and backoff policy.

    - record_throttle_event(): enter throttled state, grow multiplier (capped)
    - record_success(): decay multiplier, clear throttled after a quiet
      period, then ramp batch size back up one step per clean chunk
    - recommend_concurrency(): read at chunk boundaries only

    Usage:
        controller = RateLimitController()
        wait = controller.should_wait_before_call()
        plan = controller.recommend_concurrency()
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or RateLimitConfig()
        self.state = RateLimitState()
        self._clock = clock
        self._batch_size = max(1, self.config.initial_batch_size)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def should_wait_before_call(self) -> float:
        """Seconds to wait before the next external call (0 if not throttled)"""
        if not self.state.throttled or self.state.last_throttle_at is None:
            return 0.0
        elapsed = self._clock() - self.state.last_throttle_at
        backoff = self.config.cooldown_base_seconds * self.state.backoff_multiplier
        return max(0.0, backoff - elapsed)

    def record_throttle_event(self):
        """Provider returned a throttle signal"""
        state = self.state
        state.throttled = True
        state.consecutive_throttle_events += 1
        state.total_throttle_events += 1
        state.last_throttle_at = self._clock()
        state.backoff_multiplier = min(
            state.backoff_multiplier * self.config.growth,
            self.config.max_multiplier,
        )
        self._batch_size = 1

        logger.warning(
            f"Throttled by provider ({state.total_throttle_events} so far), "
            f"backoff x{state.backoff_multiplier:.1f}"
        )

    def record_success(self):
        """A chunk finished without any throttle signal"""
        state = self.state
        state.backoff_multiplier = max(1.0, state.backoff_multiplier * self.config.decay)
        state.consecutive_throttle_events = 0

        if state.throttled:
            elapsed = self._clock() - (state.last_throttle_at or 0.0)
            if elapsed > self.config.throttle_clear_seconds:
                state.throttled = False
                logger.info("Rate limits cleared, ramping back up")
        elif self._batch_size < self.config.initial_batch_size:
            self._batch_size += 1
            logger.info(f"Batch size increased to {self._batch_size}")

    def recommend_concurrency(self) -> ConcurrencyPlan:
        """Execution strategy for the next chunk"""
        if self.state.throttled:
            return ConcurrencyPlan(ConcurrencyMode.ONE_AT_A_TIME, 1)
        if self._batch_size <= 1:
            return ConcurrencyPlan(ConcurrencyMode.SEQUENTIAL, 1)
        return ConcurrencyPlan(ConcurrencyMode.PARALLEL, self._batch_size)

    def retry_delay(self, retry_count: int) -> float:
        """Exponential backoff with jitter for the retry_count-th retry"""
        base = self.config.retry_base_seconds * (2 ** retry_count) * self.state.backoff_multiplier
        return base + random.uniform(0, self.config.retry_jitter_seconds)

    def snapshot(self) -> Dict[str, Any]:
        data = self.state.to_dict()
        data["batch_size"] = self._batch_size
        data["mode"] = self.recommend_concurrency().mode.value
        return data
