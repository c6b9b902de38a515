"""
Translation Scheduler
Translation Queue - Priority Queue & Execution Loop

Orders pending jobs by priority then submission time, admits them into a
bounded number of execution slots and keeps position/ETA current.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol

from config.constants import (
    AVERAGE_JOB_SECONDS,
    QUEUE_IDLE_POLL_SECONDS,
    QUEUE_MAX_CONCURRENT,
    RETENTION_SECONDS,
    STOP_GRACE_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)
from config.logging_config import get_logger

from .batch_executor import ProgressSink
from .errors import CannotCancelError, JobNotFoundError
from .job import JobKind, JobPriority, JobStatus, Payload, TranslationJob, build_payload
from .status_store import RetentionSweeper, StatusStore

logger = get_logger(__name__)


class JobRunner(Protocol):
    async def run(self, job: TranslationJob, progress: ProgressSink) -> Dict[str, Any]:
        ...


@dataclass
class SchedulerConfig:
    """Scheduler configuration"""
    max_concurrent: int = QUEUE_MAX_CONCURRENT
    idle_poll_seconds: float = QUEUE_IDLE_POLL_SECONDS
    average_job_seconds: float = AVERAGE_JOB_SECONDS
    retention_seconds: float = RETENTION_SECONDS
    sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS
    stop_grace_seconds: float = STOP_GRACE_SECONDS

    @classmethod
    def from_settings(cls, settings) -> "SchedulerConfig":
        return cls(
            max_concurrent=settings.queue_max_concurrent,
            idle_poll_seconds=settings.queue_idle_poll_seconds,
            average_job_seconds=settings.average_job_seconds,
            retention_seconds=settings.retention_seconds,
            sweep_interval_seconds=settings.sweep_interval_seconds,
            stop_grace_seconds=settings.stop_grace_seconds,
        )


class TranslationScheduler:
    """
    Priority queue with an explicit execution loop.

    Features:
    - High priority jobs go after existing high jobs, before normal ones
    - At most max_concurrent jobs processing at once
    - Cancel only while queued
    - Position computed on demand, ETAs recomputed on every queue change
    - Failed jobs never stop the loop

    Usage:
        scheduler = TranslationScheduler(runner)
        await scheduler.start()
        job_id = scheduler.enqueue(JobKind.QUIZ, payload, JobPriority.HIGH)
        scheduler.get_status(job_id)
        await scheduler.stop()
    """

    def __init__(
        self,
        runner: JobRunner,
        config: Optional[SchedulerConfig] = None,
        store: Optional[StatusStore] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.runner = runner
        self.config = config or SchedulerConfig()
        self._clock = clock
        self.store = store or StatusStore(
            retention=timedelta(seconds=self.config.retention_seconds),
            clock=clock,
        )
        self.sweeper = RetentionSweeper(self.store, self.config.sweep_interval_seconds)

        self._pending: List[TranslationJob] = []
        self._in_flight: Dict[str, TranslationJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

        self._wakeup = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    # =========================================
    # Submission & queries
    # =========================================

    def submit(
        self,
        kind: JobKind,
        data: Dict[str, Any],
        priority: JobPriority = JobPriority.NORMAL,
    ) -> str:
        """Validate raw request data and enqueue it"""
        return self.enqueue(kind, build_payload(kind, data), priority)

    def enqueue(
        self,
        kind: JobKind,
        payload: Payload,
        priority: JobPriority = JobPriority.NORMAL,
    ) -> str:
        """
        Add a job to the pending sequence.

        Returns:
            The new job id
        """
        job = TranslationJob(kind=kind, payload=payload, priority=priority, created_at=self._clock())

        if priority is JobPriority.HIGH:
            index = sum(1 for pending in self._pending if pending.priority is JobPriority.HIGH)
            self._pending.insert(index, job)
        else:
            self._pending.append(job)

        self._recompute_estimates()
        self._wakeup.set()

        logger.info(
            f"Queued {kind.value} job {job.id} ({priority.value} priority), "
            f"position {self._position(job)}/{len(self._pending)}, "
            f"ETA {job.estimated_start_time.isoformat() if job.estimated_start_time else 'now'}"
        )
        return job.id

    def get_job(self, job_id: str) -> Optional[TranslationJob]:
        if job_id in self._in_flight:
            return self._in_flight[job_id]
        for job in self._pending:
            if job.id == job_id:
                return job
        return self.store.get(job_id)

    def get_status(self, job_id: str) -> Dict[str, Any]:
        """
        Status snapshot of a job.

        Raises:
            JobNotFoundError: unknown, cancelled or purged id
        """
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status is JobStatus.QUEUED:
            return job.to_snapshot(self._position(job), len(self._pending))
        return job.to_snapshot()

    def pending_ids(self) -> List[str]:
        return [job.id for job in self._pending]

    def list_queue(self) -> Dict[str, Any]:
        self.store.purge_expired()
        counts = self.store.counts()
        total = len(self._pending)
        return {
            "pending": [
                job.to_snapshot(position, total)
                for position, job in enumerate(self._pending, start=1)
            ],
            "inFlight": [job.to_snapshot() for job in self._in_flight.values()],
            "stats": {
                "queued": total,
                "processing": len(self._in_flight),
                "completed": counts["completed"],
                "failed": counts["failed"],
            },
        }

    def cancel(self, job_id: str) -> bool:
        """
        Cancel a queued job.

        Raises:
            CannotCancelError: job is processing or already finished
            JobNotFoundError: unknown id
        """
        for job in self._pending:
            if job.id == job_id:
                self._pending.remove(job)
                job.mark_cancelled()
                self._recompute_estimates()
                logger.info(f"Cancelled job {job_id}, {len(self._pending)} still queued")
                return True

        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        raise CannotCancelError(job_id, job.status.value)

    # =========================================
    # Lifecycle
    # =========================================

    async def start(self):
        """Start the execution loop and the retention sweeper"""
        if self.is_running:
            return
        self._stopping = False
        self.sweeper.start()
        self._loop_task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Translation scheduler started (max {self.config.max_concurrent} concurrent job(s))"
        )

    async def stop(self, grace: Optional[float] = None):
        """
        Stop admitting jobs, wait for the loop, give in-flight jobs a grace
        period, then cancel what is left. Pending jobs are dropped.
        """
        grace = self.config.stop_grace_seconds if grace is None else grace
        self._stopping = True
        self._wakeup.set()

        if self._loop_task:
            await self._loop_task
            self._loop_task = None

        tasks = list(self._tasks.values())
        if tasks:
            logger.info(f"Waiting up to {grace}s for {len(tasks)} in-flight job(s)")
            _, still_running = await asyncio.wait(tasks, timeout=grace)
            for task in still_running:
                task.cancel()
            if still_running:
                await asyncio.gather(*still_running, return_exceptions=True)

        await self.sweeper.stop()
        logger.info(f"Translation scheduler stopped ({len(self._pending)} pending job(s) dropped)")

    async def _run_loop(self):
        while not self._stopping:
            self._admit()
            self._wakeup.clear()
            if self._stopping:
                break
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.config.idle_poll_seconds)
            except asyncio.TimeoutError:
                pass

    def _admit(self):
        while self._pending and len(self._in_flight) < self.config.max_concurrent:
            job = self._pending.pop(0)
            job.mark_processing(self._clock())
            self._in_flight[job.id] = job
            self._tasks[job.id] = asyncio.create_task(self._execute(job))
            self._recompute_estimates()
            logger.info(f"Started {job.kind.value} job {job.id} ({job.progress.total} work-units)")

    async def _execute(self, job: TranslationJob):
        def progress(current: int, total: int, message: str):
            job.progress.update(current, total, message)
            self._recompute_estimates()

        try:
            result = await self.runner.run(job, progress)
            job.mark_completed(result, self._clock())
            logger.info(f"Completed job {job.id} in {job.duration_ms}ms")
        except asyncio.CancelledError:
            job.mark_failed("Translation interrupted by shutdown", self._clock())
            logger.warning(f"Job {job.id} interrupted by shutdown")
            raise
        except Exception as e:
            job.mark_failed(str(e), self._clock())
            logger.error(f"Job {job.id} failed after {job.duration_ms}ms: {e}")
        finally:
            self._in_flight.pop(job.id, None)
            self._tasks.pop(job.id, None)
            if job.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                self.store.add(job)
            self._recompute_estimates()
            self._wakeup.set()

    # =========================================
    # Position & ETA
    # =========================================

    def _position(self, job: TranslationJob) -> int:
        return self._pending.index(job) + 1

    def _slot_remaining_seconds(self) -> float:
        if len(self._in_flight) < self.config.max_concurrent:
            return 0.0
        average = self.config.average_job_seconds
        return min(
            average * (1 - job.progress.percentage / 100)
            for job in self._in_flight.values()
        )

    def _recompute_estimates(self):
        now = self._clock()
        average = self.config.average_job_seconds
        remaining = self._slot_remaining_seconds()
        slots = max(1, self.config.max_concurrent)
        for index, job in enumerate(self._pending):
            wait = remaining + (index // slots) * average
            job.estimated_start_time = now + timedelta(seconds=wait)
