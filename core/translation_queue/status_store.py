"""
Status Store & Retention Sweeper
Translation Queue - Terminal Records

Completed and failed jobs stay queryable for the retention window, then
are dropped. Expiry is checked lazily on lookup and periodically by the
sweeper.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, Optional

from config.constants import RETENTION_SECONDS, SWEEP_INTERVAL_SECONDS
from config.logging_config import get_logger

from .job import JobStatus, TranslationJob

logger = get_logger(__name__)


class StatusStore:
    """Holds terminal job records for a bounded retention window"""

    def __init__(
        self,
        retention: timedelta = timedelta(seconds=RETENTION_SECONDS),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.retention = retention
        self._clock = clock
        self._jobs: Dict[str, TranslationJob] = {}

    def add(self, job: TranslationJob):
        if job.status not in (JobStatus.COMPLETED, JobStatus.FAILED):
            raise ValueError(f"Only completed or failed jobs are retained, got {job.status.value}")
        self._jobs[job.id] = job

    def get(self, job_id: str) -> Optional[TranslationJob]:
        job = self._jobs.get(job_id)
        if job and self._is_expired(job, self._clock()):
            del self._jobs[job_id]
            return None
        return job

    def purge_expired(self) -> int:
        """Drop expired records, returns how many were removed"""
        now = self._clock()
        expired = [job_id for job_id, job in self._jobs.items() if self._is_expired(job, now)]
        for job_id in expired:
            del self._jobs[job_id]
        return len(expired)

    def counts(self) -> Dict[str, int]:
        completed = sum(1 for job in self if job.status is JobStatus.COMPLETED)
        return {"completed": completed, "failed": len(self._jobs) - completed}

    def _is_expired(self, job: TranslationJob, now: datetime) -> bool:
        finished = job.finished_at
        return finished is not None and now - finished > self.retention

    def __iter__(self) -> Iterator[TranslationJob]:
        return iter(list(self._jobs.values()))

    def __len__(self) -> int:
        return len(self._jobs)


class RetentionSweeper:
    """
    Background task that purges expired records every interval seconds.

    Usage:
        sweeper = RetentionSweeper(store)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, store: StatusStore, interval: float = SWEEP_INTERVAL_SECONDS):
        self.store = store
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def sweep(self) -> int:
        removed = self.store.purge_expired()
        if removed:
            logger.info(f"Purged {removed} expired job records ({len(self.store)} retained)")
        return removed

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.sweep()
