"""
Translation Queue
Quiz content translation scheduling core

Runs category, course, quiz and question translation jobs against a
rate-limited LLM provider:
- Priority queue (high before normal, FIFO within priority)
- One job in flight at a time
- Adaptive batch execution that backs off when throttled
- Cancellation while queued
- Terminal records retained for one hour

Usage:
    from core.translation_queue import TranslationScheduler, JobKind, JobPriority

    scheduler = TranslationScheduler(runner)
    await scheduler.start()

    job_id = scheduler.submit(JobKind.QUIZ, {"uuid": quiz_uuid, "targetLanguages": ["fr"]})
    status = scheduler.get_status(job_id)
    print(f"Progress: {status['progress']['percentage']}%")
"""

from .errors import (
    TranslationQueueError,
    ThrottledError,
    TransientCallError,
    FatalCallError,
    PersistError,
    JobValidationError,
    JobNotFoundError,
    CannotCancelError,
)

from .rate_limiter import (
    ConcurrencyMode,
    ConcurrencyPlan,
    RateLimitConfig,
    RateLimitController,
    RateLimitState,
)

from .job import (
    JobKind,
    JobPriority,
    JobStatus,
    JobProgress,
    Question,
    QuestionTranslation,
    CategoryPayload,
    CoursePayload,
    QuizPayload,
    QuestionsPayload,
    TranslationJob,
    build_payload,
    validate_languages,
)

from .batch_executor import (
    BatchExecutor,
    ExecutorConfig,
    UnitResult,
    WorkUnit,
)

from .status_store import (
    RetentionSweeper,
    StatusStore,
)

from .scheduler import (
    SchedulerConfig,
    TranslationScheduler,
)

from .worker import TranslationJobRunner

__all__ = [
    # Errors
    "TranslationQueueError",
    "ThrottledError",
    "TransientCallError",
    "FatalCallError",
    "PersistError",
    "JobValidationError",
    "JobNotFoundError",
    "CannotCancelError",

    # Rate limiting
    "ConcurrencyMode",
    "ConcurrencyPlan",
    "RateLimitConfig",
    "RateLimitController",
    "RateLimitState",

    # Jobs
    "JobKind",
    "JobPriority",
    "JobStatus",
    "JobProgress",
    "Question",
    "QuestionTranslation",
    "CategoryPayload",
    "CoursePayload",
    "QuizPayload",
    "QuestionsPayload",
    "TranslationJob",
    "build_payload",
    "validate_languages",

    # Execution
    "BatchExecutor",
    "ExecutorConfig",
    "UnitResult",
    "WorkUnit",
    "TranslationJobRunner",

    # Scheduling
    "RetentionSweeper",
    "StatusStore",
    "SchedulerConfig",
    "TranslationScheduler",
]

__version__ = "1.0.0"
