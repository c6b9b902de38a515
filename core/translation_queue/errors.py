"""
Error taxonomy for the translation queue.

Retryable errors (ThrottledError, TransientCallError) are absorbed by the
batch executor; they only reach a job record once the retry budget is spent,
at which point they surface as FatalCallError.
"""

from typing import Optional


class TranslationQueueError(Exception):
    """Base class for all queue errors"""
    pass


class ThrottledError(TranslationQueueError):
    """Provider signalled rate limiting (HTTP 429)"""
    pass


class TransientCallError(TranslationQueueError):
    """Retryable call failure (network error, 5xx)"""
    pass


class FatalCallError(TranslationQueueError):
    """Unrecoverable call failure; aborts the enclosing job"""
    pass


class PersistError(FatalCallError):
    """Downstream content API rejected the update"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JobValidationError(TranslationQueueError):
    """Submission rejected before it enters the queue"""
    pass


class JobNotFoundError(TranslationQueueError):
    """Unknown (or purged) job id"""

    def __init__(self, job_id: str):
        super().__init__(f"Translation job not found: {job_id}")
        self.job_id = job_id


class CannotCancelError(TranslationQueueError):
    """Job is no longer queued"""

    def __init__(self, job_id: str, status: str):
        super().__init__(f"Translation job {job_id} is {status} and cannot be cancelled")
        self.job_id = job_id
        self.status = status
