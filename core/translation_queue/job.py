"""
Translation Job Definitions
Translation Queue - Job Records

Defines job kinds, payload variants, status, progress and the
submission-time validation that turns raw request data into a payload.
"""

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from config.constants import SIMPLE_JOB_TOTAL, SOURCE_LANGUAGE, SUPPORTED_LANGUAGES

from .errors import JobValidationError


# Option values that are numbers (optionally with a unit) or a single code token
_NUMERIC_OPTION = re.compile(r"^-?\d+(\.\d+)?(%|cm|m)?$")
_CODE_OPTION = re.compile(r"^[A-Za-z0-9]+$")


class JobKind(Enum):
    """What is being translated"""
    CATEGORY = "category"
    COURSE = "course"
    QUIZ = "quiz"
    QUESTIONS = "questions"


class JobPriority(Enum):
    """Job priority levels"""
    NORMAL = "normal"
    HIGH = "high"


class JobStatus(Enum):
    """Job status states"""
    QUEUED = "queued"             # In pending sequence
    PROCESSING = "processing"     # In the execution slot
    COMPLETED = "completed"       # Persisted downstream
    FAILED = "failed"             # Unrecoverable error
    CANCELLED = "cancelled"       # Removed before admission

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


def is_verbatim_option(value: str) -> bool:
    """True for option values copied as-is instead of translated"""
    text = value.strip()
    return bool(_NUMERIC_OPTION.match(text) or _CODE_OPTION.match(text))


# =========================================
# Payload variants
# =========================================

@dataclass
class QuestionTranslation:
    """One language version of a question"""
    language_code: str
    question_text: str = ""
    options: Dict[str, str] = field(default_factory=dict)
    correct_answer: List[str] = field(default_factory=list)
    explanation: str = ""
    uuid: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionTranslation":
        if not isinstance(data, dict):
            raise JobValidationError("Question translation must be an object")
        language_code = data.get("languageCode")
        if not language_code:
            raise JobValidationError("Question translation is missing languageCode")
        return cls(
            language_code=language_code,
            question_text=str(data.get("questionText") or ""),
            options=_normalize_options(data.get("options")),
            correct_answer=_as_answer_list(data.get("correctAnswer")),
            explanation=str(data.get("explanation") or ""),
            uuid=data.get("uuid"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "languageCode": self.language_code,
            "questionText": self.question_text,
            "options": dict(self.options),
            "correctAnswer": list(self.correct_answer),
            "explanation": self.explanation,
        }
        if self.uuid:
            data["uuid"] = self.uuid
        return data


@dataclass
class Question:
    """A quiz question with all of its language versions"""
    uuid: str
    translations: List[QuestionTranslation]
    question_type: str = "single-choice"
    difficulty: str = "medium"
    points: int = 1

    def source_translation(self) -> QuestionTranslation:
        """English version if present, else the first one"""
        for translation in self.translations:
            if translation.language_code == SOURCE_LANGUAGE:
                return translation
        return self.translations[0]

    def translation_for(self, language_code: str) -> Optional[QuestionTranslation]:
        for translation in self.translations:
            if translation.language_code == language_code:
                return translation
        return None

    def has_translation(self, language_code: str) -> bool:
        return self.translation_for(language_code) is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """Normalise a raw question, creating a default English version if needed"""
        if not isinstance(data, dict):
            raise JobValidationError("Each question must be an object")

        raw_translations = data.get("translations")
        if isinstance(raw_translations, list) and raw_translations:
            translations = [QuestionTranslation.from_dict(t) for t in raw_translations]
        else:
            translations = [
                QuestionTranslation(
                    language_code=SOURCE_LANGUAGE,
                    question_text=str(
                        data.get("questionText") or data.get("text") or "Question text not available"
                    ),
                    options=_normalize_options(data.get("options")),
                    correct_answer=_as_answer_list(data.get("correctAnswer")) or ["option_1"],
                    explanation=str(data.get("explanation") or "No explanation provided"),
                )
            ]

        return cls(
            uuid=data.get("uuid") or str(uuid.uuid4()),
            translations=translations,
            question_type=data.get("questionType") or "single-choice",
            difficulty=data.get("difficulty") or "medium",
            points=data.get("points") or 1,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "questionType": self.question_type,
            "difficulty": self.difficulty,
            "points": self.points,
            "translations": [t.to_dict() for t in self.translations],
        }


@dataclass
class CategoryPayload:
    uuid: str
    target_languages: List[str]


@dataclass
class CoursePayload:
    uuid: str
    target_languages: List[str]


@dataclass
class QuizPayload:
    uuid: str
    target_languages: List[str]


@dataclass
class QuestionsPayload:
    quiz_uuid: str
    target_languages: List[str]
    questions: List[Question]


Payload = Union[CategoryPayload, CoursePayload, QuizPayload, QuestionsPayload]

_ENTITY_PAYLOADS = {
    JobKind.CATEGORY: CategoryPayload,
    JobKind.COURSE: CoursePayload,
    JobKind.QUIZ: QuizPayload,
}


def _normalize_options(options: Any) -> Dict[str, str]:
    if not options:
        return {}
    if isinstance(options, list):
        return {f"option_{i}": str(value) for i, value in enumerate(options, start=1)}
    if isinstance(options, dict):
        return {str(key): str(value) for key, value in options.items()}
    raise JobValidationError("Question options must be an object or a list")


def _as_answer_list(answer: Any) -> List[str]:
    if answer is None or answer == "":
        return []
    if isinstance(answer, list):
        return [str(a) for a in answer]
    return [str(answer)]


def validate_languages(languages: Any) -> List[str]:
    """Check target languages against the supported set, keeping order"""
    if not isinstance(languages, list) or not languages:
        raise JobValidationError("targetLanguages must be a non-empty list")

    unsupported = [
        lang for lang in languages
        if not isinstance(lang, str) or lang not in SUPPORTED_LANGUAGES
    ]
    if unsupported:
        raise JobValidationError(
            f"Unsupported language codes: {', '.join(map(str, unsupported))}. "
            f"Supported: {', '.join(sorted(SUPPORTED_LANGUAGES))}"
        )

    seen = []
    for lang in languages:
        if lang not in seen:
            seen.append(lang)
    return seen


def build_payload(kind: JobKind, data: Dict[str, Any]) -> Payload:
    """
    Validate raw submission data and build the payload for a job kind.

    Args:
        kind: Job kind
        data: camelCase request data (uuid / quizUuid, targetLanguages, questions)

    Raises:
        JobValidationError: if anything is missing or unsupported
    """
    target_languages = validate_languages(data.get("targetLanguages"))

    if kind is JobKind.QUESTIONS:
        quiz_uuid = data.get("quizUuid")
        if not quiz_uuid:
            raise JobValidationError("quizUuid is required")
        raw_questions = data.get("questions")
        if not isinstance(raw_questions, list) or not raw_questions:
            raise JobValidationError("questions must be a non-empty list")
        questions = [Question.from_dict(q) for q in raw_questions]
        duplicates = _duplicate_uuids(questions)
        if duplicates:
            raise JobValidationError(f"Duplicate question uuids: {', '.join(map(str, duplicates))}")
        return QuestionsPayload(
            quiz_uuid=quiz_uuid,
            target_languages=target_languages,
            questions=questions,
        )

    entity_uuid = data.get("uuid")
    if not entity_uuid:
        raise JobValidationError(f"{kind.value} uuid is required")
    return _ENTITY_PAYLOADS[kind](uuid=entity_uuid, target_languages=target_languages)


def _duplicate_uuids(questions: List[Question]) -> List[str]:
    seen = set()
    duplicates = []
    for question in questions:
        if question.uuid in seen and question.uuid not in duplicates:
            duplicates.append(question.uuid)
        seen.add(question.uuid)
    return duplicates


def estimate_total(kind: JobKind, payload: Payload) -> int:
    """Progress total fixed at submission"""
    if kind is JobKind.QUESTIONS:
        return len(payload.questions) * len(payload.target_languages)
    return SIMPLE_JOB_TOTAL


# =========================================
# Job record
# =========================================

@dataclass
class JobProgress:
    """Tracks job progress"""
    current: int = 0
    total: int = 0
    message: str = "Waiting in queue"

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        # Round half up
        return min(100, int(math.floor(self.current * 100 / self.total + 0.5)))

    def update(self, current: int, total: Optional[int] = None, message: Optional[str] = None):
        """Update counters; current never moves backwards"""
        if total is not None and total >= 0:
            self.total = total
        self.current = max(self.current, current)
        if message is not None:
            self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
            "message": self.message,
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class TranslationJob:
    """
    Represents a single translation request in the queue.
    """

    kind: JobKind
    payload: Payload
    priority: JobPriority = JobPriority.NORMAL

    # Identity
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Status
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = field(default_factory=JobProgress)

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    estimated_start_time: Optional[datetime] = None

    # Outcome
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def __post_init__(self):
        if not self.progress.total:
            self.progress.total = estimate_total(self.kind, self.payload)

    @property
    def target_languages(self) -> List[str]:
        return self.payload.target_languages

    @property
    def finished_at(self) -> Optional[datetime]:
        return self.completed_at or self.failed_at

    @property
    def duration_ms(self) -> Optional[int]:
        if not self.started_at or not self.finished_at:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def mark_processing(self, now: Optional[datetime] = None):
        self.status = JobStatus.PROCESSING
        self.started_at = now or datetime.now()
        self.estimated_start_time = None
        self.progress.message = "Translation started"

    def mark_completed(self, result: Dict[str, Any], now: Optional[datetime] = None):
        self.status = JobStatus.COMPLETED
        self.completed_at = now or datetime.now()
        self.result = result
        self.progress.update(self.progress.total, message="Translation completed")

    def mark_failed(self, error: str, now: Optional[datetime] = None):
        self.status = JobStatus.FAILED
        self.failed_at = now or datetime.now()
        self.error = error
        self.progress.message = "Translation failed"

    def mark_cancelled(self):
        self.status = JobStatus.CANCELLED
        self.estimated_start_time = None
        self.progress.message = "Cancelled"

    def to_snapshot(
        self,
        queue_position: Optional[int] = None,
        total_in_queue: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Status snapshot for polling clients"""
        snapshot: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "progress": self.progress.to_dict(),
            "createdAt": _iso(self.created_at),
        }

        if self.status is JobStatus.QUEUED:
            if queue_position is not None:
                snapshot["queuePosition"] = queue_position
            if total_in_queue is not None:
                snapshot["totalInQueue"] = total_in_queue
            if self.estimated_start_time:
                snapshot["estimatedStartTime"] = _iso(self.estimated_start_time)

        if self.started_at:
            snapshot["startedAt"] = _iso(self.started_at)
        if self.completed_at:
            snapshot["completedAt"] = _iso(self.completed_at)
            snapshot["result"] = self.result
        if self.failed_at:
            snapshot["failedAt"] = _iso(self.failed_at)
            snapshot["error"] = self.error
        if self.duration_ms is not None:
            snapshot["durationMs"] = self.duration_ms

        return snapshot
