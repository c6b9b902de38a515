"""
Translation API Router

FastAPI endpoints for submitting translation jobs and polling the queue.
"""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from config.constants import SUPPORTED_LANGUAGES
from config.logging_config import get_logger
from core.translation_queue import (
    CannotCancelError,
    FatalCallError,
    JobKind,
    JobNotFoundError,
    JobPriority,
    JobValidationError,
    TranslationScheduler,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/translation", tags=["Translation"])


# ==================== MODELS ====================

class EntityTranslateRequest(BaseModel):
    """Category / course / quiz translation request"""
    model_config = ConfigDict(populate_by_name=True)

    target_languages: Optional[List[str]] = Field(
        default=None,
        alias="targetLanguages",
        description="Language codes; all configured languages when omitted",
    )
    priority: Literal["normal", "high"] = "normal"


class QuestionsTranslateRequest(BaseModel):
    """Question set translation request"""
    model_config = ConfigDict(populate_by_name=True)

    target_languages: List[str] = Field(..., alias="targetLanguages")
    questions: List[Dict[str, Any]]
    priority: Literal["normal", "high"] = "normal"


class ApiResponse(BaseModel):
    """Standard response envelope"""
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None


# ==================== DEPENDENCIES ====================

def get_scheduler(request: Request) -> TranslationScheduler:
    return request.app.state.scheduler


def get_content_client(request: Request):
    return getattr(request.app.state, "content_client", None)


async def _resolve_languages(requested: Optional[List[str]], content_client) -> List[str]:
    if requested is not None:
        return requested

    fallback = sorted(SUPPORTED_LANGUAGES)
    if content_client is None:
        return fallback
    try:
        codes = await content_client.fetch_language_codes()
    except FatalCallError as e:
        logger.warning(f"Failed to fetch languages, using defaults: {e}")
        return fallback

    codes = [code for code in codes if code in SUPPORTED_LANGUAGES]
    if not codes:
        raise HTTPException(status_code=400, detail="No target languages available for translation")
    return codes


def _queue(
    scheduler: TranslationScheduler,
    kind: JobKind,
    data: Dict[str, Any],
    priority: str,
) -> Dict[str, Any]:
    try:
        job_id = scheduler.submit(kind, data, JobPriority(priority))
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    status = scheduler.get_status(job_id)
    return {
        "queueId": job_id,
        "status": status["status"],
        "queuePosition": status.get("queuePosition"),
        "totalInQueue": status.get("totalInQueue"),
        "estimatedStartTime": status.get("estimatedStartTime"),
        "targetLanguages": data["targetLanguages"],
        "checkStatusUrl": f"{router.prefix}/status/{job_id}",
    }


# ==================== ENDPOINTS ====================

@router.post("/category/{category_uuid}", response_model=ApiResponse, status_code=202)
async def translate_category(
    category_uuid: str,
    body: Optional[EntityTranslateRequest] = None,
    scheduler: TranslationScheduler = Depends(get_scheduler),
    content_client=Depends(get_content_client),
):
    """Queue translation of a course category (name + description)"""
    body = body or EntityTranslateRequest()
    languages = await _resolve_languages(body.target_languages, content_client)
    data = _queue(
        scheduler,
        JobKind.CATEGORY,
        {"uuid": category_uuid, "targetLanguages": languages},
        body.priority,
    )
    data["categoryUuid"] = category_uuid
    return ApiResponse(message="Translation request has been queued for processing", data=data)


@router.post("/course/{course_uuid}", response_model=ApiResponse, status_code=202)
async def translate_course(
    course_uuid: str,
    body: Optional[EntityTranslateRequest] = None,
    scheduler: TranslationScheduler = Depends(get_scheduler),
    content_client=Depends(get_content_client),
):
    """Queue translation of a course (title + description)"""
    body = body or EntityTranslateRequest()
    languages = await _resolve_languages(body.target_languages, content_client)
    data = _queue(
        scheduler,
        JobKind.COURSE,
        {"uuid": course_uuid, "targetLanguages": languages},
        body.priority,
    )
    data["courseUuid"] = course_uuid
    return ApiResponse(message="Translation request has been queued for processing", data=data)


@router.post("/quiz/{quiz_uuid}", response_model=ApiResponse, status_code=202)
async def translate_quiz(
    quiz_uuid: str,
    body: Optional[EntityTranslateRequest] = None,
    scheduler: TranslationScheduler = Depends(get_scheduler),
    content_client=Depends(get_content_client),
):
    """Queue translation of a quiz (title + description)"""
    body = body or EntityTranslateRequest()
    languages = await _resolve_languages(body.target_languages, content_client)
    data = _queue(
        scheduler,
        JobKind.QUIZ,
        {"uuid": quiz_uuid, "targetLanguages": languages},
        body.priority,
    )
    data["quizUuid"] = quiz_uuid
    return ApiResponse(message="Translation request has been queued for processing", data=data)


@router.post("/quiz/{quiz_uuid}/questions", response_model=ApiResponse, status_code=202)
async def translate_questions(
    quiz_uuid: str,
    body: QuestionsTranslateRequest,
    scheduler: TranslationScheduler = Depends(get_scheduler),
):
    """
    Queue translation of a question set.

    Languages a question already has are kept as they are.
    """
    data = _queue(
        scheduler,
        JobKind.QUESTIONS,
        {
            "quizUuid": quiz_uuid,
            "targetLanguages": body.target_languages,
            "questions": body.questions,
        },
        body.priority,
    )
    data["quizUuid"] = quiz_uuid
    data["questionCount"] = len(body.questions)
    return ApiResponse(message="Questions translation request has been queued", data=data)


@router.get("/status/{queue_id}", response_model=ApiResponse)
async def get_translation_status(
    queue_id: str,
    scheduler: TranslationScheduler = Depends(get_scheduler),
):
    """Status snapshot of one job"""
    try:
        status = scheduler.get_status(queue_id)
    except JobNotFoundError:
        raise HTTPException(
            status_code=404,
            detail="Translation request not found. It may have been completed and removed from records.",
        )
    return ApiResponse(message="Translation status retrieved successfully", data=status)


@router.get("/queue-status", response_model=ApiResponse)
async def get_queue_status(scheduler: TranslationScheduler = Depends(get_scheduler)):
    """Pending and in-flight jobs with counts"""
    return ApiResponse(message="Queue status retrieved successfully", data=scheduler.list_queue())


@router.delete("/cancel/{queue_id}", response_model=ApiResponse)
async def cancel_translation(
    queue_id: str,
    scheduler: TranslationScheduler = Depends(get_scheduler),
):
    """Cancel a job that has not started yet"""
    try:
        scheduler.cancel(queue_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Translation request not found")
    except CannotCancelError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ApiResponse(
        message="Translation request cancelled successfully",
        data={"queueId": queue_id, "status": "cancelled"},
    )
