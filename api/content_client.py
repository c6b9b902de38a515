"""
Content API Client
Translation Queue - Downstream Persistence

Fetches categories, courses and quizzes from the content-management API
and writes translations back. Every response carries a status field;
"00" means success.
"""

from typing import Any, Dict, List, Optional

import httpx

from config.constants import CONTENT_API_OK_STATUS
from config.logging_config import get_logger
from core.translation_queue.errors import FatalCallError, PersistError
from core.translation_queue.job import JobKind

logger = get_logger(__name__)


FETCH_PATHS = {
    JobKind.CATEGORY: "/api/ai/course-category/{uuid}",
    JobKind.COURSE: "/api/ai/course/{uuid}",
    JobKind.QUIZ: "/api/ai/quiz/{uuid}",
}

UPDATE_PATHS = {
    JobKind.CATEGORY: "/api/ai/update-course-category",
    JobKind.COURSE: "/api/ai/update-course",
    JobKind.QUIZ: "/api/ai/update-quiz",
}

QUESTIONS_PATH = "/api/ai/update-quiz-questions"
LANGUAGES_PATH = "/api/ai/languages"


class ContentApiClient:
    """
    Async client for the content API.

    Usage:
        client = ContentApiClient.from_settings(settings)
        quiz = await client.fetch_entity(JobKind.QUIZ, quiz_uuid)
        await client.update_entity(JobKind.QUIZ, payload)
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 120.0,
        batch_size: int = 25,
        fallback_batch_size: int = 5,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.batch_size = batch_size
        self.fallback_batch_size = fallback_batch_size

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_settings(cls, settings) -> "ContentApiClient":
        return cls(
            base_url=settings.content_api_url,
            api_key=settings.content_api_key,
            timeout=settings.content_api_timeout,
            batch_size=settings.content_api_batch_size,
            fallback_batch_size=settings.content_api_fallback_batch_size,
        )

    async def aclose(self):
        await self._client.aclose()

    # =========================================
    # Fetch
    # =========================================

    async def fetch_entity(self, kind: JobKind, uuid: str) -> Dict[str, Any]:
        """
        Fetch a category, course or quiz.

        Raises:
            FatalCallError: not found, request failed, or unexpected body
        """
        label = kind.value
        try:
            response = await self._client.get(FETCH_PATHS[kind].format(uuid=uuid))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise FatalCallError(f"{label.capitalize()} not found: {uuid}") from e
            raise FatalCallError(
                f"Failed to fetch {label} {uuid}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FatalCallError(f"Failed to fetch {label} {uuid}: {e}") from e

        body = _json_body(response)
        if body is None:
            raise FatalCallError(f"Failed to fetch {label} {uuid}: response is not a JSON object")
        status = body.get("status")
        if status is not None and status != CONTENT_API_OK_STATUS:
            raise FatalCallError(
                f"Failed to fetch {label} {uuid}: {body.get('message') or 'Unknown error'}"
            )

        data = body.get("data")
        if not isinstance(data, dict):
            raise FatalCallError(f"{label.capitalize()} not found: {uuid}")
        return data

    async def fetch_language_codes(self) -> List[str]:
        """
        Language codes configured downstream.

        Raises:
            FatalCallError: request failed or unexpected body
        """
        try:
            response = await self._client.get(LANGUAGES_PATH)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FatalCallError(f"Failed to fetch languages: {e}") from e

        body = _json_body(response)
        data = body.get("data") if body is not None else None
        if not isinstance(data, list):
            raise FatalCallError("Invalid response format from languages API")
        return [item["code"] for item in data if isinstance(item, dict) and item.get("code")]

    # =========================================
    # PersistResult
    # =========================================

    async def update_entity(self, kind: JobKind, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Write translations of a category, course or quiz"""
        return await self._post(UPDATE_PATHS[kind], payload, f"update {kind.value}")

    async def update_quiz_questions(
        self,
        quiz_uuid: str,
        questions: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Upload translated questions in batches.

        A server error on a batch larger than the fallback size is retried
        as smaller batches before giving up.

        Raises:
            PersistError: a batch could not be saved
        """
        batches = _split(questions, self.batch_size)
        if len(batches) > 1:
            logger.info(
                f"Uploading {len(questions)} questions in {len(batches)} batches of {self.batch_size}"
            )

        last_response: Dict[str, Any] = {}
        for number, batch in enumerate(batches, start=1):
            try:
                last_response = await self._post_questions(quiz_uuid, batch, number)
            except PersistError as e:
                if e.status_code != 500 or len(batch) <= self.fallback_batch_size:
                    raise
                logger.warning(
                    f"Server error on batch {number} ({len(batch)} questions), "
                    f"retrying in batches of {self.fallback_batch_size}"
                )
                for small in _split(batch, self.fallback_batch_size):
                    last_response = await self._post_questions(quiz_uuid, small, number)

        return {
            "uploaded": len(questions),
            "batches": len(batches),
            "response": last_response,
        }

    async def _post_questions(self, quiz_uuid: str, batch: List[Dict[str, Any]], number: int) -> Dict[str, Any]:
        return await self._post(
            QUESTIONS_PATH,
            {"quizUuid": quiz_uuid, "questions": batch},
            f"update quiz questions batch {number}",
        )

    async def _post(self, path: str, payload: Dict[str, Any], action: str) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PersistError(
                f"Failed to {action}: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise PersistError(f"Failed to {action}: {e}") from e

        body = _json_body(response)
        if body is None:
            raise PersistError(f"Failed to {action}: response is not a JSON object")
        if body.get("status") != CONTENT_API_OK_STATUS:
            raise PersistError(f"Failed to {action}: {body.get('message') or 'Unknown error'}")
        return body


def _json_body(response: httpx.Response) -> Optional[Dict[str, Any]]:
    """Decoded body when it is a JSON object, else None"""
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _split(items: List[Any], size: int) -> List[List[Any]]:
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]
