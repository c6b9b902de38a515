"""
Integration tests for API endpoints (api/main.py, api/translation_router.py)
"""
import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from api.content_client import ContentApiClient
from api.main import create_app
from core.translation_queue import RateLimitController, SchedulerConfig, TranslationScheduler


class StuckRunner:
    """Never finishes; shutdown cancels it."""

    async def run(self, job, progress):
        progress(1, 2, "Working")
        await asyncio.Event().wait()


class FakeLanguages:
    def __init__(self, codes):
        self.codes = codes

    async def fetch_language_codes(self):
        return self.codes


def build_client(content_client=None):
    scheduler = TranslationScheduler(
        StuckRunner(),
        SchedulerConfig(idle_poll_seconds=0.01, stop_grace_seconds=0.1),
    )
    app = create_app(
        scheduler=scheduler,
        content_client=content_client,
        controller=RateLimitController(),
    )
    return TestClient(app)


def wait_for_status(client, queue_id, status, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get(f"/api/translation/status/{queue_id}").json()["data"]
        if data["status"] == status:
            return data
        time.sleep(0.01)
    raise AssertionError(f"{queue_id} never reached {status}")


QUESTION = {
    "uuid": "q1",
    "questionText": "What is the capital of France?",
    "options": {"option_1": "Paris", "option_2": "New York"},
    "correctAnswer": "option_1",
    "explanation": "Paris is the capital of France",
}


class TestSubmission:
    """POST endpoints"""

    @pytest.fixture
    def client(self):
        with build_client() as client:
            yield client

    def test_queue_questions(self, client):
        response = client.post(
            "/api/translation/quiz/quiz-1/questions",
            json={"targetLanguages": ["fr", "de"], "questions": [QUESTION]},
        )
        assert response.status_code == 202
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["quizUuid"] == "quiz-1"
        assert data["questionCount"] == 1
        assert data["targetLanguages"] == ["fr", "de"]
        assert data["checkStatusUrl"] == f"/api/translation/status/{data['queueId']}"

    def test_queue_category_with_languages(self, client):
        response = client.post("/api/translation/category/cat-1", json={"targetLanguages": ["es"]})
        assert response.status_code == 202
        data = response.json()["data"]
        assert data["categoryUuid"] == "cat-1"
        assert data["targetLanguages"] == ["es"]

    def test_entity_without_body_uses_all_languages(self, client):
        response = client.post("/api/translation/course/course-1")
        assert response.status_code == 202
        assert len(response.json()["data"]["targetLanguages"]) == 10

    def test_unsupported_language(self, client):
        response = client.post("/api/translation/quiz/quiz-1", json={"targetLanguages": ["xx"]})
        assert response.status_code == 400
        assert "xx" in response.json()["detail"]

    def test_empty_language_list_rejected(self, client):
        response = client.post("/api/translation/quiz/quiz-1", json={"targetLanguages": []})
        assert response.status_code == 400
        assert "targetLanguages" in response.json()["detail"]

    def test_empty_question_list(self, client):
        response = client.post(
            "/api/translation/quiz/quiz-1/questions",
            json={"targetLanguages": ["fr"], "questions": []},
        )
        assert response.status_code == 400

    def test_missing_target_languages(self, client):
        response = client.post("/api/translation/quiz/quiz-1/questions", json={"questions": [QUESTION]})
        assert response.status_code == 422

    def test_high_priority_jumps_queue(self, client):
        first = client.post("/api/translation/quiz/quiz-1", json={"targetLanguages": ["fr"]})
        wait_for_status(client, first.json()["data"]["queueId"], "processing")

        client.post("/api/translation/quiz/quiz-2", json={"targetLanguages": ["fr"]})
        urgent = client.post(
            "/api/translation/quiz/quiz-3",
            json={"targetLanguages": ["fr"], "priority": "high"},
        )
        assert urgent.json()["data"]["queuePosition"] == 1
        assert urgent.json()["data"]["totalInQueue"] == 2


class TestLanguageLookup:

    def test_languages_from_content_api(self):
        with build_client(FakeLanguages(["fr", "xx", "de"])) as client:
            response = client.post("/api/translation/category/cat-1")
        assert response.status_code == 202
        assert response.json()["data"]["targetLanguages"] == ["fr", "de"]

    def test_unreadable_language_list_falls_back(self):
        http = httpx.AsyncClient(
            base_url="http://content.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>")),
        )
        with build_client(ContentApiClient("http://content.test", client=http)) as client:
            response = client.post("/api/translation/category/cat-1")
        assert response.status_code == 202
        assert len(response.json()["data"]["targetLanguages"]) == 10

    def test_no_usable_languages(self):
        with build_client(FakeLanguages(["xx"])) as client:
            response = client.post("/api/translation/category/cat-1")
        assert response.status_code == 400


class TestStatusAndCancel:

    @pytest.fixture
    def client(self):
        with build_client() as client:
            yield client

    def test_unknown_status(self, client):
        response = client.get("/api/translation/status/missing")
        assert response.status_code == 404

    def test_queue_status(self, client):
        first = client.post("/api/translation/quiz/quiz-1", json={"targetLanguages": ["fr"]}).json()["data"]
        wait_for_status(client, first["queueId"], "processing")
        second = client.post("/api/translation/quiz/quiz-2", json={"targetLanguages": ["fr"]}).json()["data"]

        data = client.get("/api/translation/queue-status").json()["data"]
        assert data["stats"] == {"queued": 1, "processing": 1, "completed": 0, "failed": 0}
        assert [job["id"] for job in data["pending"]] == [second["queueId"]]
        assert [job["id"] for job in data["inFlight"]] == [first["queueId"]]

    def test_cancel_queued_job(self, client):
        first = client.post("/api/translation/quiz/quiz-1", json={"targetLanguages": ["fr"]}).json()["data"]
        wait_for_status(client, first["queueId"], "processing")
        second = client.post("/api/translation/quiz/quiz-2", json={"targetLanguages": ["fr"]}).json()["data"]

        response = client.delete(f"/api/translation/cancel/{second['queueId']}")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

        assert client.get(f"/api/translation/status/{second['queueId']}").status_code == 404

    def test_cancel_processing_job(self, client):
        queued = client.post("/api/translation/quiz/quiz-1", json={"targetLanguages": ["fr"]}).json()["data"]
        status = wait_for_status(client, queued["queueId"], "processing")
        assert status["progress"]["percentage"] == 50

        response = client.delete(f"/api/translation/cancel/{queued['queueId']}")
        assert response.status_code == 409

    def test_cancel_unknown(self, client):
        assert client.delete("/api/translation/cancel/missing").status_code == 404


class TestHealth:

    def test_health(self):
        with build_client() as client:
            data = client.get("/api/health").json()
        assert data["status"] == "ok"
        assert data["scheduler_running"] is True
        assert data["queue"]["queued"] == 0
        assert data["rate_limit"]["mode"] == "parallel"
