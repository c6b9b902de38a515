"""
Tests for core/translation_queue/worker.py - work-unit construction, assembly and persistence
"""
import pytest

from core.translation_queue.errors import FatalCallError, JobValidationError
from core.translation_queue.job import JobKind, TranslationJob, build_payload
from core.translation_queue.worker import (
    EXPLANATION_CONTEXT,
    QUESTION_CONTEXT,
    TranslationJobRunner,
)


class ProgressRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, current, total, message):
        self.calls.append((current, total, message))


def make_job(kind, data):
    return TranslationJob(kind=kind, payload=build_payload(kind, data))


CATEGORY = {
    "uuid": "cat-1",
    "name": "Science",
    "description": "Natural sciences",
    "type": "subject",
    "tagName": "science",
    "order": 3,
    "translations": [
        {"languageCode": "de", "name": "Wissenschaft", "description": "Naturwissenschaften"},
    ],
}

COURSE = {
    "uuid": "course-1",
    "title": "Algebra",
    "description": "Linear equations",
    "imageUrl": "https://cdn.example.com/algebra.png",
    "translations": [
        {"uuid": "tr-9", "languageCode": "fr", "title": "Algèbre", "description": "Équations"},
    ],
}

QUIZ = {
    "uuid": "quiz-1",
    "title": "Fractions",
    "description": "Adding fractions",
    "courseUuid": "course-1",
    "difficulty": "easy",
    "timeLimit": 600,
    "passingScore": 70,
    "isActive": True,
}


@pytest.fixture
def runner(make_executor, translator, content_store):
    content_store.entities.update({"cat-1": CATEGORY, "course-1": COURSE, "quiz-1": QUIZ})
    return TranslationJobRunner(make_executor(translator), content_store)


class TestEntityJobs:

    @pytest.mark.asyncio
    async def test_category_progress_and_update(self, runner, translator, content_store):
        job = make_job(JobKind.CATEGORY, {"uuid": "cat-1", "targetLanguages": ["fr", "es"]})
        progress = ProgressRecorder()

        result = await runner.run(job, progress)

        assert [(c, t) for c, t, _ in progress.calls] == [(0, 2), (1, 2), (2, 2)]
        assert len(translator.calls) == 4
        assert ("Science", "fr", "This is a course category name") in translator.calls

        [(kind, update)] = content_store.updates
        assert kind is JobKind.CATEGORY
        assert update["name"] == "Science"
        assert update["tagName"] == "science"
        assert update["order"] == 3
        assert update["translations"] == [
            {"languageCode": "fr", "name": "[fr] Science", "description": "[fr] Natural sciences"},
            {"languageCode": "es", "name": "[es] Science", "description": "[es] Natural sciences"},
        ]
        assert result["translatedLanguages"] == ["fr", "es"]
        assert result["throttleEvents"] == 0

    @pytest.mark.asyncio
    async def test_existing_language_kept(self, runner, translator, content_store):
        job = make_job(JobKind.CATEGORY, {"uuid": "cat-1", "targetLanguages": ["de", "fr"]})

        result = await runner.run(job, ProgressRecorder())

        assert all(lang == "fr" for _, lang, _ in translator.calls)
        translations = content_store.updates[0][1]["translations"]
        assert translations[0] == {
            "languageCode": "de",
            "name": "Wissenschaft",
            "description": "Naturwissenschaften",
        }
        assert result["updatedLanguages"] == ["de", "fr"]
        assert result["translatedLanguages"] == ["fr"]

    @pytest.mark.asyncio
    async def test_course_update_shape(self, runner, content_store):
        job = make_job(JobKind.COURSE, {"uuid": "course-1", "targetLanguages": ["fr", "de"]})

        await runner.run(job, ProgressRecorder())

        update = content_store.updates[0][1]
        assert update["level"] == "beginner"
        assert update["duration"] == 60
        assert update["imageUrl"] == "https://cdn.example.com/algebra.png"
        # sorted by language, existing translation keeps its uuid
        assert [t["languageCode"] for t in update["translations"]] == ["de", "fr"]
        assert update["translations"][1]["uuid"] == "tr-9"
        assert all(t["courseUuid"] == "course-1" for t in update["translations"])

    @pytest.mark.asyncio
    async def test_quiz_update_shape(self, runner, translator, content_store):
        job = make_job(JobKind.QUIZ, {"uuid": "quiz-1", "targetLanguages": ["ja"]})

        await runner.run(job, ProgressRecorder())

        update = content_store.updates[0][1]
        assert update["timeLimit"] == 600
        assert update["passingScore"] == 70
        assert update["isActive"] is True
        assert update["translations"] == [
            {"languageCode": "ja", "title": "[ja] Fractions", "description": "[ja] Adding fractions"},
        ]
        assert ("Fractions", "ja", "This is a quiz title") in translator.calls

    @pytest.mark.asyncio
    async def test_missing_fields(self, runner, content_store):
        content_store.entities["cat-2"] = {"uuid": "cat-2", "name": "Art"}
        job = make_job(JobKind.CATEGORY, {"uuid": "cat-2", "targetLanguages": ["fr"]})

        with pytest.raises(FatalCallError, match=r"Invalid category data: missing required fields \(description\)"):
            await runner.run(job, ProgressRecorder())
        assert content_store.updates == []

    @pytest.mark.asyncio
    async def test_entity_not_found(self, runner):
        job = make_job(JobKind.QUIZ, {"uuid": "quiz-404", "targetLanguages": ["fr"]})

        with pytest.raises(FatalCallError, match="not found"):
            await runner.run(job, ProgressRecorder())

    @pytest.mark.asyncio
    async def test_nothing_persisted_on_failure(
        self, make_executor, translator_factory, content_store
    ):
        content_store.entities["cat-1"] = CATEGORY
        translator = translator_factory(fatal_calls={1})
        runner = TranslationJobRunner(make_executor(translator), content_store)
        job = make_job(JobKind.CATEGORY, {"uuid": "cat-1", "targetLanguages": ["fr"]})

        with pytest.raises(FatalCallError):
            await runner.run(job, ProgressRecorder())
        assert content_store.updates == []


class TestQuestionJobs:

    @pytest.mark.asyncio
    async def test_verbatim_options_not_sent(self, runner, translator, question_data):
        question = question_data("q1")
        question["options"] = {"option_1": "New York", "option_2": "42", "option_3": "10cm"}
        job = make_job(JobKind.QUESTIONS, {
            "quizUuid": "quiz-1",
            "targetLanguages": ["fr"],
            "questions": [question],
        })

        result = await runner.run(job, ProgressRecorder())

        sent = [text for text, _, _ in translator.calls]
        assert sorted(sent) == sorted(["What is 2 + 2?", "New York", "Two plus two equals four"])
        french = result["questions"][0]["translations"][1]
        assert french["options"] == {
            "option_1": "[fr] New York",
            "option_2": "42",
            "option_3": "10cm",
        }
        assert french["correctAnswer"] == ["option_2"]

    @pytest.mark.asyncio
    async def test_question_contexts(self, runner, translator, question_data):
        job = make_job(JobKind.QUESTIONS, {
            "quizUuid": "quiz-1",
            "targetLanguages": ["fr"],
            "questions": [question_data("q1")],
        })

        await runner.run(job, ProgressRecorder())

        assert ("What is 2 + 2?", "fr", QUESTION_CONTEXT) in translator.calls
        assert ("Two plus two equals four", "fr", EXPLANATION_CONTEXT) in translator.calls

    @pytest.mark.asyncio
    async def test_existing_translations_skipped(self, runner, translator, content_store, question_data):
        question = question_data("q1", translations=[
            {
                "languageCode": "en",
                "questionText": "Capital of France?",
                "options": {"option_1": "Paris", "option_2": "Lyon"},
                "correctAnswer": ["option_1"],
                "explanation": "Paris is the capital",
            },
            {
                "languageCode": "fr",
                "questionText": "Capitale de la France ?",
                "options": {"option_1": "Paris", "option_2": "Lyon"},
                "correctAnswer": ["option_1"],
                "explanation": "Paris est la capitale",
            },
        ])
        job = make_job(JobKind.QUESTIONS, {
            "quizUuid": "quiz-1",
            "targetLanguages": ["fr", "de"],
            "questions": [question],
        })
        progress = ProgressRecorder()

        result = await runner.run(job, progress)

        assert {lang for _, lang, _ in translator.calls} == {"de"}
        assert result["translatedUnits"] == 1
        assert result["skippedUnits"] == 1
        assert progress.calls[0][:2] == (0, 2)
        assert progress.calls[-1] == (2, 2, "Saved 1 questions")

        [(_, uploaded)] = content_store.question_uploads
        languages = [t["languageCode"] for t in uploaded[0]["translations"]]
        assert languages == ["en", "fr", "de"]
        assert uploaded[0]["translations"][1]["questionText"] == "Capitale de la France ?"
        assert uploaded[0]["translations"][2]["questionText"] == "[de] Capital of France?"

    @pytest.mark.asyncio
    async def test_each_question_gets_only_its_own_translations(
        self, runner, content_store, question_data
    ):
        job = make_job(JobKind.QUESTIONS, {
            "quizUuid": "quiz-1",
            "targetLanguages": ["fr"],
            "questions": [question_data("q1", text="First?"), question_data("q2", text="Second?")],
        })

        await runner.run(job, ProgressRecorder())

        [(_, uploaded)] = content_store.question_uploads
        texts = [
            [(t["languageCode"], t["questionText"]) for t in question["translations"]]
            for question in uploaded
        ]
        assert texts == [
            [("en", "First?"), ("fr", "[fr] First?")],
            [("en", "Second?"), ("fr", "[fr] Second?")],
        ]

    def test_shared_uuid_rejected_before_queueing(self, question_data):
        with pytest.raises(JobValidationError):
            make_job(JobKind.QUESTIONS, {
                "quizUuid": "quiz-1",
                "targetLanguages": ["fr"],
                "questions": [question_data("same", text="First?"), question_data("same", text="Second?")],
            })

    @pytest.mark.asyncio
    async def test_full_progress_only_after_save(self, make_executor, translator, question_data):
        progress = ProgressRecorder()

        class RecordingStore:
            async def update_quiz_questions(self, quiz_uuid, questions):
                progress.calls.append(("saved", None, None))
                return {"uploaded": len(questions)}

        runner = TranslationJobRunner(make_executor(translator), RecordingStore())
        job = make_job(JobKind.QUESTIONS, {
            "quizUuid": "quiz-1",
            "targetLanguages": ["fr", "de"],
            "questions": [question_data("q1"), question_data("q2")],
        })

        await runner.run(job, progress)

        saved_at = progress.calls.index(("saved", None, None))
        assert all(current < total for current, total, _ in progress.calls[:saved_at])
        assert progress.calls[saved_at - 1][:2] == (3, 4)
        assert progress.calls[-1] == (4, 4, "Saved 2 questions")

    def test_build_question_units(self, question_data):
        payload = build_payload(JobKind.QUESTIONS, {
            "quizUuid": "quiz-1",
            "targetLanguages": ["fr", "de"],
            "questions": [question_data("q1"), question_data("q2")],
        })

        units = TranslationJobRunner.build_question_units(payload)

        assert [(u.source_id, u.target_language) for u in units] == [
            ("q1", "fr"), ("q1", "de"), ("q2", "fr"), ("q2", "de"),
        ]
        assert set(units[0].fields) == {"questionText", "explanation"}
        assert units[0].verbatim == {
            "option:option_1": "Three",
            "option:option_2": "Four",
            "option:option_3": "4",
        }
