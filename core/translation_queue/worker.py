"""
Translation Job Runner
Translation Queue - Job Execution

Turns a job record into work-units, runs them through the batch executor,
assembles the translated content and persists it downstream.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from config.logging_config import get_logger

from .batch_executor import BatchExecutor, ProgressSink, UnitResult, WorkUnit
from .errors import FatalCallError
from .job import (
    JobKind,
    Question,
    QuestionsPayload,
    QuestionTranslation,
    TranslationJob,
    is_verbatim_option,
)

logger = get_logger(__name__)


class ContentStore(Protocol):
    """Downstream content API (fetch + PersistResult)"""

    async def fetch_entity(self, kind: JobKind, uuid: str) -> Dict[str, Any]:
        ...

    async def update_entity(self, kind: JobKind, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def update_quiz_questions(self, quiz_uuid: str, questions: List[Dict[str, Any]]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class EntitySpec:
    """Translatable fields of a category, course or quiz"""
    label: str
    fields: Tuple[str, ...]
    contexts: Dict[str, str]


ENTITY_SPECS = {
    JobKind.CATEGORY: EntitySpec(
        label="category",
        fields=("name", "description"),
        contexts={
            "name": "This is a course category name",
            "description": "This is a course category description",
        },
    ),
    JobKind.COURSE: EntitySpec(
        label="course",
        fields=("title", "description"),
        contexts={
            "title": "This is a course title",
            "description": "This is a course description",
        },
    ),
    JobKind.QUIZ: EntitySpec(
        label="quiz",
        fields=("title", "description"),
        contexts={
            "title": "This is a quiz title",
            "description": "This is a quiz description",
        },
    ),
}

QUESTION_CONTEXT = "This is a quiz question"
OPTION_CONTEXT = "This is a quiz answer option"
EXPLANATION_CONTEXT = "This is an explanation for the correct answer"

_OPTION_PREFIX = "option:"


def question_fields(translation: QuestionTranslation) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Split a question translation into (fields to translate, verbatim fields)"""
    fields = {"questionText": translation.question_text}
    verbatim: Dict[str, str] = {}
    for key, value in translation.options.items():
        if is_verbatim_option(value):
            verbatim[_OPTION_PREFIX + key] = value.strip()
        else:
            fields[_OPTION_PREFIX + key] = value
    fields["explanation"] = translation.explanation
    return fields, verbatim


def question_contexts(fields: Dict[str, str]) -> Dict[str, str]:
    contexts = {}
    for key in fields:
        if key == "questionText":
            contexts[key] = QUESTION_CONTEXT
        elif key == "explanation":
            contexts[key] = EXPLANATION_CONTEXT
        else:
            contexts[key] = OPTION_CONTEXT
    return contexts


class TranslationJobRunner:
    """
    Executes one job end to end.

    - Questions: one work-unit per (question, language); languages that
      already exist on a question are passed through untouched
    - Category / Course / Quiz: fetch, one work-unit per language, persist

    Nothing is persisted if any work-unit fails.
    """

    def __init__(self, executor: BatchExecutor, content: ContentStore):
        self.executor = executor
        self.content = content

    async def run(self, job: TranslationJob, progress: ProgressSink) -> Dict[str, Any]:
        throttles_before = self.executor.controller.state.total_throttle_events

        if job.kind is JobKind.QUESTIONS:
            result = await self._run_questions(job.payload, progress)
        else:
            result = await self._run_entity(job.kind, job.payload, progress)

        result["throttleEvents"] = (
            self.executor.controller.state.total_throttle_events - throttles_before
        )
        return result

    # =========================================
    # Questions
    # =========================================

    async def _run_questions(self, payload: QuestionsPayload, progress: ProgressSink) -> Dict[str, Any]:
        units = self.build_question_units(payload)
        total = len(units)
        progress(0, total, f"Translating {len(payload.questions)} questions "
                           f"into {len(payload.target_languages)} languages")

        def translating(done: int, total_units: int, message: str):
            # the last step is reserved for the save
            progress(min(done, total_units - 1), total_units, message)

        results = await self.executor.execute(units, translating)
        questions = self.assemble_questions(payload, results)

        translated = sum(1 for r in results if not r.skipped)
        logger.info(
            f"Quiz {payload.quiz_uuid}: {translated} work-units translated, "
            f"{total - translated} already present, saving {len(questions)} questions"
        )

        response = await self.content.update_quiz_questions(
            payload.quiz_uuid, [q.to_dict() for q in questions]
        )
        progress(total, total, f"Saved {len(questions)} questions")

        return {
            "quizUuid": payload.quiz_uuid,
            "targetLanguages": list(payload.target_languages),
            "questionCount": len(questions),
            "translatedUnits": translated,
            "skippedUnits": total - translated,
            "questions": [q.to_dict() for q in questions],
            "response": response,
        }

    @staticmethod
    def build_question_units(payload: QuestionsPayload) -> List[WorkUnit]:
        units = []
        for question in payload.questions:
            source = question.source_translation()
            fields, verbatim = question_fields(source)
            contexts = question_contexts(fields)
            for lang in payload.target_languages:
                existing = question.translation_for(lang)
                if existing is not None:
                    existing_fields, existing_verbatim = question_fields(existing)
                    units.append(WorkUnit(
                        source_id=question.uuid,
                        target_language=lang,
                        existing={**existing_fields, **existing_verbatim},
                    ))
                else:
                    units.append(WorkUnit(
                        source_id=question.uuid,
                        target_language=lang,
                        fields=fields,
                        contexts=contexts,
                        verbatim=verbatim,
                    ))
        return units

    @staticmethod
    def assemble_questions(payload: QuestionsPayload, results: List[UnitResult]) -> List[Question]:
        by_question: Dict[str, List[UnitResult]] = {}
        for result in results:
            by_question.setdefault(result.source_id, []).append(result)

        assembled = []
        for question in payload.questions:
            source = question.source_translation()
            translations = list(question.translations)
            for result in by_question.get(question.uuid, []):
                if result.skipped:
                    continue
                translations.append(QuestionTranslation(
                    language_code=result.target_language,
                    question_text=result.fields["questionText"],
                    options={
                        key: result.fields[_OPTION_PREFIX + key] for key in source.options
                    },
                    correct_answer=list(source.correct_answer),
                    explanation=result.fields["explanation"],
                ))
            assembled.append(Question(
                uuid=question.uuid,
                translations=translations,
                question_type=question.question_type,
                difficulty=question.difficulty,
                points=question.points,
            ))
        return assembled

    # =========================================
    # Category / Course / Quiz
    # =========================================

    async def _run_entity(self, kind: JobKind, payload, progress: ProgressSink) -> Dict[str, Any]:
        entity_spec = ENTITY_SPECS[kind]
        progress(0, 2, f"Translating {entity_spec.label}")

        entity = await self.content.fetch_entity(kind, payload.uuid)
        missing = [name for name in entity_spec.fields if not entity.get(name)]
        if missing:
            raise FatalCallError(
                f"Invalid {entity_spec.label} data: missing required fields ({', '.join(missing)})"
            )

        existing = {
            t.get("languageCode"): t
            for t in entity.get("translations") or []
            if isinstance(t, dict)
        }
        source = {name: entity[name] for name in entity_spec.fields}

        units = []
        for lang in payload.target_languages:
            if lang in existing:
                units.append(WorkUnit(
                    source_id=payload.uuid,
                    target_language=lang,
                    existing={name: existing[lang].get(name) or "" for name in entity_spec.fields},
                ))
            else:
                units.append(WorkUnit(
                    source_id=payload.uuid,
                    target_language=lang,
                    fields=dict(source),
                    contexts=entity_spec.contexts,
                ))

        results = await self.executor.execute(units)
        translations = [
            self._entity_translation(kind, payload.uuid, result, existing.get(result.target_language))
            for result in results
        ]
        progress(1, 2, f"Translations ready, saving {entity_spec.label}")

        update = self.build_entity_update(kind, entity, payload.uuid, translations)
        response = await self.content.update_entity(kind, update)
        progress(2, 2, f"Saved {entity_spec.label}")

        return {
            "uuid": payload.uuid,
            "kind": kind.value,
            "translations": update["translations"],
            "updatedLanguages": list(payload.target_languages),
            "translatedLanguages": [r.target_language for r in results if not r.skipped],
            "response": response,
        }

    @staticmethod
    def _entity_translation(
        kind: JobKind,
        entity_uuid: str,
        result: UnitResult,
        existing: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        translation = {"languageCode": result.target_language, **result.fields}
        if kind is JobKind.COURSE:
            translation["courseUuid"] = entity_uuid
            if existing and existing.get("uuid"):
                translation["uuid"] = existing["uuid"]
        return translation

    @staticmethod
    def build_entity_update(
        kind: JobKind,
        entity: Dict[str, Any],
        entity_uuid: str,
        translations: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if kind is JobKind.CATEGORY:
            return {
                "uuid": entity.get("uuid", entity_uuid),
                "name": entity["name"],
                "description": entity["description"],
                "type": entity.get("type"),
                "tagName": entity.get("tagName"),
                "order": entity.get("order"),
                "translations": translations,
            }
        if kind is JobKind.COURSE:
            return {
                "uuid": entity_uuid,
                "level": entity.get("level") or "beginner",
                "duration": entity.get("duration") or 60,
                "imageUrl": entity.get("imageUrl"),
                "translations": sorted(translations, key=lambda t: t["languageCode"]),
            }
        return {
            "uuid": entity.get("uuid", entity_uuid),
            "title": entity["title"],
            "description": entity["description"],
            "courseUuid": entity.get("courseUuid"),
            "difficulty": entity.get("difficulty"),
            "timeLimit": entity.get("timeLimit"),
            "passingScore": entity.get("passingScore"),
            "isActive": entity.get("isActive"),
            "translations": translations,
        }
