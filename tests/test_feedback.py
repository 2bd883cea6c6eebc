"""
AI feedback outbox: generation, failure isolation and polling hints.
"""
from datetime import datetime, timedelta
import json

import pytest
import requests
from sqlmodel import select

from lumi.core.config import settings
from lumi.models.models import (
    AIExerciseFeedback,
    Exercise,
    ExerciseAttempt,
    ExerciseStatus,
    FeedbackStatus,
)
from lumi.services.feedback_service import (
    FeedbackGenerationError,
    FeedbackGenerator,
    build_analysis_data,
    enqueue_feedback,
    feedback_payload,
    parse_feedback_text,
    process_feedback_job,
)

GOOD_FEEDBACK = {
    "summary": "Solid work on subjects.",
    "strengths": ["Nominative subjects"],
    "weaknesses": ["Dative objects"],
    "suggestions": "Look for the receiver of the action.",
    "suggested_topics": ["Dative prepositions", "Two-way prepositions", "Articles"],
}


class StubGenerator:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def generate(self, analysis_data):
        self.calls.append(analysis_data)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def completed_exercise(session, student, content):
    exercise = Exercise(
        student_id=student.id,
        chapter_id=content.chapter_id,
        total_questions=1,
        status=ExerciseStatus.COMPLETED,
        completed_at=datetime.utcnow(),
    )
    session.add(exercise)
    session.commit()
    session.add_all([
        ExerciseAttempt(exercise_id=exercise.id, sentence_id=content.sentence_ids[0], word_index=1,
                        selected_case_id=content.cases["NOM"], correct_case_id=content.cases["NOM"], is_correct=True),
        ExerciseAttempt(exercise_id=exercise.id, sentence_id=content.sentence_ids[0], word_index=4,
                        selected_case_id=content.cases["DAT"], correct_case_id=content.cases["ACC"], is_correct=False),
    ])
    enqueue_feedback(session, exercise)
    session.commit()
    return exercise


def feedback_row(session, exercise_id):
    session.expire_all()
    return session.exec(select(AIExerciseFeedback).where(AIExerciseFeedback.exercise_id == exercise_id)).first()


class TestParsing:

    def test_fenced_json_is_accepted(self):
        raw = "```json\n" + json.dumps(GOOD_FEEDBACK) + "\n```"
        assert parse_feedback_text(raw)["summary"] == "Solid work on subjects."

    def test_missing_keys_are_rejected(self):
        with pytest.raises(FeedbackGenerationError):
            parse_feedback_text('{"summary": "hi"}')

    def test_non_json_is_rejected(self):
        with pytest.raises(FeedbackGenerationError):
            parse_feedback_text("Great job!")


class TestGenerator:

    def test_missing_api_key_fails_without_calling_out(self, monkeypatch):
        def no_network(*args, **kwargs):
            raise AssertionError("network must not be used")

        monkeypatch.setattr(requests, "post", no_network)
        with pytest.raises(FeedbackGenerationError):
            FeedbackGenerator(api_key="").generate({})

    def test_gemini_answer_is_parsed(self, monkeypatch):

        class FakeResponse:
            def raise_for_status(self):
                pass

            def json(self):
                return {"candidates": [{"content": {"parts": [{"text": json.dumps(GOOD_FEEDBACK)}]}}]}

        captured = {}

        def fake_post(url, json=None, headers=None, timeout=None):
            captured["url"] = url
            captured["payload"] = json
            return FakeResponse()

        monkeypatch.setattr(requests, "post", fake_post)
        result = FeedbackGenerator(api_key="test-key", model_name="gemini-test").generate({"overall_accuracy": 50})
        assert result["weaknesses"] == ["Dative objects"]
        assert "gemini-test:generateContent?key=test-key" in captured["url"]
        assert "overall_accuracy" in captured["payload"]["contents"][0]["parts"][0]["text"]

    def test_http_error_becomes_generation_error(self, monkeypatch):
        def failing_post(*args, **kwargs):
            raise requests.exceptions.ConnectionError("unreachable")

        monkeypatch.setattr(requests, "post", failing_post)
        with pytest.raises(FeedbackGenerationError):
            FeedbackGenerator(api_key="test-key").generate({})


class TestFeedbackJob:

    def test_analysis_groups_attempts_by_correct_case(self, session, completed_exercise):
        data = build_analysis_data(session, completed_exercise)
        assert data["overall_accuracy"] == 50
        assert data["performance_by_case"] == {
            "Nominative": {"correct": 1, "total": 1},
            "Accusative": {"correct": 0, "total": 1},
        }

    def test_enqueue_is_idempotent(self, session, completed_exercise):
        enqueue_feedback(session, completed_exercise)
        session.commit()
        assert len(session.exec(select(AIExerciseFeedback)).all()) == 1

    def test_successful_job_completes_row(self, session, completed_exercise):
        generator = StubGenerator(result=GOOD_FEEDBACK)
        process_feedback_job(completed_exercise.id, generator=generator)
        row = feedback_row(session, completed_exercise.id)
        assert row.status == FeedbackStatus.COMPLETED.value
        assert row.suggested_topics == GOOD_FEEDBACK["suggested_topics"]
        assert len(generator.calls) == 1

    def test_failed_job_marks_row_and_leaves_exercise_completed(self, session, completed_exercise):
        process_feedback_job(completed_exercise.id, generator=StubGenerator(error=FeedbackGenerationError("quota")))
        row = feedback_row(session, completed_exercise.id)
        assert row.status == FeedbackStatus.FAILED.value
        assert "quota" in row.error
        assert session.get(Exercise, completed_exercise.id).status == ExerciseStatus.COMPLETED.value

    def test_completed_row_is_not_regenerated(self, session, completed_exercise):
        process_feedback_job(completed_exercise.id, generator=StubGenerator(result=GOOD_FEEDBACK))
        generator = StubGenerator(result=GOOD_FEEDBACK)
        process_feedback_job(completed_exercise.id, generator=generator)
        assert generator.calls == []


class TestPolling:

    def test_payload_carries_poll_parameters(self):
        payload = feedback_payload(None)
        assert payload["status"] is None
        assert payload["poll_interval_seconds"] == settings.feedback_poll_interval_seconds
        assert payload["max_retries"] == settings.feedback_poll_max_retries

    def test_fresh_pending_row_is_analyzing(self):
        now = datetime.utcnow()
        row = AIExerciseFeedback(exercise_id=1, student_id=1, status=FeedbackStatus.PENDING, created_at=now)
        assert "analyzing" in feedback_payload(row, now=now)["message"]

    def test_stale_pending_row_takes_longer_than_usual(self):
        now = datetime.utcnow()
        window = settings.feedback_poll_interval_seconds * settings.feedback_poll_max_retries
        row = AIExerciseFeedback(
            exercise_id=1, student_id=1, status=FeedbackStatus.PENDING,
            created_at=now - timedelta(seconds=window + 1),
        )
        assert "taking longer than usual" in feedback_payload(row, now=now)["message"]
