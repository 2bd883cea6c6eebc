"""
AI feedback for completed exercises.

A feedback row is written in ``pending`` state together with the exercise
completion (outbox). A background task then asks Gemini for an analysis and
moves the row to ``completed`` or ``failed``. Failures never touch the
exercise itself.
"""
# pyright: reportAttributeAccessIssue=false
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import json
import logging

import requests
from sqlmodel import Session, select

from lumi.core.config import settings
from lumi.core.database import engine
from lumi.models.models import (
    AIExerciseFeedback,
    Exercise,
    ExerciseAttempt,
    GrammaticalCase,
    Chapter,
    FeedbackStatus,
)

logger = logging.getLogger(__name__)

FEEDBACK_KEYS = ("summary", "strengths", "weaknesses", "suggestions", "suggested_topics")


class FeedbackGenerationError(Exception):
    """Raised when the Gemini call fails or returns an unusable answer."""
    pass


class FeedbackGenerator:
    """Generates tutor feedback using the Google Generative AI (Gemini) REST API."""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.google_gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self.base_url = f"https://generativelanguage.googleapis.com/v1beta/models/{self.model_name}:generateContent"

    def build_prompt(self, analysis_data: Dict[str, Any]) -> str:
        return (
            "You are an expert language learning tutor named 'Lumi' analyzing a student's "
            "grammatical case exercise. Give encouraging, actionable feedback.\n"
            "Reply with a JSON object only, with these keys:\n"
            '- "summary": 2-3 encouraging sentences summarizing the performance.\n'
            '- "strengths": array of 2-3 strings on what went well.\n'
            '- "weaknesses": array of 2-3 strings on specific areas to improve.\n'
            '- "suggestions": a paragraph of actionable tips.\n'
            '- "suggested_topics": array of 3-4 grammar topics to study next.\n\n'
            f"Performance data:\n{json.dumps(analysis_data, indent=2)}\n"
        )

    def generate(self, analysis_data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise FeedbackGenerationError("Google Gemini API key not configured. Set GOOGLE_GEMINI_API_KEY.")

        payload = {
            "contents": [{"parts": [{"text": self.build_prompt(analysis_data)}]}],
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": 1024,
                "responseMimeType": "application/json",
            }
        }

        try:
            response = requests.post(
                f"{self.base_url}?key={self.api_key}",
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=30
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise FeedbackGenerationError(f"Gemini API request failed: {e}") from e

        try:
            raw_text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected Gemini response: {str(data)[:500]}")
            raise FeedbackGenerationError("Gemini response contained no text") from e

        return parse_feedback_text(raw_text)


def parse_feedback_text(raw_text: str) -> Dict[str, Any]:
    """Parse the model's JSON answer, tolerating markdown code fences."""
    json_text = raw_text.replace("```json", "").replace("```", "").strip()
    try:
        result = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise FeedbackGenerationError(f"Gemini returned invalid JSON: {e}") from e
    if not isinstance(result, dict):
        raise FeedbackGenerationError("Gemini returned JSON that is not an object")
    missing = [key for key in FEEDBACK_KEYS if key not in result]
    if missing:
        raise FeedbackGenerationError(f"Gemini response is missing keys: {', '.join(missing)}")
    return result


def build_analysis_data(session: Session, exercise: Exercise) -> Dict[str, Any]:
    """Summarize an exercise's attempts per grammatical case for the prompt."""
    attempts = session.exec(
        select(ExerciseAttempt).where(ExerciseAttempt.exercise_id == exercise.id)
    ).all()
    case_names = {c.id: c.name for c in session.exec(select(GrammaticalCase)).all()}
    chapter = session.get(Chapter, exercise.chapter_id)

    performance_by_case: Dict[str, Dict[str, int]] = {}
    for attempt in attempts:
        name = case_names.get(attempt.correct_case_id, "Unknown Case")
        stats = performance_by_case.setdefault(name, {"correct": 0, "total": 0})
        stats["total"] += 1
        if attempt.is_correct:
            stats["correct"] += 1

    correct = sum(1 for a in attempts if a.is_correct)
    return {
        "chapter": chapter.title if chapter else None,
        "difficulty": str(getattr(exercise.difficulty, "value", exercise.difficulty)),
        "overall_accuracy": (correct / len(attempts) * 100) if attempts else 0,
        "performance_by_case": performance_by_case,
    }


def enqueue_feedback(session: Session, exercise: Exercise) -> AIExerciseFeedback:
    """Add a pending feedback row; committed by the caller with the exercise completion."""
    existing = session.exec(
        select(AIExerciseFeedback).where(AIExerciseFeedback.exercise_id == exercise.id)
    ).first()
    if existing:
        return existing
    row = AIExerciseFeedback(
        exercise_id=exercise.id,
        student_id=exercise.student_id,
        status=FeedbackStatus.PENDING,
    )
    session.add(row)
    return row


def process_feedback_job(exercise_id: int, generator: Optional[FeedbackGenerator] = None):
    """
    Background task: generate feedback for one exercise and record the outcome.
    Uses its own database session.
    """
    generator = generator or FeedbackGenerator()
    with Session(engine) as bg_session:
        row = bg_session.exec(
            select(AIExerciseFeedback).where(AIExerciseFeedback.exercise_id == exercise_id)
        ).first()
        if not row:
            logger.warning(f"Feedback job: no feedback row for exercise {exercise_id}")
            return
        if row.status == FeedbackStatus.COMPLETED:
            return

        exercise = bg_session.get(Exercise, exercise_id)
        try:
            if not exercise:
                raise FeedbackGenerationError(f"Exercise {exercise_id} not found")
            result = generator.generate(build_analysis_data(bg_session, exercise))
            row.summary = result.get("summary")
            row.strengths = list(result.get("strengths") or [])
            row.weaknesses = list(result.get("weaknesses") or [])
            row.suggestions = result.get("suggestions")
            row.suggested_topics = list(result.get("suggested_topics") or [])
            row.status = FeedbackStatus.COMPLETED
            row.error = None
            logger.info(f"Feedback job: generated feedback for exercise {exercise_id}")
        except Exception as e:
            # The exercise stays completed; the failure is recorded on the feedback row
            logger.error(f"Feedback job: generation failed for exercise {exercise_id}: {str(e)}")
            row.status = FeedbackStatus.FAILED
            row.error = str(e)

        row.updated_at = datetime.utcnow()
        bg_session.add(row)
        bg_session.commit()


def feedback_payload(row: Optional[AIExerciseFeedback], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Feedback state for polling clients, with explicit poll parameters."""
    now = now or datetime.utcnow()
    poll = {
        "poll_interval_seconds": settings.feedback_poll_interval_seconds,
        "max_retries": settings.feedback_poll_max_retries,
    }
    if row is None:
        return {"status": None, "message": "No feedback has been requested for this exercise.", **poll}

    status_value = str(getattr(row.status, "value", row.status))
    message = None
    if status_value == FeedbackStatus.PENDING.value:
        window = timedelta(seconds=settings.feedback_poll_interval_seconds * settings.feedback_poll_max_retries)
        if now - row.created_at > window:
            message = "AI feedback is taking longer than usual to generate. Please check back later."
        else:
            message = "Lumi is analyzing your performance..."
    elif status_value == FeedbackStatus.FAILED.value:
        message = "AI feedback could not be generated."

    return {
        "status": status_value,
        "message": message,
        "summary": row.summary,
        "strengths": row.strengths or [],
        "weaknesses": row.weaknesses or [],
        "suggestions": row.suggestions,
        "suggested_topics": row.suggested_topics or [],
        **poll,
    }
