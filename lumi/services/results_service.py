"""
Results of a completed exercise: score, time, per-case performance and a
per-sentence breakdown.
"""
# pyright: reportAttributeAccessIssue=false
from typing import Any, Dict, List
import logging

from sqlmodel import Session, select

from lumi.core.exceptions import ConflictError, NotFoundError
from lumi.models.models import (
    Exercise,
    ExerciseAttempt,
    ExerciseStatus,
    Sentence,
    WordAnnotation,
)
from lumi.services.content_service import list_grammatical_cases

logger = logging.getLogger(__name__)


def encouragement(accuracy: int) -> str:
    if accuracy >= 90:
        return "Excellent work!"
    if accuracy >= 80:
        return "Great job!"
    if accuracy >= 70:
        return "Good effort!"
    if accuracy >= 60:
        return "Keep practicing!"
    return "Don't give up!"


def summarize_exercise(session: Session, exercise: Exercise) -> Dict[str, Any]:
    attempts: List[ExerciseAttempt] = list(session.exec(
        select(ExerciseAttempt)
        .where(ExerciseAttempt.exercise_id == exercise.id)
        .order_by(ExerciseAttempt.sentence_id, ExerciseAttempt.word_index)
    ).all())

    if not attempts:
        if exercise.status == ExerciseStatus.IN_PROGRESS:
            raise NotFoundError("Exercise has no results yet; it is still in progress")
        raise ConflictError("Exercise was completed without any answers")

    total = len(attempts)
    correct = sum(1 for a in attempts if a.is_correct)
    accuracy = round(correct / total * 100)
    time_spent = sum(a.time_spent_seconds or 0 for a in attempts)

    case_performance = []
    for grammatical_case in list_grammatical_cases(session):
        case_attempts = [a for a in attempts if a.correct_case_id == grammatical_case.id]
        if not case_attempts:
            continue
        case_correct = sum(1 for a in case_attempts if a.is_correct)
        case_performance.append({
            "case_id": grammatical_case.id,
            "name": grammatical_case.name,
            "abbreviation": grammatical_case.abbreviation,
            "color": grammatical_case.color,
            "correct": case_correct,
            "total": len(case_attempts),
            "accuracy": round(case_correct / len(case_attempts) * 100),
        })

    sentence_ids = sorted({a.sentence_id for a in attempts})
    sentences = {
        s.id: s for s in session.exec(select(Sentence).where(Sentence.id.in_(sentence_ids))).all()
    }
    annotations = {
        (a.sentence_id, a.word_index): a
        for a in session.exec(
            select(WordAnnotation).where(WordAnnotation.sentence_id.in_(sentence_ids))
        ).all()
    }

    breakdown = []
    for sentence_id in sentence_ids:
        sentence = sentences.get(sentence_id)
        words = []
        for attempt in (a for a in attempts if a.sentence_id == sentence_id):
            annotation = annotations.get((sentence_id, attempt.word_index))
            words.append({
                "word_index": attempt.word_index,
                "word_text": annotation.word_text if annotation else None,
                "selected_case_id": attempt.selected_case_id,
                "correct_case_id": attempt.correct_case_id,
                "is_correct": attempt.is_correct,
                "explanation": annotation.explanation if annotation else None,
            })
        breakdown.append({
            "sentence_id": sentence_id,
            "text": sentence.text if sentence else None,
            "words": words,
        })

    return {
        "exercise_id": exercise.id,
        "exercise_type": str(getattr(exercise.exercise_type, "value", exercise.exercise_type)),
        "difficulty": str(getattr(exercise.difficulty, "value", exercise.difficulty)),
        "accuracy": accuracy,
        "correct_attempts": correct,
        "total_attempts": total,
        "time_spent_seconds": time_spent,
        "message": encouragement(accuracy),
        "case_performance": case_performance,
        "breakdown": breakdown,
    }
