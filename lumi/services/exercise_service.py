"""
Exercise service: creating exercises, loading their engine and committing
results.
"""
# pyright: reportAttributeAccessIssue=false
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlmodel import Session
from sqlalchemy.exc import SQLAlchemyError

from lumi.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from lumi.models.models import (
    User,
    Chapter,
    Exercise,
    ExerciseKind,
    ExerciseStatus,
    Difficulty,
    GrammaticalCase,
)
from lumi.services.content_service import (
    fetch_exercise_sentences,
    fetch_annotations,
    list_grammatical_cases,
)
from lumi.services.exercise_engine import (
    ExerciseEngine,
    EnginePhase,
    SentenceItem,
    WordTarget,
    registry,
)
from lumi.services.progress_service import record_completed_exercise
from lumi.services.feedback_service import enqueue_feedback
from lumi.services.settings_service import is_focus_mode_enforced, get_exit_code

logger = logging.getLogger(__name__)


def create_exercise(
    session: Session,
    student: User,
    chapter_id: int,
    exercise_type: ExerciseKind,
    difficulty: Difficulty,
    total_questions: int
) -> Exercise:
    """Create an in-progress exercise for the student."""
    if total_questions < 1:
        raise ValidationError("total_questions must be >= 1")
    if not session.get(Chapter, chapter_id):
        raise NotFoundError(f"Chapter with id {chapter_id} not found")

    exercise = Exercise(
        student_id=student.id,
        chapter_id=chapter_id,
        exercise_type=exercise_type,
        difficulty=difficulty,
        total_questions=total_questions,
        status=ExerciseStatus.IN_PROGRESS,
    )
    session.add(exercise)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error creating exercise for student {student.id}: {str(e)}")
        raise PersistenceError("Failed to create exercise. Please try again.") from e
    session.refresh(exercise)
    logger.info(f"Created {exercise.exercise_type} exercise {exercise.id} for student {student.id}")
    return exercise


def get_owned_exercise(session: Session, exercise_id: int, student: User) -> Exercise:
    exercise = session.get(Exercise, exercise_id)
    if not exercise:
        raise NotFoundError(f"Exercise with id {exercise_id} not found")
    if exercise.student_id != student.id:
        raise AuthorizationError("This exercise belongs to another student")
    return exercise


def load_engine(session: Session, exercise: Exercise) -> ExerciseEngine:
    """Return the running engine for an exercise, building it from the database on first use."""
    if exercise.status == ExerciseStatus.COMPLETED:
        raise StateError("Exercise is already completed")

    engine = registry.get(exercise.id)
    if engine is not None:
        return engine

    sentences = fetch_exercise_sentences(
        session, exercise.chapter_id, exercise.difficulty, exercise.total_questions
    )
    annotations = fetch_annotations(session, [s.id for s in sentences])
    cases = list_grammatical_cases(session)

    items = [
        SentenceItem(
            sentence_id=sentence.id,
            text=sentence.text,
            targets=[
                WordTarget(
                    word_index=a.word_index,
                    word_text=a.word_text,
                    correct_case_id=a.grammatical_case_id,
                    explanation=a.explanation,
                )
                for a in annotations.get(sentence.id, [])
            ],
        )
        for sentence in sentences
    ]

    focus_required = exercise.exercise_type == ExerciseKind.TEST and is_focus_mode_enforced(session)
    engine = ExerciseEngine(
        exercise_id=exercise.id,
        sentences=items,
        case_ids=[c.id for c in cases],
        focus_required=focus_required,
    )
    logger.info(
        f"Loaded exercise {exercise.id}: {len(items)} sentences, "
        f"{engine.total_targets} words to identify, focus_required={focus_required}"
    )
    return registry.put(engine)


def submit_exercise(session: Session, exercise: Exercise, engine: ExerciseEngine) -> Dict[str, int]:
    """
    Persist the engine's answers as attempts, complete the exercise, update
    progress and enqueue AI feedback, all in one transaction.

    On a database error the engine goes back to the feedback screen so the
    student can retry.
    """
    engine.begin_submit()

    attempts = engine.build_attempts()
    correct = sum(1 for a in attempts if a.is_correct)
    try:
        session.add_all(attempts)
        exercise.status = ExerciseStatus.COMPLETED
        exercise.completed_at = datetime.utcnow()
        session.add(exercise)
        record_completed_exercise(
            session,
            student_id=exercise.student_id,
            chapter_id=exercise.chapter_id,
            correct=correct,
            attempts=len(attempts),
        )
        enqueue_feedback(session, exercise)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        engine.submission_failed()
        logger.error(f"Error submitting exercise {exercise.id}: {str(e)}")
        raise PersistenceError("Failed to submit exercise. Please try again.") from e

    engine.mark_completed()
    registry.discard(exercise.id)
    logger.info(
        f"Exercise {exercise.id} submitted: {len(attempts)} attempts, {correct} correct"
    )
    return {"created_attempts_count": len(attempts), "correct_count": correct}


def abandon_exercise(session: Session, exercise: Exercise, engine: ExerciseEngine, code: Optional[str]) -> None:
    """Leave a locked test with the teacher's exit code; nothing is written."""
    engine.request_exit(code, get_exit_code(session))
    registry.discard(exercise.id)


def engine_snapshot(engine: ExerciseEngine, cases: List[GrammaticalCase]) -> Dict[str, Any]:
    """Everything a client needs to render the current screen."""
    sentence = engine.current_sentence
    revealed = engine.phase in (EnginePhase.FEEDBACK, EnginePhase.SUBMITTING)
    answers = {a.word_index: a for a in engine.answers_for_current()}

    words_to_identify = []
    if sentence is not None:
        for target in sentence.targets:
            answer = answers.get(target.word_index)
            entry: Dict[str, Any] = {
                "word_index": target.word_index,
                "word_text": target.word_text,
                "selected_case_id": answer.selected_case_id if answer else None,
            }
            if revealed:
                entry["correct_case_id"] = target.correct_case_id
                entry["is_correct"] = answer.is_correct if answer else False
                entry["explanation"] = target.explanation
            words_to_identify.append(entry)

    return {
        "exercise_id": engine.exercise_id,
        "phase": engine.phase.value,
        "focus_required": engine.focus_required,
        "focus_lost": engine.focus_lost,
        "question_number": engine.current_index + 1 if sentence else 0,
        "total_questions": len(engine.sentences),
        "sentence_id": sentence.sentence_id if sentence else None,
        "words": sentence.words if sentence else [],
        "words_to_identify": words_to_identify,
        "pending_selection": engine.pending_selection,
        "is_current_complete": engine.is_current_complete(),
        "progress_percentage": round(engine.progress_percentage, 1),
        "elapsed_seconds": engine.elapsed_seconds(),
        "grammatical_cases": [
            {"id": c.id, "name": c.name, "abbreviation": c.abbreviation, "color": c.color}
            for c in cases
        ],
    }
