"""
Exercise endpoints: setup, the per-screen engine operations, results and AI feedback.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlmodel import Session, select
from typing import Any, Dict, Optional
import logging

from lumi.core.database import get_session
from lumi.core.exceptions import AuthorizationError, NotFoundError
from lumi.core.security import get_current_user, require_roles, is_staff
from lumi.models.models import AIExerciseFeedback, Exercise, User, UserRole
from lumi.schemas.exercise import (
    ChooseCaseRequest,
    CreateExerciseRequest,
    ExerciseResponse,
    ExerciseResultsResponse,
    ExerciseStateResponse,
    ExitRequest,
    FeedbackResponse,
    SelectWordRequest,
)
from lumi.services.content_service import list_grammatical_cases
from lumi.services.exercise_engine import ExerciseEngine
from lumi.services.exercise_service import (
    abandon_exercise,
    create_exercise,
    engine_snapshot,
    get_owned_exercise,
    load_engine,
    submit_exercise,
)
from lumi.services.feedback_service import feedback_payload, process_feedback_job
from lumi.services.results_service import summarize_exercise

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exercises", tags=["exercises"])

require_student = require_roles(UserRole.STUDENT)


def _snapshot(session: Session, engine: ExerciseEngine, submitted: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    snapshot = engine_snapshot(engine, list_grammatical_cases(session))
    snapshot["submitted"] = submitted
    return snapshot


def _running(session: Session, exercise_id: int, user: User):
    exercise = get_owned_exercise(session, exercise_id, user)
    return exercise, load_engine(session, exercise)


def _submit(
    session: Session,
    exercise: Exercise,
    engine: ExerciseEngine,
    background_tasks: BackgroundTasks
) -> Dict[str, int]:
    result = submit_exercise(session, exercise, engine)
    # Feedback generation runs after the response with its own session
    background_tasks.add_task(process_feedback_job, exercise.id)
    return result


def _readable_exercise(session: Session, exercise_id: int, user: User) -> Exercise:
    """The exercise, if the user owns it or is a teacher/developer."""
    exercise = session.get(Exercise, exercise_id)
    if not exercise:
        raise NotFoundError(f"Exercise with id {exercise_id} not found")
    if exercise.student_id != user.id and not is_staff(user):
        raise AuthorizationError("This exercise belongs to another student")
    return exercise


@router.post("", response_model=ExerciseResponse, status_code=status.HTTP_201_CREATED)
async def create(
    request: CreateExerciseRequest,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Create an in-progress exercise on a chapter."""
    return create_exercise(
        session,
        user,
        chapter_id=request.chapter_id,
        exercise_type=request.exercise_type,
        difficulty=request.difficulty,
        total_questions=request.total_questions,
    )


@router.get("/{exercise_id}", response_model=ExerciseStateResponse)
async def get_state(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Current screen of the exercise."""
    _, engine = _running(session, exercise_id, user)
    return _snapshot(session, engine)


@router.post("/{exercise_id}/start", response_model=ExerciseStateResponse)
async def start(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Enter a focus-locked test."""
    _, engine = _running(session, exercise_id, user)
    engine.start()
    return _snapshot(session, engine)


@router.post("/{exercise_id}/select-word", response_model=ExerciseStateResponse)
async def select_word(
    exercise_id: int,
    request: SelectWordRequest,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    _, engine = _running(session, exercise_id, user)
    engine.select_word(request.word_index)
    return _snapshot(session, engine)


@router.post("/{exercise_id}/choose-case", response_model=ExerciseStateResponse)
async def choose_case(
    exercise_id: int,
    request: ChooseCaseRequest,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    _, engine = _running(session, exercise_id, user)
    engine.choose_case_for_selection(request.case_id)
    return _snapshot(session, engine)


@router.post("/{exercise_id}/check", response_model=ExerciseStateResponse)
async def check(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Reveal correctness for the current sentence."""
    _, engine = _running(session, exercise_id, user)
    engine.check_answer()
    return _snapshot(session, engine)


@router.post("/{exercise_id}/continue", response_model=ExerciseStateResponse)
async def continue_exercise(
    exercise_id: int,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Go to the next sentence, or submit after the last one."""
    exercise, engine = _running(session, exercise_id, user)
    submitted = None
    if engine.continue_():
        submitted = _submit(session, exercise, engine, background_tasks)
    return _snapshot(session, engine, submitted)


@router.post("/{exercise_id}/submit", response_model=ExerciseStateResponse)
async def submit(
    exercise_id: int,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Retry a submission that failed."""
    exercise, engine = _running(session, exercise_id, user)
    submitted = _submit(session, exercise, engine, background_tasks)
    return _snapshot(session, engine, submitted)


@router.post("/{exercise_id}/focus-lost", response_model=ExerciseStateResponse)
async def focus_lost(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    _, engine = _running(session, exercise_id, user)
    engine.lose_focus()
    return _snapshot(session, engine)


@router.post("/{exercise_id}/resume-focus", response_model=ExerciseStateResponse)
async def resume_focus(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    _, engine = _running(session, exercise_id, user)
    engine.resume_focus()
    return _snapshot(session, engine)


@router.post("/{exercise_id}/exit", response_model=ExerciseStateResponse)
async def exit_test(
    exercise_id: int,
    request: ExitRequest,
    session: Session = Depends(get_session),
    user: User = Depends(require_student)
):
    """Leave a locked test with the teacher's exit code. Answers are discarded."""
    exercise, engine = _running(session, exercise_id, user)
    abandon_exercise(session, exercise, engine, request.code)
    return _snapshot(session, engine)


@router.get("/{exercise_id}/results", response_model=ExerciseResultsResponse)
async def results(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    exercise = _readable_exercise(session, exercise_id, user)
    return summarize_exercise(session, exercise)


@router.get("/{exercise_id}/feedback", response_model=FeedbackResponse)
async def feedback(
    exercise_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    """AI feedback for a completed exercise; poll while the status is pending."""
    exercise = _readable_exercise(session, exercise_id, user)
    row = session.exec(
        select(AIExerciseFeedback).where(AIExerciseFeedback.exercise_id == exercise.id)
    ).first()
    return feedback_payload(row)
