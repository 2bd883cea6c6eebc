"""
Student progress aggregation.

Progress rows are updated with server-side arithmetic (``col = col + delta``)
so that two submissions for the same (student, chapter) never lose each
other's increments.
"""
# pyright: reportAttributeAccessIssue=false
from datetime import datetime
from typing import Dict, List, Any
import logging

from sqlmodel import Session, select
from sqlalchemy import update, case
from sqlalchemy.exc import IntegrityError

from lumi.models.models import StudentProgress, Chapter

logger = logging.getLogger(__name__)


def _increment_statement(student_id: int, chapter_id: int, correct: int, attempts: int, now: datetime):
    new_correct = StudentProgress.total_correct + correct
    new_attempts = StudentProgress.total_attempts + attempts
    return (
        update(StudentProgress)
        .where(
            StudentProgress.student_id == student_id,
            StudentProgress.chapter_id == chapter_id,
        )
        .values(
            total_exercises=StudentProgress.total_exercises + 1,
            completed_exercises=StudentProgress.completed_exercises + 1,
            total_correct=new_correct,
            total_attempts=new_attempts,
            accuracy_percentage=case(
                (new_attempts > 0, new_correct * 100.0 / new_attempts),
                else_=0.0,
            ),
            last_practiced_at=now,
            updated_at=now,
        )
    )


def record_completed_exercise(
    session: Session,
    student_id: int,
    chapter_id: int,
    correct: int,
    attempts: int
) -> None:
    """
    Add one completed exercise to the (student, chapter) aggregate.

    Runs inside the caller's transaction; the caller commits.
    """
    now = datetime.utcnow()
    # Pending rows of the caller must not end up inside the savepoint below
    session.flush()
    connection = session.connection()
    result = connection.execute(_increment_statement(student_id, chapter_id, correct, attempts, now))
    if result.rowcount:
        return

    # First completion for this chapter
    accuracy = (correct / attempts * 100) if attempts > 0 else 0.0
    try:
        with session.begin_nested():
            session.add(StudentProgress(
                student_id=student_id,
                chapter_id=chapter_id,
                total_exercises=1,
                completed_exercises=1,
                total_correct=correct,
                total_attempts=attempts,
                accuracy_percentage=accuracy,
                last_practiced_at=now,
                updated_at=now,
            ))
    except IntegrityError:
        # Another submission created the row first; add to it instead
        logger.info(f"Progress row for student {student_id}, chapter {chapter_id} created concurrently")
        connection.execute(_increment_statement(student_id, chapter_id, correct, attempts, now))


def list_progress(session: Session, student_id: int) -> List[StudentProgress]:
    return list(session.exec(
        select(StudentProgress)
        .where(StudentProgress.student_id == student_id)
        .order_by(StudentProgress.chapter_id)
    ).all())


def progress_overview(session: Session, student_id: int) -> Dict[str, Any]:
    """Per-chapter progress rows and the totals shown on the student dashboard."""
    rows = list_progress(session, student_id)
    chapter_ids = [row.chapter_id for row in rows]
    titles: Dict[int, str] = {}
    if chapter_ids:
        chapters = session.exec(select(Chapter).where(Chapter.id.in_(chapter_ids))).all()
        titles = {chapter.id: chapter.title for chapter in chapters}

    total_completed = sum(row.completed_exercises for row in rows)
    total_attempts = sum(row.total_attempts for row in rows)
    total_correct = sum(row.total_correct for row in rows)
    overall_accuracy = round(total_correct / total_attempts * 100) if total_attempts > 0 else 0

    return {
        "student_id": student_id,
        "total_completed": total_completed,
        "overall_accuracy": overall_accuracy,
        "total_attempts": total_attempts,
        "chapters_started": len(rows),
        "chapters": [
            {
                "chapter_id": row.chapter_id,
                "chapter_title": titles.get(row.chapter_id),
                "total_exercises": row.total_exercises,
                "completed_exercises": row.completed_exercises,
                "total_correct": row.total_correct,
                "total_attempts": row.total_attempts,
                "accuracy_percentage": row.accuracy_percentage,
                "last_practiced_at": row.last_practiced_at,
            }
            for row in rows
        ],
    }
