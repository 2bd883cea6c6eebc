"""
Exercise model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String as SAString
from typing import Optional
from datetime import datetime
from lumi.models.enums import ExerciseKind, Difficulty, ExerciseStatus


class Exercise(SQLModel, table=True):
    """Exercise table - one student's run through a chapter's sentences."""
    __tablename__ = "exercise"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="user.id", index=True)
    chapter_id: int = Field(foreign_key="chapter.id", index=True)
    exercise_type: ExerciseKind = Field(
        default=ExerciseKind.PRACTICE,
        sa_column=Column(SAString, nullable=False, default=ExerciseKind.PRACTICE.value)
    )
    difficulty: Difficulty = Field(
        default=Difficulty.MEDIUM,
        sa_column=Column(SAString, nullable=False, default=Difficulty.MEDIUM.value)
    )
    total_questions: int
    status: ExerciseStatus = Field(
        default=ExerciseStatus.IN_PROGRESS,
        sa_column=Column(SAString, nullable=False, default=ExerciseStatus.IN_PROGRESS.value)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
