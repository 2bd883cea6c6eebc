"""
ExerciseAttempt model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class ExerciseAttempt(SQLModel, table=True):
    """ExerciseAttempt table - one judgment for one annotated word. Never updated."""
    __tablename__ = "exercise_attempt"

    id: Optional[int] = Field(default=None, primary_key=True)
    exercise_id: int = Field(foreign_key="exercise.id", index=True)
    sentence_id: int = Field(foreign_key="sentence.id")
    word_index: int
    selected_case_id: Optional[int] = Field(default=None, foreign_key="grammatical_case.id")
    correct_case_id: int = Field(foreign_key="grammatical_case.id")
    is_correct: bool
    time_spent_seconds: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
