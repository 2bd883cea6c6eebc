"""
AIExerciseFeedback model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, String as SAString
from typing import Optional, List
from datetime import datetime
from lumi.models.enums import FeedbackStatus


class AIExerciseFeedback(SQLModel, table=True):
    """AIExerciseFeedback table - outbox row and result of the AI analysis of an exercise."""
    __tablename__ = "ai_exercise_feedback"

    id: Optional[int] = Field(default=None, primary_key=True)
    exercise_id: int = Field(foreign_key="exercise.id", unique=True)
    student_id: int = Field(foreign_key="user.id")
    status: FeedbackStatus = Field(
        default=FeedbackStatus.PENDING,
        sa_column=Column(SAString, nullable=False, default=FeedbackStatus.PENDING.value)
    )
    summary: Optional[str] = None
    strengths: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    weaknesses: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    suggestions: Optional[str] = None
    suggested_topics: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
