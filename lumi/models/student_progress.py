"""
StudentProgress model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime


class StudentProgress(SQLModel, table=True):
    """StudentProgress table - cumulative performance per (student, chapter)."""
    __tablename__ = "student_progress"
    __table_args__ = (
        UniqueConstraint("student_id", "chapter_id", name="student_progress_student_chapter_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="user.id", index=True)
    chapter_id: int = Field(foreign_key="chapter.id")
    total_exercises: int = Field(default=0)
    completed_exercises: int = Field(default=0)
    total_correct: int = Field(default=0)
    total_attempts: int = Field(default=0)
    accuracy_percentage: float = Field(default=0.0)
    last_practiced_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
