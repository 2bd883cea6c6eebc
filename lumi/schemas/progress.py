from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class ChapterProgress(BaseModel):
    chapter_id: int
    chapter_title: Optional[str] = None
    total_exercises: int
    completed_exercises: int
    total_correct: int
    total_attempts: int
    accuracy_percentage: float
    last_practiced_at: Optional[datetime] = None


class ProgressOverviewResponse(BaseModel):
    """Dashboard totals and per-chapter progress of one student."""
    student_id: int
    total_completed: int
    overall_accuracy: int
    total_attempts: int
    chapters_started: int
    chapters: List[ChapterProgress]
