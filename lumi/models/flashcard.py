"""
Flashcard model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Flashcard(SQLModel, table=True):
    """Flashcard table - a term and its meaning, optionally tied to a chapter."""
    __tablename__ = "flashcard"

    id: Optional[int] = Field(default=None, primary_key=True)
    chapter_id: Optional[int] = Field(default=None, foreign_key="chapter.id")
    term: str
    definition: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
