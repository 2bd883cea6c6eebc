"""
Chapter model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Chapter(SQLModel, table=True):
    """Chapter table - a unit of curriculum grouping sentences and flashcards."""
    __tablename__ = "chapter"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    order_index: int = Field(default=0, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
