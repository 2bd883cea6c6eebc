"""
GrammaticalCase model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class GrammaticalCase(SQLModel, table=True):
    """GrammaticalCase table - reference list of cases a word can be tagged with."""
    __tablename__ = "grammatical_case"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)  # e.g. "Nominative"
    abbreviation: str  # e.g. "NOM"
    color: str  # Display color as hex string
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
