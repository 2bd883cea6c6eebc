"""
WordAnnotation model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from typing import Optional, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from lumi.models.sentence import Sentence


class WordAnnotation(SQLModel, table=True):
    """WordAnnotation table - the correct case for one word of one sentence."""
    __tablename__ = "word_annotation"
    __table_args__ = (
        UniqueConstraint("sentence_id", "word_index", name="word_annotation_sentence_word_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    sentence_id: int = Field(foreign_key="sentence.id", index=True)
    word_index: int  # 0-based token index in the sentence
    word_text: str
    grammatical_case_id: int = Field(foreign_key="grammatical_case.id")
    explanation: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    sentence: "Sentence" = Relationship(back_populates="annotations")
