"""
Sentence model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, String as SAString
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from lumi.models.enums import Difficulty

if TYPE_CHECKING:
    from lumi.models.word_annotation import WordAnnotation


class Sentence(SQLModel, table=True):
    """Sentence table - immutable practice text belonging to a chapter."""
    __tablename__ = "sentence"

    id: Optional[int] = Field(default=None, primary_key=True)
    chapter_id: int = Field(foreign_key="chapter.id", index=True)
    text: str
    difficulty: Difficulty = Field(
        default=Difficulty.MEDIUM,
        sa_column=Column(SAString, nullable=False, default=Difficulty.MEDIUM.value)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    annotations: List["WordAnnotation"] = Relationship(back_populates="sentence")

    @property
    def words(self) -> List[str]:
        """Whitespace tokens; annotation word indexes are 0-based positions in this list."""
        return self.text.split()
