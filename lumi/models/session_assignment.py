"""
SessionAssignment model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String as SAString, UniqueConstraint
from typing import Optional
from lumi.models.enums import AssignmentType


class SessionAssignment(SQLModel, table=True):
    """SessionAssignment table - one item of a Together session's ordered curriculum."""
    __tablename__ = "session_assignment"
    __table_args__ = (
        UniqueConstraint("session_id", "order", name="session_assignment_session_order_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="together_session.id", index=True)
    order: int  # 1-based position
    assignment_type: AssignmentType = Field(
        sa_column=Column(SAString, nullable=False)
    )
    source_id: int  # Sentence or flashcard id, depending on assignment_type
