"""
SessionParticipant model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime


class SessionParticipant(SQLModel, table=True):
    """SessionParticipant table - a user who joined a Together session, with a unique color."""
    __tablename__ = "session_participant"
    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="session_participant_session_user_key"),
        UniqueConstraint("session_id", "color", name="session_participant_session_color_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="together_session.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    playful_username: str
    color: str
    joined_at: datetime = Field(default_factory=datetime.utcnow)
