"""
TogetherSession model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String as SAString
from typing import Optional
from datetime import datetime
from lumi.models.enums import TogetherStatus


class TogetherSession(SQLModel, table=True):
    """TogetherSession table - a host-paced shared practice session."""
    __tablename__ = "together_session"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_by: int = Field(foreign_key="user.id")  # Host
    status: TogetherStatus = Field(
        default=TogetherStatus.LOBBY,
        sa_column=Column(SAString, nullable=False, default=TogetherStatus.LOBBY.value)
    )
    current_assignment_index: int = Field(default=1)  # 1-based; beyond the last order means completed
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
