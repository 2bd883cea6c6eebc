from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class JoinSessionRequest(BaseModel):
    color: Optional[str] = Field(None, description="Palette colour to claim; the first free one when omitted")


class TogetherSessionResponse(BaseModel):
    id: int
    created_by: int
    status: str
    current_assignment_index: int
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ParticipantResponse(BaseModel):
    id: int
    session_id: int
    user_id: int
    playful_username: str
    color: str
    joined_at: datetime

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    order: int
    assignment_type: str
    source_id: int

    class Config:
        from_attributes = True


class LobbyResponse(BaseModel):
    """Lobby screen: the session, who is in it and which colours are still free."""
    session: TogetherSessionResponse
    participants: List[ParticipantResponse]
    available_colors: List[str]
    is_host: bool
    total_assignments: int


class PlayResponse(BaseModel):
    """Play screen of a participant."""
    session_id: int
    status: str
    current_assignment_index: int
    total_assignments: int
    current_assignment: Optional[AssignmentResponse] = None
    current_content: Optional[Dict[str, Any]] = None
    is_host: bool
    participants: List[ParticipantResponse]


class LeaveResponse(BaseModel):
    left: bool
