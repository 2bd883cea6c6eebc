from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import List

from lumi.core.database import get_session
from lumi.core.security import get_current_user
from lumi.models.models import User
from lumi.schemas.content import ChapterResponse, GrammaticalCaseResponse
from lumi.services.content_service import list_chapters, list_grammatical_cases

router = APIRouter(prefix="/content", tags=["content"])


@router.get("/chapters", response_model=List[ChapterResponse])
async def get_chapters(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    """Chapters in curriculum order."""
    return list_chapters(session)


@router.get("/grammatical-cases", response_model=List[GrammaticalCaseResponse])
async def get_grammatical_cases(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user)
):
    return list_grammatical_cases(session)
