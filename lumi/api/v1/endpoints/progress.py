from fastapi import APIRouter, Depends
from sqlmodel import Session

from lumi.core.database import get_session
from lumi.core.exceptions import NotFoundError
from lumi.core.security import require_roles
from lumi.models.models import User, UserRole
from lumi.schemas.progress import ProgressOverviewResponse
from lumi.services.progress_service import progress_overview

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/me", response_model=ProgressOverviewResponse)
async def my_progress(
    session: Session = Depends(get_session),
    user: User = Depends(require_roles(UserRole.STUDENT))
):
    """Dashboard progress of the calling student."""
    return progress_overview(session, user.id)


@router.get("/students/{student_id}", response_model=ProgressOverviewResponse)
async def student_progress(
    student_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_roles(UserRole.TEACHER, UserRole.DEVELOPER))
):
    """Progress of any student, for teachers and developers."""
    student = session.get(User, student_id)
    if not student:
        raise NotFoundError(f"User with id {student_id} not found")
    return progress_overview(session, student.id)
