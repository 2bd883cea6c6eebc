from fastapi import APIRouter, Depends
from sqlmodel import Session

from lumi.core.database import get_session
from lumi.core.exceptions import NotFoundError
from lumi.core.security import require_roles
from lumi.models.models import PlatformSetting, User, UserRole
from lumi.schemas.settings import SettingResponse, UpdateSettingRequest
from lumi.services.settings_service import KNOWN_SETTINGS, update_setting

router = APIRouter(prefix="/settings", tags=["settings"])

require_staff = require_roles(UserRole.TEACHER, UserRole.DEVELOPER)


@router.get("/{key}", response_model=SettingResponse)
async def get_platform_setting(
    key: str,
    session: Session = Depends(get_session),
    user: User = Depends(require_staff)
):
    if key not in KNOWN_SETTINGS:
        raise NotFoundError(f"Unknown setting '{key}'")
    row = session.get(PlatformSetting, key)
    if row is None:
        return SettingResponse(key=key)
    return SettingResponse(key=row.key, value=row.value, updated_at=row.updated_at)


@router.put("/{key}", response_model=SettingResponse)
async def put_platform_setting(
    key: str,
    request: UpdateSettingRequest,
    session: Session = Depends(get_session),
    user: User = Depends(require_staff)
):
    row = update_setting(session, key, request.value)
    return SettingResponse(key=row.key, value=row.value, updated_at=row.updated_at)
