"""
Platform settings managed by teachers and developers.
"""
from datetime import datetime
from typing import Any, Optional
import logging

from sqlmodel import Session

from lumi.core.config import settings
from lumi.core.exceptions import ValidationError
from lumi.models.models import PlatformSetting

logger = logging.getLogger(__name__)

FOCUS_MODE_KEY = "enforce_test_focus_mode"
EXIT_CODE_KEY = "test_exit_code"

# Known keys and the Python type their value must have
KNOWN_SETTINGS = {
    FOCUS_MODE_KEY: bool,
    EXIT_CODE_KEY: str,
}

# Keys whose value is never shown to students
SECRET_SETTINGS = {EXIT_CODE_KEY}


def get_setting(session: Session, key: str, default: Any = None) -> Any:
    row = session.get(PlatformSetting, key)
    if row is None or row.value is None:
        return default
    return row.value


def update_setting(session: Session, key: str, value: Any) -> PlatformSetting:
    """Upsert a setting row after checking the key and value type."""
    expected_type = KNOWN_SETTINGS.get(key)
    if expected_type is None:
        raise ValidationError(f"Unknown setting '{key}'")
    if not isinstance(value, expected_type):
        raise ValidationError(f"Setting '{key}' must be of type {expected_type.__name__}")

    row = session.get(PlatformSetting, key)
    if row is None:
        row = PlatformSetting(key=key, value=value)
    else:
        row.value = value
        row.updated_at = datetime.utcnow()
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info(f"Platform setting '{key}' updated")
    return row


def is_focus_mode_enforced(session: Session) -> bool:
    return bool(get_setting(session, FOCUS_MODE_KEY, settings.default_focus_mode))


def get_exit_code(session: Session) -> Optional[str]:
    return get_setting(session, EXIT_CODE_KEY)
