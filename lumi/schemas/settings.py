from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime


class SettingResponse(BaseModel):
    key: str
    value: Optional[Any] = None
    updated_at: Optional[datetime] = None


class UpdateSettingRequest(BaseModel):
    value: Any = Field(..., description="New value; boolean for enforce_test_focus_mode, string for test_exit_code")
