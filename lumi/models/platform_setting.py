"""
PlatformSetting model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Any, Optional
from datetime import datetime


class PlatformSetting(SQLModel, table=True):
    """PlatformSetting table - key/value switches managed by teachers and developers."""
    __tablename__ = "platform_setting"

    key: str = Field(primary_key=True)
    value: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=datetime.utcnow)
