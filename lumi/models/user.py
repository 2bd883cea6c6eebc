"""
User model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String as SAString
from typing import Optional
from datetime import datetime
import hashlib

from lumi.models.enums import UserRole


class User(SQLModel, table=True):
    """User table - stores user information and platform role."""
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)  # Unique username
    email: str = Field(unique=True, index=True)  # Email address
    password: str  # Hashed password
    full_name: Optional[str] = Field(default=None)
    role: UserRole = Field(
        default=UserRole.STUDENT,
        sa_column=Column(SAString, nullable=False, default=UserRole.STUDENT.value)
    )  # 'student', 'teacher' or 'developer' - stored as string
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @staticmethod
    def hash_password(password: str) -> str:
        """Simple password hashing using SHA256."""
        return hashlib.sha256(password.encode()).hexdigest()

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return self.password == self.hash_password(password)
