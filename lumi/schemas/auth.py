from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from lumi.models.enums import UserRole


class LoginRequest(BaseModel):
    """Login request schema."""
    username: str = Field(..., description="Username or email")
    password: str = Field(..., min_length=1, description="Password")


class RegisterRequest(BaseModel):
    """Registration request schema."""
    username: str = Field(..., min_length=3, max_length=50, description="Username")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Password (minimum 6 characters)")
    full_name: Optional[str] = Field(None, max_length=200, description="User's full name")
    role: UserRole = Field(UserRole.STUDENT, description="Role: student, teacher or developer")


class UserResponse(BaseModel):
    """User response schema (without password)."""
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Authentication response schema."""
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    message: str


class TokenResponse(BaseModel):
    """OAuth2 token response."""
    access_token: str
    token_type: str = "bearer"
