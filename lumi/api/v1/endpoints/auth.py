from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select
import logging

from lumi.core.database import get_session
from lumi.core.exceptions import AuthenticationError, ValidationError
from lumi.core.security import create_access_token, get_current_user
from lumi.models.models import User, UserRole
from lumi.schemas.auth import LoginRequest, RegisterRequest, AuthResponse, UserResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=str(getattr(user.role, "value", user.role)),
        created_at=user.created_at,
    )


def _authenticate(session: Session, username: str, password: str) -> User:
    # Try to find user by username or email
    statement = select(User).where(
        (User.username == username) | (User.email == username)
    )
    user = session.exec(statement).first()
    if not user or not user.verify_password(password):
        raise AuthenticationError("Invalid username/email or password")
    return user


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    session: Session = Depends(get_session)
):
    """Login with username/email and password."""
    user = _authenticate(session, login_data.username, login_data.password)
    return AuthResponse(
        user=_user_response(user),
        access_token=create_access_token(user),
        message="Login successful"
    )


@router.post("/token", response_model=TokenResponse)
async def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session)
):
    """OAuth2 password flow, used by the interactive docs."""
    user = _authenticate(session, form_data.username, form_data.password)
    return TokenResponse(access_token=create_access_token(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    session: Session = Depends(get_session)
):
    """Register a new student or teacher."""
    if register_data.role == UserRole.DEVELOPER:
        raise ValidationError("Developer accounts cannot be self-registered")

    # Check if username already exists
    existing_user = session.exec(select(User).where(User.username == register_data.username)).first()
    if existing_user:
        raise ValidationError("Username already exists")

    # Check if email already exists
    existing_email = session.exec(select(User).where(User.email == register_data.email)).first()
    if existing_email:
        raise ValidationError("Email already exists")

    new_user = User(
        username=register_data.username,
        email=register_data.email,
        password=User.hash_password(register_data.password),
        full_name=register_data.full_name,
        role=register_data.role,
    )
    session.add(new_user)
    session.commit()
    session.refresh(new_user)
    logger.info(f"Registered {register_data.role.value} '{new_user.username}' (id {new_user.id})")

    return AuthResponse(
        user=_user_response(new_user),
        access_token=create_access_token(new_user),
        message="Registration successful"
    )


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    """The authenticated user."""
    return _user_response(user)
