"""
Token issuing and the authorization guard used by every protected endpoint.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Iterable
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from lumi.core.config import settings
from lumi.core.database import get_session
from lumi.core.exceptions import AuthenticationError, AuthorizationError
from lumi.models.models import User, UserRole

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/token", auto_error=False)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token carrying the user id and role."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
    to_encode = {"sub": str(user.id), "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """Return the user id carried by a token, or raise AuthenticationError."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError("Could not validate credentials") from e
    subject = payload.get("sub")
    if subject is None:
        raise AuthenticationError("Could not validate credentials")
    try:
        return int(subject)
    except ValueError as e:
        raise AuthenticationError("Could not validate credentials") from e


def resolve_user(session: Session, token: Optional[str]) -> User:
    """Look up the user behind a bearer token."""
    if not token:
        raise AuthenticationError("Not authenticated")
    user_id = decode_access_token(token)
    user = session.get(User, user_id)
    if not user:
        raise AuthenticationError("Could not validate credentials")
    return user


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session)
) -> User:
    """Dependency returning the authenticated user (401 otherwise)."""
    return resolve_user(session, token)


def require_roles(*roles: UserRole):
    """
    Build a dependency that admits only users whose role is in the given capability set.

    Usage:
        user: User = Depends(require_roles(UserRole.TEACHER, UserRole.DEVELOPER))
    """
    allowed = {role.value for role in roles}

    def guard(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, allowed):
            logger.warning(f"User {user.id} with role {user.role} denied (requires one of {sorted(allowed)})")
            raise AuthorizationError("Forbidden")
        return user

    return guard


def has_role(user: User, roles: Iterable[str]) -> bool:
    role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
    return role in set(roles)


def is_staff(user: User) -> bool:
    """Teachers and developers can see every student's data."""
    return has_role(user, {UserRole.TEACHER.value, UserRole.DEVELOPER.value})
