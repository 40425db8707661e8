"""Authentication and user management service."""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings
from evote_api.core.security import create_access_token, hash_password, verify_password
from evote_api.models.user import User
from evote_api.schemas.auth import TokenResponse, UserCreateRequest


class DuplicateUserError(ValueError):
    """Raised when a username or email is already taken."""


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    """Authenticate a user by username and password.

    Args:
        session: The database session.
        username: The username to authenticate.
        password: The plaintext password.

    Returns:
        The User if authentication succeeds, None otherwise.
    """
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    user.last_login_at = datetime.now(UTC)
    await session.commit()
    return user


async def username_or_email_taken(session: AsyncSession, username: str, email: str) -> bool:
    existing = await session.execute(
        select(User.id).where((User.username == username) | (User.email == email)).limit(1)
    )
    return existing.scalar_one_or_none() is not None


def build_user(username: str, email: str, password: str, role: str) -> User:
    """Construct an unsaved User with a hashed password."""
    return User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        role=role,
    )


async def create_user(session: AsyncSession, request: UserCreateRequest) -> User:
    """Create a new user.

    Raises:
        DuplicateUserError: If username or email already exists.
    """
    if await username_or_email_taken(session, request.username, request.email):
        msg = "Username or email already exists"
        raise DuplicateUserError(msg)

    user = build_user(request.username, request.email, request.password, request.role)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        msg = "Username or email already exists"
        raise DuplicateUserError(msg) from e
    await session.refresh(user)
    return user


def generate_token(user: User, settings: Settings) -> TokenResponse:
    """Issue an access token for ``user``."""
    access_token = create_access_token(
        subject=user.username,
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_access_token_expire_minutes,
    )
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )
