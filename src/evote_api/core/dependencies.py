"""FastAPI dependency injection for database sessions, auth, access control and providers.

External collaborators (embedding extraction, document OCR, face matching) are
exposed as dependencies so tests can swap them through ``dependency_overrides``.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings, get_settings
from evote_api.core.database import get_session_factory
from evote_api.core.events import ChangeFeed, get_change_feed
from evote_api.core.security import decode_token
from evote_api.lib.biometrics import BaseEmbeddingExtractor, DeepFaceEmbeddingExtractor, FaceMatcher
from evote_api.lib.documents import BaseDocumentExtractor, GeminiDocumentExtractor
from evote_api.lib.roll_matcher import RollMatchEvaluator
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.services import verification_service

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Decode JWT and return the authenticated user.

    Raises:
        HTTPException: If the token is invalid or the user is unknown or inactive.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.InvalidTokenError as exc:
        raise credentials_exception from exc
    username: str | None = payload.get("sub")
    if username is None:
        raise credentials_exception

    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring one of ``roles``."""

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role}' does not have access to this resource",
            )
        return current_user

    return role_checker


def get_embedding_extractor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BaseEmbeddingExtractor:
    return DeepFaceEmbeddingExtractor(
        settings.deepface_url,
        model_name=settings.deepface_model,
        detector_backend=settings.deepface_detector,
        timeout=settings.deepface_timeout,
    )


def get_document_extractor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BaseDocumentExtractor:
    return GeminiDocumentExtractor(
        settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.gemini_timeout,
    )


def get_face_matcher(settings: Annotated[Settings, Depends(get_settings)]) -> FaceMatcher:
    return FaceMatcher(threshold=settings.face_match_threshold, confidence_scale=settings.face_confidence_scale)


def get_roll_evaluator(settings: Annotated[Settings, Depends(get_settings)]) -> RollMatchEvaluator:
    return RollMatchEvaluator(
        name_similarity_threshold=settings.roll_name_similarity_threshold,
        address_match_ratio=settings.roll_address_match_ratio,
    )


def get_feed() -> ChangeFeed:
    return get_change_feed()


async def get_current_voter(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Voter:
    """Return the voter record owned by the authenticated user.

    Raises:
        HTTPException: 404 if the user has no voter record.
    """
    voter = await verification_service.get_voter_for_user(session, current_user.id)
    if voter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No voter record for this account")
    return voter
