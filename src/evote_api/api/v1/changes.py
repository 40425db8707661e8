"""Change feed websocket.

WS /changes?token=<jwt>: streams change notifications to administrators.
"""

import jwt
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from loguru import logger
from sqlalchemy import select

from evote_api.core.config import get_settings
from evote_api.core.database import get_session_factory
from evote_api.core.events import get_change_feed
from evote_api.core.security import ROLE_ADMIN, decode_token
from evote_api.models.user import User

changes_router = APIRouter(tags=["changes"])


async def _authorized(token: str | None) -> bool:
    if not token:
        return False
    settings = get_settings()
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.InvalidTokenError:
        return False
    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(select(User).where(User.username == payload.get("sub")))
        user = result.scalar_one_or_none()
    return user is not None and user.is_active and user.role == ROLE_ADMIN


@changes_router.websocket("/changes")
async def changes(websocket: WebSocket) -> None:
    if not await _authorized(websocket.query_params.get("token")):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    feed = get_change_feed()
    logger.info("Change feed subscriber connected ({} active)", feed.subscriber_count + 1)
    try:
        async for event in feed.stream():
            await websocket.send_json(event.to_message())
    except WebSocketDisconnect:
        logger.info("Change feed subscriber disconnected")
