"""WebSocket relay for realtime topics."""

import asyncio
from typing import Any
from uuid import UUID

import orjson
import structlog
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import decode_token
from taskflow.config import get_settings
from taskflow.db.session import async_session_factory
from taskflow.exceptions import NotFoundError
from taskflow.models.comment import COMMENT_ENTITY_TYPES
from taskflow.realtime import ChannelMessage, Subscription, TypingTracker, hub, parse_topic
from taskflow.services.comment import CommentService
from taskflow.services.workspace import WorkspaceService

router = APIRouter(prefix="/ws")
logger = structlog.get_logger()

typing_tracker = TypingTracker(ttl_seconds=get_settings().typing_indicator_ttl_seconds)


async def topic_in_workspace(db: AsyncSession, topic: str, workspace_id: UUID) -> bool:
    """Whether ``topic`` carries events of ``workspace_id``.

    Comment topics on calendar events cannot be resolved to a workspace;
    they are allowed and their messages are filtered per workspace.
    """
    parsed = parse_topic(topic)
    if parsed is None:
        return False
    kind, entity_type, entity_id = parsed
    if kind == "mentions":
        return entity_id == workspace_id
    if entity_type not in COMMENT_ENTITY_TYPES:
        return False
    try:
        owner = await CommentService(db).entity_workspace(entity_type, entity_id)
    except NotFoundError:
        return False
    return owner is None or owner == workspace_id


async def _authorize(token: str, topic: str, workspace_id: UUID) -> str | None:
    """User id for a valid token held by an active member the topic belongs to."""
    try:
        claims = decode_token(token)
        user_id = UUID(str(claims.get("sub")))
    except (HTTPException, ValueError):
        return None
    async with async_session_factory() as db:
        membership = await WorkspaceService(db).get_membership(workspace_id, user_id)
        if membership is None or not await topic_in_workspace(db, topic, workspace_id):
            return None
    return str(user_id)


def frame_for(message: ChannelMessage, user_id: str) -> dict[str, Any]:
    """The JSON frame sent to ``user_id``; typing lists leave out the recipient."""
    frame = message.to_dict()
    if message.event == "typing":
        frame["payload"] = {
            **message.payload,
            "typing_users": [
                user
                for user in message.payload.get("typing_users", [])
                if user["user_id"] != user_id
            ],
        }
    return frame


async def _relay(websocket: WebSocket, subscription: Subscription, user_id: str) -> None:
    async for message in subscription:
        if message.event == "typing" and message.sender_id == user_id:
            continue
        await websocket.send_text(orjson.dumps(frame_for(message, user_id)).decode())


async def _publish_typing(
    topic: str,
    workspace_id: str,
    user_id: str,
    display_name: str | None,
    is_typing: bool,
) -> None:
    if is_typing:
        typing_tracker.touch(topic, user_id, display_name)
    else:
        typing_tracker.stop(topic, user_id)
    await hub.publish(
        topic,
        "typing",
        {
            "user_id": user_id,
            "display_name": display_name,
            "is_typing": is_typing,
            "typing_users": typing_tracker.active(topic),
        },
        sender_id=user_id,
        workspace_id=workspace_id,
    )


async def _stop_relay(relay: asyncio.Task, topic: str, user_id: str) -> None:
    relay.cancel()
    try:
        await relay
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.warning("realtime_relay_failed", topic=topic, user_id=user_id, exc_info=True)


@router.websocket("/{topic}")
async def topic_stream(
    websocket: WebSocket,
    topic: str,
    token: str = Query(...),
    workspace_id: UUID = Query(...),
):
    """
    Stream events published on ``topic``.

    Query parameters:
    - token: Bearer token of the connecting user.
    - workspace_id: Workspace the topic belongs to; the user must be a member.

    Topics:
    - mentions:{workspace_id}
    - comments:{entity_type}:{entity_id}

    Client messages:
    - {"type": "typing", "is_typing": bool, "display_name": str}
    - {"type": "ping"}
    """
    if not get_settings().feature_realtime_enabled:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = await _authorize(token, topic, workspace_id)
    if user_id is None:
        logger.info("realtime_rejected", topic=topic, workspace_id=str(workspace_id))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    workspace = str(workspace_id)
    await websocket.accept()
    subscription = hub.subscribe(topic, subscriber_id=user_id, workspace_id=workspace)
    relay = asyncio.create_task(_relay(websocket, subscription, user_id))
    logger.info("realtime_subscribed", topic=topic, user_id=user_id)

    try:
        while True:
            try:
                message = orjson.loads(await websocket.receive_text())
            except orjson.JSONDecodeError:
                continue
            if not isinstance(message, dict):
                continue

            if message.get("type") == "typing":
                await _publish_typing(
                    topic,
                    workspace,
                    user_id,
                    message.get("display_name"),
                    message.get("is_typing", True) is not False,
                )
            elif message.get("type") == "ping":
                await websocket.send_text(orjson.dumps({"type": "pong"}).decode())
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()
        await _stop_relay(relay, topic, user_id)
        if any(u["user_id"] == user_id for u in typing_tracker.active(topic)):
            await _publish_typing(topic, workspace, user_id, None, False)
        logger.info("realtime_unsubscribed", topic=topic, user_id=user_id)
