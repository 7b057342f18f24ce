from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from agencydesk_core.events import user_channel

from ..context import ActorContext, resolve_actor
from ..db import SessionLocal
from ..redis_client import get_async_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])

INVALID_TOKEN_CLOSE_CODE = 4001


def authenticate_socket(token: str) -> ActorContext:
    with SessionLocal() as db:
        return resolve_actor(db, token)


async def _forward(websocket: WebSocket, pubsub: PubSub) -> None:
    async for message in pubsub.listen():
        if message.get("type") != "message":
            continue
        await websocket.send_text(message["data"])


@router.websocket("/ws")
async def live_socket(websocket: WebSocket, token: str = Query(default="")) -> None:
    try:
        context = await asyncio.to_thread(authenticate_socket, token)
    except HTTPException:
        await websocket.close(code=INVALID_TOKEN_CLOSE_CODE, reason="Invalid token")
        return

    await websocket.accept()
    channel = user_channel(context.user_id)
    redis = get_async_redis_client()
    pubsub = redis.pubsub()
    forwarder: asyncio.Task[None] | None = None
    logger.info("live session opened for %s", context.user_id)
    try:
        try:
            await pubsub.subscribe(channel)
            forwarder = asyncio.create_task(_forward(websocket, pubsub))
        except RedisError:
            # Pings still work; the client falls back to polling its inbox.
            logger.warning("live subscription for %s unavailable", context.user_id, exc_info=True)

        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        if forwarder is not None:
            forwarder.cancel()
        try:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            await redis.aclose()
        except RedisError:
            logger.debug("live channel cleanup failed for %s", context.user_id, exc_info=True)
        logger.info("live session closed for %s", context.user_id)
