# app/routers/events.py
import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from app.core.auth import context_from_token
from app.core.errors import Unauthorized
from app.core.events import event_bus

router = APIRouter(tags=["Realtime"])

logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def business_events(websocket: WebSocket, token: str | None = None):
    """
    Push `{event, data}` frames for the token's business.

    Events: new_order, order_status_changed, payment_verified.
    Connections without a valid token are closed with 1008.
    """
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        auth = context_from_token(token)
    except Unauthorized:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Services emit from worker threads; hop onto this connection's loop.
    def forward(event: str, data: dict) -> None:
        loop.call_soon_threadsafe(
            queue.put_nowait,
            {"event": event, "data": jsonable_encoder(data)},
        )

    unsubscribe = event_bus.subscribe(auth.business_id, forward)
    await websocket.accept()
    logger.info("Realtime client connected for business %s", auth.business_id)

    async def pump() -> None:
        while True:
            message = await queue.get()
            await websocket.send_json(message)

    sender = asyncio.create_task(pump())
    try:
        # Inbound frames are ignored; reading is how we notice the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Realtime push failed for business %s", auth.business_id)
        logger.info("Realtime client disconnected for business %s", auth.business_id)
