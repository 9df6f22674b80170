from fastapi import APIRouter, WebSocket
import asyncio
import logging
import time
import uuid

from starlette.websockets import WebSocketState

from borderpass.core.config import ANONYMOUS_USER_ID, MAX_WS_TEXT_BYTES, WS_HEARTBEAT_INTERVAL_SEC
from borderpass.core.logger import log_event
from borderpass.relay.controller import ConnectionController
from borderpass.relay.hub import SessionRelay
from borderpass.relay.protocol import MessageType, envelope
from borderpass.system_metrics import decrement_metric, increment_metric, record_ws_disconnect

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger("ws_relay")

router = APIRouter()


def _resolve_relay(websocket: WebSocket) -> SessionRelay:
    relay = getattr(websocket.app.state, "relay", None)
    if relay is None:
        relay = SessionRelay()
        websocket.app.state.relay = relay
    return relay


@router.websocket("/ws")
async def relay_ws(websocket: WebSocket):
    # ================= LIFECYCLE OWNER =================
    controller = ConnectionController()
    relay = _resolve_relay(websocket)
    connection_id = str(uuid.uuid4())
    user_id = str(websocket.query_params.get("userId") or "").strip() or ANONYMOUS_USER_ID
    heartbeat_interval = float(getattr(websocket.app.state, "heartbeat_interval_sec", WS_HEARTBEAT_INTERVAL_SEC))

    await websocket.accept()
    await relay.connect(websocket)
    increment_metric("ws_connections_active", 1)

    def _log_event(event: str, **fields):
        log_event("ws_relay", event, "", connection_id=connection_id, user_id=user_id, **fields)

    _log_event("connect")

    last_pong_ts = time.time()

    # ================= INBOUND =================
    async def receive_messages():
        nonlocal last_pong_ts
        try:
            while not controller.stop_event.is_set():
                msg = await websocket.receive()

                if msg["type"] == "websocket.disconnect":
                    controller.request_stop("client disconnect")
                    return

                text_payload = msg.get("text")
                if text_payload is None:
                    await relay.send_error(websocket, "Binary frames are not supported")
                    continue

                if len(text_payload.encode("utf-8")) > MAX_WS_TEXT_BYTES:
                    logger.warning("WS message too large | connection_id=%s", connection_id)
                    await relay.send_error(websocket, "Message too large")
                    continue

                try:
                    message_type = await relay.handle_text(websocket, user_id, text_payload)
                except Exception:
                    logger.exception("relay dispatch failed | connection_id=%s", connection_id)
                    await relay.send_error(websocket, "Internal relay error")
                    continue

                if message_type in {MessageType.PONG, MessageType.PING}:
                    last_pong_ts = time.time()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("receive loop ended | connection_id=%s err=%s", connection_id, exc)
            controller.request_stop("transport error")

    # ================= HEARTBEAT =================
    async def heartbeat():
        while not controller.stop_event.is_set():
            await asyncio.sleep(heartbeat_interval)
            if websocket.client_state != WebSocketState.CONNECTED:
                return
            silent_for = time.time() - last_pong_ts
            if silent_for > heartbeat_interval * 2:
                # liveness only; the transport decides when the socket is gone
                _log_event("heartbeat_missed", level=logging.WARNING, silent_sec=round(silent_for, 1))
            if await relay.send(websocket, envelope(MessageType.PING)):
                increment_metric("relay_heartbeats_sent", 1)

    controller.create_task(receive_messages())
    controller.create_task(heartbeat())

    try:
        await controller.stop_event.wait()
    finally:
        await controller.stop()
        touched = await relay.disconnect(websocket)
        decrement_metric("ws_connections_active", 1)
        record_ws_disconnect(controller.stop_reason)
        _log_event("disconnect", reason=controller.stop_reason, sessions=touched)
