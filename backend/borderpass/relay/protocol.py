from __future__ import annotations

import json
import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError


class MessageType(str, Enum):
    JOIN_SESSION = "JOIN_SESSION"
    LEAVE_SESSION = "LEAVE_SESSION"
    TRANSCRIPT_PARTIAL = "TRANSCRIPT_PARTIAL"
    TRANSCRIPT_FINAL = "TRANSCRIPT_FINAL"
    AI_RESPONSE = "AI_RESPONSE"
    SESSION_START = "SESSION_START"
    SESSION_END = "SESSION_END"
    PING = "PING"
    PONG = "PONG"
    ERROR = "ERROR"


# types a client may send; SESSION_START and ERROR are server-only
CLIENT_MESSAGE_TYPES = {
    MessageType.JOIN_SESSION,
    MessageType.LEAVE_SESSION,
    MessageType.TRANSCRIPT_PARTIAL,
    MessageType.TRANSCRIPT_FINAL,
    MessageType.AI_RESPONSE,
    MessageType.SESSION_END,
    MessageType.PING,
    MessageType.PONG,
}

SESSION_SCOPED_TYPES = CLIENT_MESSAGE_TYPES - {MessageType.PING, MessageType.PONG}

FANOUT_TYPES = {
    MessageType.TRANSCRIPT_PARTIAL,
    MessageType.TRANSCRIPT_FINAL,
    MessageType.AI_RESPONSE,
}


class RelayMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: MessageType
    sessionId: str = ""
    payload: Optional[Any] = None
    timestamp: Optional[float] = None


class ProtocolError(ValueError):
    pass


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_client_message(raw: str) -> RelayMessage:
    """Parses one inbound text frame; raises ProtocolError with a client-facing reason."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise ProtocolError("Invalid JSON message")

    if not isinstance(data, dict):
        raise ProtocolError("Message must be a JSON object")

    raw_type = data.get("type")
    try:
        message_type = MessageType(str(raw_type or "").strip().upper())
    except ValueError:
        raise ProtocolError(f"Unknown message type: {raw_type}")
    if message_type not in CLIENT_MESSAGE_TYPES:
        raise ProtocolError(f"Unknown message type: {raw_type}")

    try:
        message = RelayMessage.model_validate({**data, "type": message_type})
    except ValidationError as exc:
        raise ProtocolError(f"Invalid message structure: {exc.errors()[0].get('msg', 'invalid')}")

    message.sessionId = message.sessionId.strip()
    if message.type in SESSION_SCOPED_TYPES and not message.sessionId:
        raise ProtocolError(f"sessionId is required for {message.type.value}")
    return message


def envelope(message_type: MessageType, session_id: str = "", payload: Any = None) -> dict:
    data = {
        "type": message_type.value,
        "sessionId": str(session_id or ""),
        "timestamp": now_ms(),
    }
    if payload is not None:
        data["payload"] = payload
    return data


def error_envelope(error: str) -> dict:
    return envelope(MessageType.ERROR, "", {"error": str(error or "error")})
