from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from typing import Awaitable, Callable, Optional

import websockets
from websockets.exceptions import WebSocketException

from borderpass.relay.protocol import MessageType, now_ms
from borderpass.transcript.buffer import TranscriptBuffer
from borderpass.transcript.models import Speaker, TranscriptLine, normalize_speaker

logger = logging.getLogger("borderpass.relay.client")

EventHandler = Callable[[dict], Awaitable[None]]

MAX_RECONNECT_ATTEMPTS = 3
RECONNECT_BASE_DELAY_SEC = 1.0


class RelayClient:
    """
    One participant's connection to the relay.

    Joins its session on every (re)connect and keeps a local transcript
    merged from TRANSCRIPT_* and AI_RESPONSE events. A dropped connection is
    retried up to max_retries times with a doubling delay; the counter resets
    after each successful connect.
    """

    def __init__(
        self,
        url: str,
        session_id: str,
        user_id: str,
        role: str = "student",
        on_event: Optional[EventHandler] = None,
        max_retries: int = MAX_RECONNECT_ATTEMPTS,
        base_delay_sec: float = RECONNECT_BASE_DELAY_SEC,
        connect_fn=websockets.connect,
    ):
        self.url = url
        self.session_id = session_id
        self.user_id = user_id
        self.role = role
        self.on_event = on_event
        self.max_retries = max(0, int(max_retries))
        self.base_delay_sec = max(0.0, float(base_delay_sec))
        self._connect_fn = connect_fn
        self._ws = None
        self._first_event_ms: Optional[int] = None
        self.buffer = TranscriptBuffer()
        self.retry_count = 0
        self.connect_attempts = 0
        self.ended = asyncio.Event()
        self.connected = asyncio.Event()

    def build_url(self) -> str:
        parts = urllib.parse.urlsplit(self.url)
        query = dict(urllib.parse.parse_qsl(parts.query))
        query["userId"] = self.user_id
        return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(query)))

    def next_delay(self) -> float:
        return self.base_delay_sec * (2 ** self.retry_count)

    # ================= CONNECTION LOOP =================

    async def run(self) -> None:
        while not self.ended.is_set():
            self.connect_attempts += 1
            try:
                async with self._connect_fn(self.build_url()) as ws:
                    self._ws = ws
                    self.retry_count = 0
                    self.connected.set()
                    await self._send(MessageType.JOIN_SESSION, {"role": self.role})
                    async for raw in ws:
                        await self.handle_raw(raw)
                        if self.ended.is_set():
                            break
            except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
                logger.warning("relay connection lost | session_id=%s err=%s", self.session_id, exc)
            finally:
                self._ws = None
                self.connected.clear()

            if self.ended.is_set():
                return
            if self.retry_count >= self.max_retries:
                logger.warning(
                    "relay reconnect gave up | session_id=%s attempts=%s",
                    self.session_id,
                    self.connect_attempts,
                )
                return

            delay = self.next_delay()
            self.retry_count += 1
            logger.info("relay reconnect scheduled | attempt=%s delay_sec=%s", self.retry_count, delay)
            await asyncio.sleep(delay)

    async def close(self) -> None:
        self.ended.set()
        if self._ws is not None:
            await self._ws.close()

    # ================= OUTBOUND =================

    async def _send(self, message_type: MessageType, payload=None) -> bool:
        if self._ws is None:
            return False
        data = {"type": message_type.value, "sessionId": self.session_id, "timestamp": now_ms()}
        if payload is not None:
            data["payload"] = payload
        await self._ws.send(json.dumps(data))
        return True

    async def send_transcript(self, text: str, final: bool = False) -> bool:
        message_type = MessageType.TRANSCRIPT_FINAL if final else MessageType.TRANSCRIPT_PARTIAL
        return await self._send(message_type, {"text": text, "speaker": Speaker.STUDENT.value})

    async def send_ai_response(self, text: str, final: bool = True) -> bool:
        return await self._send(MessageType.AI_RESPONSE, {"text": text, "isFinal": final})

    async def leave(self) -> bool:
        return await self._send(MessageType.LEAVE_SESSION)

    async def end_session(self) -> bool:
        return await self._send(MessageType.SESSION_END)

    # ================= INBOUND =================

    def _relative_seconds(self, timestamp_ms) -> float:
        try:
            value = int(timestamp_ms)
        except (TypeError, ValueError):
            value = now_ms()
        if self._first_event_ms is None:
            self._first_event_ms = value
        # server clocks can step backwards; never go behind the buffer
        return max(self.buffer.last_timestamp, (value - self._first_event_ms) / 1000.0)

    def apply_event(self, message: dict) -> Optional[TranscriptLine]:
        message_type = str(message.get("type") or "")
        payload = message.get("payload") if isinstance(message.get("payload"), dict) else {}
        text = str(payload.get("text") or "")

        if message_type in {MessageType.TRANSCRIPT_PARTIAL.value, MessageType.TRANSCRIPT_FINAL.value}:
            speaker = normalize_speaker(payload.get("speaker")) or Speaker.STUDENT
            final = message_type == MessageType.TRANSCRIPT_FINAL.value
        elif message_type == MessageType.AI_RESPONSE.value:
            speaker = Speaker.AI
            final = bool(payload.get("isFinal", True))
        else:
            return None

        return self.buffer.add(
            TranscriptLine(
                speaker=speaker,
                text=text,
                timestamp=self._relative_seconds(message.get("timestamp")),
                is_final=final,
            )
        )

    async def handle_raw(self, raw) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("relay sent an unreadable frame | session_id=%s", self.session_id)
            return
        if not isinstance(message, dict):
            return

        message_type = str(message.get("type") or "")
        payload = message.get("payload") if isinstance(message.get("payload"), dict) else {}
        if message_type == MessageType.PING.value:
            await self._send(MessageType.PONG)
        elif message_type == MessageType.ERROR.value:
            logger.warning("relay error | session_id=%s error=%s", self.session_id, payload.get("error"))
        elif message_type == MessageType.SESSION_END.value:
            self.ended.set()
        else:
            self.apply_event(message)

        if self.on_event is not None:
            await self.on_event(message)
