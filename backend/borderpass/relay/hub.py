from __future__ import annotations

import asyncio
import json
import logging

from starlette.websockets import WebSocketState

from borderpass.core.logger import log_event
from borderpass.relay.protocol import (
    FANOUT_TYPES,
    MessageType,
    ProtocolError,
    RelayMessage,
    envelope,
    error_envelope,
    parse_client_message,
)
from borderpass.relay.roster import PARTICIPANT_ROLES, Participant, SessionRoster
from borderpass.system_metrics import increment_metric, set_metric

logger = logging.getLogger("borderpass.relay")


class SessionRelay:
    """
    Routes relay messages between the connections of one interview session.

    A connection is anything with an async send_text(str) and a Starlette
    client_state. The relay never closes connections; the transport does.
    """

    def __init__(self, roster: SessionRoster | None = None):
        self.roster = roster or SessionRoster()
        self._send_locks: dict[object, asyncio.Lock] = {}
        self._locks_guard = asyncio.Lock()

    # ================= CONNECTION LIFECYCLE =================

    async def connect(self, connection: object) -> None:
        async with self._locks_guard:
            self._send_locks.setdefault(connection, asyncio.Lock())

    async def disconnect(self, connection: object) -> list[str]:
        touched = await self.roster.remove_connection(connection)
        async with self._locks_guard:
            self._send_locks.pop(connection, None)
        await self._refresh_session_metric()
        return touched

    # ================= SENDING =================

    async def send(self, connection: object, payload: dict) -> bool:
        if getattr(connection, "client_state", WebSocketState.CONNECTED) != WebSocketState.CONNECTED:
            return False
        async with self._locks_guard:
            send_lock = self._send_locks.get(connection)
        if send_lock is None:
            return False
        try:
            encoded = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("relay payload encode failed | err=%s", exc)
            return False
        try:
            async with send_lock:
                await connection.send_text(encoded)
        except Exception as exc:
            # the owning connection task sees the close and cleans up
            logger.warning("relay send failed | err=%s", exc)
            return False
        return True

    async def send_error(self, connection: object, error: str) -> None:
        increment_metric("relay_protocol_errors", 1)
        await self.send(connection, error_envelope(error))

    async def broadcast(self, session_id: str, payload: dict) -> int:
        return await self._deliver(await self.roster.participants(session_id), payload)

    async def _deliver(self, targets: list[Participant], payload: dict) -> int:
        delivered = 0
        for participant in targets:
            if await self.send(participant.connection, payload):
                delivered += 1
        increment_metric("relay_events_broadcast", delivered)
        return delivered

    # ================= OPERATIONS =================

    async def join(self, connection: object, session_id: str, user_id: str, role: str = "student") -> int:
        role = role if role in PARTICIPANT_ROLES else "student"
        count = await self.roster.add(session_id, Participant(connection=connection, user_id=user_id, role=role))
        await self._refresh_session_metric()
        await self.send(
            connection,
            envelope(
                MessageType.SESSION_START,
                session_id,
                {"message": "Joined session successfully", "participantCount": count},
            ),
        )
        log_event("relay", "join", session_id, user_id=user_id, role=role, participant_count=count)
        return count

    async def leave(self, session_id: str, user_id: str) -> int:
        removed = await self.roster.remove_user(session_id, user_id)
        await self._refresh_session_metric()
        log_event("relay", "leave", session_id, user_id=user_id, removed=removed)
        return removed

    async def relay(self, message: RelayMessage) -> int:
        return await self.broadcast(
            message.sessionId,
            envelope(message.type, message.sessionId, message.payload),
        )

    async def end_session(self, session_id: str, user_id: str) -> int:
        # a join after the pop opens a fresh session instead of being dropped
        targets = await self.roster.pop_session(session_id)
        delivered = await self._deliver(
            targets,
            envelope(MessageType.SESSION_END, session_id, {"endedBy": user_id}),
        )
        await self._refresh_session_metric()
        log_event("relay", "session_end", session_id, ended_by=user_id, delivered=delivered)
        return delivered

    # ================= DISPATCH =================

    async def handle_text(self, connection: object, user_id: str, raw: str) -> MessageType | None:
        """Handles one inbound frame. Protocol faults only ever reach the sender."""
        increment_metric("relay_messages_received", 1)
        try:
            message = parse_client_message(raw)
        except ProtocolError as exc:
            await self.send_error(connection, str(exc))
            return None

        if message.type == MessageType.JOIN_SESSION:
            role = ""
            if isinstance(message.payload, dict):
                role = str(message.payload.get("role") or "").strip().lower()
            await self.join(connection, message.sessionId, user_id, role=role or "student")
        elif message.type == MessageType.LEAVE_SESSION:
            await self.leave(message.sessionId, user_id)
        elif message.type in FANOUT_TYPES:
            await self.relay(message)
        elif message.type == MessageType.SESSION_END:
            await self.end_session(message.sessionId, user_id)
        elif message.type == MessageType.PING:
            await self.send(connection, envelope(MessageType.PONG, message.sessionId))
        return message.type

    async def _refresh_session_metric(self) -> None:
        set_metric("relay_sessions_active", float(await self.roster.session_count()))
