from __future__ import annotations

import asyncio
from dataclasses import dataclass


PARTICIPANT_ROLES = {"student", "ai-relay"}


@dataclass(eq=False)
class Participant:
    connection: object
    user_id: str
    role: str = "student"


class SessionRoster:
    """
    session id -> connected participants.

    All mutations go through one asyncio.Lock so concurrent join, leave and
    disconnect cannot interleave into a half-updated list. Readers get copies.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._sessions: dict[str, list[Participant]] = {}

    async def add(self, session_id: str, participant: Participant) -> int:
        async with self._lock:
            members = self._sessions.setdefault(session_id, [])
            members.append(participant)
            return len(members)

    async def remove_user(self, session_id: str, user_id: str) -> int:
        async with self._lock:
            members = self._sessions.get(session_id)
            if not members:
                return 0
            kept = [item for item in members if item.user_id != user_id]
            removed = len(members) - len(kept)
            if kept:
                self._sessions[session_id] = kept
            else:
                self._sessions.pop(session_id, None)
            return removed

    async def remove_connection(self, connection: object) -> list[str]:
        """Drops one connection, by identity, from every session it joined."""
        touched: list[str] = []
        async with self._lock:
            for session_id, members in list(self._sessions.items()):
                kept = [item for item in members if item.connection is not connection]
                if len(kept) == len(members):
                    continue
                touched.append(session_id)
                if kept:
                    self._sessions[session_id] = kept
                else:
                    self._sessions.pop(session_id, None)
        return touched

    async def pop_session(self, session_id: str) -> list[Participant]:
        """Removes the whole session in one step and returns who was in it."""
        async with self._lock:
            return self._sessions.pop(session_id, None) or []

    async def participants(self, session_id: str) -> list[Participant]:
        async with self._lock:
            return list(self._sessions.get(session_id, []))

    async def has_session(self, session_id: str) -> bool:
        async with self._lock:
            return session_id in self._sessions

    async def session_count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def snapshot(self) -> dict[str, list[dict]]:
        async with self._lock:
            return {
                session_id: [{"user_id": item.user_id, "role": item.role} for item in members]
                for session_id, members in self._sessions.items()
            }
