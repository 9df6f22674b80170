from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from borderpass.scoring.models import Score
from borderpass.transcript.buffer import TranscriptBuffer
from borderpass.transcript.models import TranscriptLine


class SessionMode(str, Enum):
    VOICE = "VOICE"
    TEXT = "TEXT"


class SessionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SessionNotFoundError(LookupError):
    pass


@dataclass
class InterviewSession:
    user_id: str
    country_id: str
    mode: SessionMode = SessionMode.VOICE
    status: SessionStatus = SessionStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "countryId": self.country_id,
            "mode": self.mode.value,
            "status": self.status.value,
            "createdAt": self.created_at,
            "endedAt": self.ended_at,
        }


class SessionStore(Protocol):
    async def create_session(self, user_id: str, country_id: str, mode: SessionMode) -> InterviewSession:
        ...

    async def get_session(self, session_id: str) -> Optional[InterviewSession]:
        ...

    async def list_sessions(self, user_id: str, offset: int = 0, limit: Optional[int] = None) -> list[InterviewSession]:
        ...

    async def count_sessions(self, user_id: str) -> int:
        ...

    async def append_transcript(self, session_id: str, line: TranscriptLine) -> TranscriptLine:
        ...

    async def get_transcript(self, session_id: str, final_only: bool = True) -> list[TranscriptLine]:
        ...

    async def get_score(self, session_id: str) -> Optional[Score]:
        ...

    async def save_score(self, session_id: str, score: Score) -> Score:
        ...

    async def set_status(self, session_id: str, status: SessionStatus) -> InterviewSession:
        ...


class LocalSessionStore:
    """Process-local store; sessions, transcripts and scores live in dicts."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._sessions: dict[str, InterviewSession] = {}
        self._transcripts: dict[str, TranscriptBuffer] = {}
        self._scores: dict[str, Score] = {}

    def _require(self, session_id: str) -> InterviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def create_session(self, user_id: str, country_id: str, mode: SessionMode = SessionMode.VOICE) -> InterviewSession:
        session = InterviewSession(user_id=user_id, country_id=country_id, mode=SessionMode(mode))
        async with self._lock:
            self._sessions[session.id] = session
            self._transcripts[session.id] = TranscriptBuffer()
        return session

    async def get_session(self, session_id: str) -> Optional[InterviewSession]:
        async with self._lock:
            return self._sessions.get(session_id)

    async def list_sessions(self, user_id: str, offset: int = 0, limit: Optional[int] = None) -> list[InterviewSession]:
        """Newest first; same-instant sessions keep newest-created first."""
        async with self._lock:
            items = [item for item in reversed(list(self._sessions.values())) if item.user_id == user_id]
        items = sorted(items, key=lambda item: item.created_at, reverse=True)
        start = max(0, int(offset))
        return items[start:] if limit is None else items[start:start + max(0, int(limit))]

    async def count_sessions(self, user_id: str) -> int:
        async with self._lock:
            return sum(1 for item in self._sessions.values() if item.user_id == user_id)

    async def append_transcript(self, session_id: str, line: TranscriptLine) -> TranscriptLine:
        async with self._lock:
            session = self._require(session_id)
            stored = self._transcripts[session_id].add(line)
            if session.status == SessionStatus.PENDING:
                session.status = SessionStatus.IN_PROGRESS
            return stored

    async def get_transcript(self, session_id: str, final_only: bool = True) -> list[TranscriptLine]:
        async with self._lock:
            self._require(session_id)
            buffer = self._transcripts[session_id]
            lines = buffer.final_lines() if final_only else list(buffer.lines)
            return [TranscriptLine(**vars(line)) for line in lines]

    async def get_score(self, session_id: str) -> Optional[Score]:
        async with self._lock:
            return self._scores.get(session_id)

    async def save_score(self, session_id: str, score: Score) -> Score:
        """Stores the first score only; later calls get the stored one back."""
        async with self._lock:
            self._require(session_id)
            return self._scores.setdefault(session_id, score)

    async def set_status(self, session_id: str, status: SessionStatus) -> InterviewSession:
        async with self._lock:
            session = self._require(session_id)
            session.status = SessionStatus(status)
            if session.status == SessionStatus.COMPLETED and session.ended_at is None:
                session.ended_at = time.time()
            return session
