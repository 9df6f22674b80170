from borderpass.session.store import (
    InterviewSession,
    LocalSessionStore,
    SessionMode,
    SessionNotFoundError,
    SessionStatus,
    SessionStore,
)

__all__ = [
    "InterviewSession",
    "LocalSessionStore",
    "SessionMode",
    "SessionNotFoundError",
    "SessionStatus",
    "SessionStore",
]
