"""In-memory session registry."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

import anyio

from clau._errors import SessionNotFoundError


@dataclass(frozen=True)
class SessionId:
    """Opaque session identifier."""

    value: str

    @classmethod
    def generate(cls) -> "SessionId":
        return cls(str(uuid.uuid4()))

    def as_str(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


@dataclass
class Session:
    """A session and the data attached to it."""

    id: SessionId
    system_prompt: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        system_prompt: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "Session":
        """Create a session with a fresh id, without registering it."""
        return cls(
            id=SessionId.generate(),
            system_prompt=system_prompt,
            metadata=dict(metadata or {}),
        )


class SessionManager:
    """Registry of sessions keyed by id.

    Lookups return the stored :class:`Session` objects; the registry itself
    is guarded by a lock so it can be shared between tasks.
    """

    def __init__(self) -> None:
        self._sessions: dict[SessionId, Session] = {}
        self._lock = anyio.Lock()

    async def create_session(
        self,
        system_prompt: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Session:
        """Create and register a new session."""
        session = Session.new(system_prompt=system_prompt, metadata=metadata)
        await self.store(session)
        return session

    async def store(self, session: Session) -> None:
        async with self._lock:
            self._sessions[session.id] = session

    async def get(self, session_id: SessionId | str) -> Optional[Session]:
        async with self._lock:
            return self._sessions.get(_coerce_id(session_id))

    async def resume(self, session_id: SessionId | str) -> Session:
        """Return a registered session.

        Raises:
            SessionNotFoundError: If the id is unknown.
        """
        session = await self.get(session_id)
        if session is None:
            raise SessionNotFoundError(str(session_id))
        return session

    async def list(self) -> list[SessionId]:
        async with self._lock:
            return list(self._sessions)


def _coerce_id(session_id: SessionId | str) -> SessionId:
    return session_id if isinstance(session_id, SessionId) else SessionId(session_id)


__all__ = ["SessionId", "Session", "SessionManager"]
