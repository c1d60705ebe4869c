"""Session registry shared by both HTTP transport generations.

Two disjoint id spaces: a legacy id and a modern id never resolve to each
other's sessions, even if equal.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import uuid4

logger = logging.getLogger(__name__)

HandleT = TypeVar("HandleT")


class Generation(str, Enum):
    LEGACY = "legacy"
    MODERN = "modern"


@dataclass(frozen=True)
class Session(Generic[HandleT]):
    """A registry entry binding a server-minted id to a live transport handle."""

    id: str
    generation: Generation
    handle: HandleT
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _new_session_id() -> str:
    return str(uuid4())


class SessionRegistry:
    """Creates, looks up and removes sessions for both transport generations.

    Entries are only removed explicitly (DELETE, stream close, shutdown);
    there is no idle expiry. Each map is guarded by its own lock so that the
    registry stays consistent if touched from worker threads; on the event
    loop the critical sections never await.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_session_id) -> None:
        self._id_factory = id_factory
        self._sessions: dict[Generation, dict[str, Session[Any]]] = {gen: {} for gen in Generation}
        self._locks: dict[Generation, threading.Lock] = {gen: threading.Lock() for gen in Generation}

    def create(self, generation: Generation, handle_factory: Callable[[str], HandleT]) -> Session[HandleT]:
        """Mint a fresh id, build its handle and register both atomically."""
        sessions = self._sessions[generation]
        with self._locks[generation]:
            session_id = self._id_factory()
            while session_id in sessions:
                logger.warning("Session id collision in %s registry, minting another", generation.value)
                session_id = self._id_factory()
            session = Session(id=session_id, generation=generation, handle=handle_factory(session_id))
            sessions[session_id] = session
        return session

    def get(self, generation: Generation, session_id: str | None) -> Session[Any] | None:
        if not session_id:
            return None
        with self._locks[generation]:
            return self._sessions[generation].get(session_id)

    def remove(self, generation: Generation, session_id: str) -> Session[Any] | None:
        """Drop a session. Removing an unknown id is a no-op."""
        with self._locks[generation]:
            return self._sessions[generation].pop(session_id, None)

    def sessions(self, generation: Generation) -> list[Session[Any]]:
        with self._locks[generation]:
            return list(self._sessions[generation].values())

    def count(self, generation: Generation) -> int:
        with self._locks[generation]:
            return len(self._sessions[generation])

    def __len__(self) -> int:
        return sum(self.count(gen) for gen in Generation)
