"""Wires one user's store, guard, gateway and orchestrator together."""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .backends import create_backend
from .config import Settings, is_usable_credential
from .gateway import BackendFactory, GenerationGateway
from .guard import CredentialGuard
from .orchestrator import WorkflowOrchestrator
from .state import WorkflowState, WorkflowStore

LOGGER = logging.getLogger(__name__)


class SessionKeyring:
    """Credential host backed by a key the client submits.

    The client stages a key and then runs the selection flow, which commits it.
    The gateway reads :meth:`current_key` on every call.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key
        self._pending: Optional[str] = None

    def current_key(self) -> Optional[str]:
        return self._api_key

    def stage(self, api_key: str) -> None:
        self._pending = api_key

    async def has_selected_api_key(self) -> bool:
        return is_usable_credential(self._api_key)

    async def open_select_key(self) -> None:
        if self._pending is not None:
            self._api_key, self._pending = self._pending, None


@dataclass
class WorkflowSession:
    settings: Settings
    keyring: SessionKeyring
    guard: CredentialGuard
    orchestrator: WorkflowOrchestrator
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    last_seen: float = field(default_factory=time.monotonic)

    @property
    def state(self) -> WorkflowState:
        return self.orchestrator.state

    async def select_credential(self, api_key: str) -> None:
        self.keyring.stage(api_key)
        await self.guard.select_credential()

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    async def close(self) -> None:
        await self.orchestrator.gateway.aclose()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "guard": self.guard.state.value,
            "mock_mode": self.orchestrator.gateway.is_mock_mode(),
            "state": self.state.as_dict(),
            "notices": [notice.as_dict() for notice in self.orchestrator.notices],
        }


async def open_session(settings: Settings, backend_factory: BackendFactory = create_backend) -> WorkflowSession:
    """Create a session and run the guard's startup check.

    The keyring is only offered to the guard as a credential host when
    ``settings.require_credential`` is set; otherwise the guard starts
    unlocked and calls without a key fall back to mock data.
    """
    keyring = SessionKeyring(settings.api_key)
    guard = CredentialGuard(keyring if settings.require_credential else None)
    await guard.initialize()

    gateway = GenerationGateway(settings, credential=keyring.current_key, backend_factory=backend_factory)
    store = WorkflowStore(WorkflowState(margin=settings.default_margin))
    orchestrator = WorkflowOrchestrator(store, gateway, guard)

    session = WorkflowSession(settings=settings, keyring=keyring, guard=guard, orchestrator=orchestrator)
    LOGGER.info(f"Opened session {session.session_id} (guard {guard.state.value})")
    return session


class SessionRegistry:
    """Live sessions, expired after ``ttl`` idle seconds and capped at ``limit``.

    Looking a session up counts as activity. When the cap is reached the least
    recently used session is evicted to make room.
    """

    def __init__(self, ttl: float, limit: int):
        self.ttl = ttl
        self.limit = limit
        self._sessions: Dict[str, WorkflowSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, session: WorkflowSession) -> bool:
        return time.monotonic() - session.last_seen > self.ttl

    async def _drop(self, session_id: str, reason: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            LOGGER.info(f"Closing session {session_id} ({reason})")
            await session.close()

    async def add(self, session: WorkflowSession) -> None:
        for session_id in [key for key, item in self._sessions.items() if self._expired(item)]:
            await self._drop(session_id, "expired")
        while self._sessions and len(self._sessions) >= self.limit:
            oldest = min(self._sessions.values(), key=lambda item: item.last_seen)
            await self._drop(oldest.session_id, "evicted")
        self._sessions[session.session_id] = session

    async def get(self, session_id: str) -> Optional[WorkflowSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._expired(session):
            await self._drop(session_id, "expired")
            return None
        session.touch()
        return session

    async def remove(self, session_id: str) -> None:
        await self._drop(session_id, "closed")

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self._drop(session_id, "shutdown")
