"""Credential guard: gates the workflow until a usable API key is present."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol

LOGGER = logging.getLogger(__name__)


class GuardState(str, Enum):
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"


class CredentialHost(Protocol):
    """What the hosting environment offers for choosing an API key."""

    async def has_selected_api_key(self) -> bool: ...

    async def open_select_key(self) -> None: ...


class CredentialGuard:
    def __init__(self, host: Optional[CredentialHost] = None):
        self._host = host
        self._state = GuardState.LOCKED

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def is_unlocked(self) -> bool:
        return self._state is GuardState.UNLOCKED

    async def initialize(self) -> GuardState:
        query = getattr(self._host, "has_selected_api_key", None)
        if query is None:
            # No host query: stay usable, calls fall back to mock data.
            LOGGER.info("No credential host available; workflow unlocked")
            self._state = GuardState.UNLOCKED
        elif await query():
            self._state = GuardState.UNLOCKED
        else:
            LOGGER.info("No API key selected; workflow locked")
            self._state = GuardState.LOCKED
        return self._state

    async def select_credential(self) -> GuardState:
        """Run the host's key selection flow and unlock without re-checking."""
        if self._host is not None:
            await self._host.open_select_key()
        self._state = GuardState.UNLOCKED
        return self._state

    def record_success(self) -> None:
        if self._state is GuardState.LOCKED:
            LOGGER.info("Generation call succeeded; workflow unlocked")
        self._state = GuardState.UNLOCKED

    def record_credential_failure(self) -> None:
        LOGGER.warning("API key rejected; workflow locked until a key is selected")
        self._state = GuardState.LOCKED
