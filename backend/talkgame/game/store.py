from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable
from threading import Lock, RLock
from typing import TypeVar

from .errors import LobbyNotFoundError
from .models import Lobby


logger = logging.getLogger(__name__)

LOBBY_TTL_SEC = 2 * 60 * 60

T = TypeVar("T")


class LobbyStore:
    """In-memory lobby map with copy-in/copy-out isolation.

    Callers only ever see detached copies. ``update_lobby`` runs the mutator on
    a fresh clone while holding that lobby's lock and commits the clone only
    when the mutator returns normally. Lobbies are evicted ``ttl_seconds``
    after creation regardless of activity.
    """

    def __init__(self, ttl_seconds: int = LOBBY_TTL_SEC, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = RLock()
        self._lobbies: dict[str, Lobby] = {}
        self._lobby_locks: dict[str, Lock] = {}

    def _lobby_lock(self, code: str) -> Lock:
        with self._lock:
            if code not in self._lobbies:
                raise LobbyNotFoundError(code)
            lock = self._lobby_locks.get(code)
            if lock is None:
                lock = self._lobby_locks[code] = Lock()
            return lock

    def cleanup_expired(self) -> list[str]:
        threshold_ms = (self._clock() - self.ttl_seconds) * 1000
        with self._lock:
            expired = [code for code, lobby in self._lobbies.items() if lobby.created_at < threshold_ms]
            for code in expired:
                del self._lobbies[code]
                self._lobby_locks.pop(code, None)
        for code in expired:
            logger.info("lobby.expired", extra={"context": {"lobby": code}})
        return expired

    def has_lobby(self, code: str) -> bool:
        with self._lock:
            return code in self._lobbies

    def lobby_codes(self) -> set[str]:
        self.cleanup_expired()
        with self._lock:
            return set(self._lobbies)

    def get_lobby(self, code: str) -> Lobby | None:
        self.cleanup_expired()
        with self._lock:
            lobby = self._lobbies.get(code)
            return copy.deepcopy(lobby) if lobby is not None else None

    def set_lobby(self, lobby: Lobby) -> Lobby:
        self.cleanup_expired()
        with self._lock:
            self._lobbies[lobby.code] = copy.deepcopy(lobby)
        return copy.deepcopy(lobby)

    def update_lobby(self, code: str, mutator: Callable[[Lobby], T]) -> tuple[Lobby, T]:
        """Apply ``mutator`` to a clone of the lobby and commit it.

        Returns the committed lobby (as another copy) and whatever the mutator
        returned. Raises ``LobbyNotFoundError`` for unknown or evicted codes;
        any exception from the mutator propagates and nothing is committed.
        """
        self.cleanup_expired()
        with self._lobby_lock(code):
            with self._lock:
                current = self._lobbies.get(code)
                if current is None:
                    raise LobbyNotFoundError(code)
                draft = copy.deepcopy(current)

            result = mutator(draft)

            with self._lock:
                if code not in self._lobbies:
                    # Evicted while the mutation ran.
                    raise LobbyNotFoundError(code)
                self._lobbies[code] = draft
            return copy.deepcopy(draft), result

    def list_public_lobbies(self) -> list[Lobby]:
        self.cleanup_expired()
        with self._lock:
            return [
                copy.deepcopy(lobby)
                for lobby in self._lobbies.values()
                if lobby.settings.is_public and not lobby.game_started
            ]
