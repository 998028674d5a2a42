from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any


DEFAULT_TTL_SEC = 60 * 60


@dataclass
class CachedResponse:
    status: int
    body: Any
    expires_at: float


class IdempotencyStore:
    """Remembers the outcome of POSTs sent with an ``X-Idempotency-Key``."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SEC, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._records: dict[str, CachedResponse] = {}

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, record in self._records.items() if record.expires_at <= now]:
            del self._records[key]

    def get(self, key: str) -> CachedResponse | None:
        with self._lock:
            self._purge_expired()
            return self._records.get(key)

    def set(self, key: str, status: int, body: Any) -> None:
        with self._lock:
            self._purge_expired()
            self._records[key] = CachedResponse(status=status, body=body, expires_at=self._clock() + self.ttl_seconds)
