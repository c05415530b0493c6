"""Idempotency cache for stage transition results.

The engine only depends on ``IdempotencyCache``; the in-memory implementation
is process-local. Deployments running several instances plug in a shared store
implementing the same three methods.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from src.core.schemas import StageTransitionResult

logger = logging.getLogger(__name__)


class IdempotencyCache(ABC):
    """Maps request keys to previously computed transition results."""

    @abstractmethod
    def get(self, key: str) -> StageTransitionResult | None:
        """Return the cached result, or None if absent or expired."""

    @abstractmethod
    def set(self, key: str, result: StageTransitionResult, ttl_seconds: int) -> None:
        """Store ``result`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    def expire(self, key: str) -> None:
        """Drop ``key`` immediately."""


class InMemoryIdempotencyCache(IdempotencyCache):
    """Thread-safe, TTL-bounded dict cache.

    Results are copied on the way in and out so callers cannot mutate the
    stored entry; a replay serializes exactly like the original response.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, StageTransitionResult]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> StageTransitionResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, result = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return result.model_copy(deep=True)

    def set(self, key: str, result: StageTransitionResult, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, result.model_copy(deep=True))
            self._purge_expired_locked()

    def expire(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired_locked()
            return len(self._entries)

    def _purge_expired_locked(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired idempotency entries")
