"""
In-process TTL cache for task reads.

Single tasks are cached under their ID and dependency closures under a
prefixed key. Any mutation event for a task drops that task's entry
together with every closure entry, since a closure may walk through
the changed task at any depth.
"""

import logging
import time
from threading import Lock
from typing import Any, Callable, Optional

from taskdeps.core.constants import (
    DEFAULT_CACHE_CHECK_PERIOD_SECONDS,
    DEFAULT_CACHE_TTL_SECONDS,
)
from taskdeps.tasks.constants import CLOSURE_CACHE_PREFIX
from taskdeps.tasks.events import TaskEvent, TaskEventEmitter


logger = logging.getLogger(__name__)


class TaskCache:
    """Key/value cache with per-entry expiry."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        check_period_seconds: float = DEFAULT_CACHE_CHECK_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._check_period = check_period_seconds
        self._clock = clock

        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()
        self._last_purge = clock()
        self._generation = 0

        self.hits = 0
        self.misses = 0

    # -------------------------------------------------------------------------
    # Key Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def closure_key(task_id: str) -> str:
        return f"{CLOSURE_CACHE_PREFIX}{task_id}"

    # -------------------------------------------------------------------------
    # Basic Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """Get a cached value, or None on miss or expiry."""
        with self._lock:
            self._maybe_purge()
            entry = self._entries.get(key)
            if entry is None or entry[0] <= self._clock():
                if entry is not None:
                    del self._entries[key]
                self.misses += 1
                logger.debug(f"Cache miss for {key}")
                return None
            self.hits += 1
            logger.debug(f"Cache hit for {key}")
            return entry[1]

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store a value."""
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._maybe_purge()
            self._entries[key] = (self._clock() + ttl, value)

    @property
    def generation(self) -> int:
        """Invalidation counter, bumped by every clear_task call."""
        with self._lock:
            return self._generation

    def set_if_current(self, key: str, value: Any, generation: int) -> bool:
        """
        Store a value only if no invalidation ran since generation was read.

        Returns:
            True if stored, False if the value was dropped as stale
        """
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Dropping stale cache write for {key}")
                return False
            self._maybe_purge()
            self._entries[key] = (self._clock() + self._ttl, value)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            now = self._clock()
            return [k for k, (expires, _) in self._entries.items() if expires > now]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self.keys())

    def _maybe_purge(self) -> None:
        now = self._clock()
        if now - self._last_purge < self._check_period:
            return
        self._last_purge = now
        expired = [k for k, (expires, _) in self._entries.items() if expires <= now]
        for key in expired:
            del self._entries[key]

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def clear_task(self, task_id: str) -> None:
        """Drop a task's entry and every cached closure."""
        logger.debug(f"Clearing cache for task {task_id}")
        with self._lock:
            self._generation += 1
            self._entries.pop(task_id, None)
            derived = [k for k in self._entries if k.startswith(CLOSURE_CACHE_PREFIX)]
            for key in derived:
                del self._entries[key]

    def handle_event(self, event: TaskEvent) -> None:
        """Event subscriber that invalidates on every mutation."""
        self.clear_task(event.task_id)

    def attach(self, emitter: TaskEventEmitter) -> Callable[[], None]:
        """
        Subscribe this cache to a mutation event stream.

        Returns:
            Unsubscribe function
        """
        return emitter.subscribe(self.handle_event)
