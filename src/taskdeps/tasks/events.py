"""
Task mutation events.

The dependency graph engine emits an event after every committed
mutation. Anything holding derived state (read caches, search indexes,
UI views) subscribes here instead of the engine knowing about it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class TaskEventType(str, Enum):
    """Types of task events."""

    CREATED = "created"
    UPDATED = "updated"
    DEPENDENCY_ADDED = "dependency_added"
    DEPENDENCY_REMOVED = "dependency_removed"
    DEPENDENCIES_REPLACED = "dependencies_replaced"
    CASCADE_UPDATED = "cascade_updated"
    DELETED = "deleted"


@dataclass
class TaskEvent:
    """An event related to a task."""

    event_type: TaskEventType
    task_id: str
    timestamp: datetime = field(default_factory=datetime.utcnow)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "event_type": self.event_type.value,
            "task_id": self.task_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


class TaskEventEmitter:
    """Delivers task events to subscribers and keeps a bounded history."""

    def __init__(self, max_history_size: int = 1000) -> None:
        # strong references: callers must unsubscribe
        self._subscribers: list[Callable[[TaskEvent], None]] = []
        self._subscribers_lock = Lock()

        self._event_history: list[TaskEvent] = []
        self._history_lock = Lock()
        self._max_history_size = max_history_size

    def subscribe(self, callback: Callable[[TaskEvent], None]) -> Callable[[], None]:
        """
        Subscribe to task events.

        Args:
            callback: Function to call when events occur

        Returns:
            Unsubscribe function
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    def emit_event(self, event: TaskEvent) -> None:
        """
        Emit a task event to all subscribers.

        The mutation is already committed when this runs, so a failing
        subscriber is logged and the remaining ones still get the event.

        Args:
            event: Event to emit
        """
        with self._history_lock:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history_size:
                self._event_history = self._event_history[-self._max_history_size:]

        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Subscriber failed for {event.event_type.value} event on {event.task_id}"
                )

    def get_event_history(
        self,
        task_id: Optional[str] = None,
        event_types: Optional[list[TaskEventType]] = None,
        limit: int = 100,
    ) -> list[TaskEvent]:
        """
        Get event history with optional filters.

        Args:
            task_id: Filter by task ID
            event_types: Filter by event types
            limit: Maximum number of events

        Returns:
            List of matching events, oldest first
        """
        with self._history_lock:
            events = list(self._event_history)

        if task_id:
            events = [e for e in events if e.task_id == task_id]

        if event_types:
            events = [e for e in events if e.event_type in event_types]

        return events[-limit:]
