"""Notification events and sinks.

The sync loop reports to a ``NotificationSink``. Delivery is fire-and-forget:
the loop never waits for an acknowledgment and a failing sink never stops
monitoring.
"""

import logging
import threading
from typing import Callable, ClassVar, List, Optional, Protocol

from pydantic import BaseModel

from .errors import TrackerError

logger = logging.getLogger(__name__)


class MonitorEvent(BaseModel):
    """Base class for events sent to a notification sink."""

    event: ClassVar[str] = "event"


class SyncStarted(MonitorEvent):
    """Monitoring began for a root."""

    event: ClassVar[str] = "sync_started"
    message: str = "Monitoring started"
    folder: Optional[str] = None


class FileDiffs(MonitorEvent):
    """One non-empty diff cycle."""

    event: ClassVar[str] = "file_diffs"
    folder: str
    changes: List[str]


class SyncError(MonitorEvent):
    """A failure surfaced to the user."""

    event: ClassVar[str] = "sync_error"
    message: str
    error_type: Optional[str] = None

    @classmethod
    def from_error(cls, prefix: str, error: Exception) -> "SyncError":
        """Build an error event, keeping the error kind for tracker errors."""
        error_type = error.kind.value if isinstance(error, TrackerError) else type(error).__name__
        return cls(message=f"{prefix}: {error}", error_type=error_type)


class SyncStopped(MonitorEvent):
    """Monitoring was stopped and its state deleted."""

    event: ClassVar[str] = "sync_stopped"
    message: str = "Monitoring stopped"


class NotificationSink(Protocol):
    """Receiver of monitoring events."""

    def emit(self, event: MonitorEvent) -> None:
        """Deliver one event."""
        ...


class NullSink:
    """Discards every event."""

    def emit(self, event: MonitorEvent) -> None:
        pass


class CallbackSink:
    """Forwards events to a plain callable."""

    def __init__(self, callback: Callable[[MonitorEvent], None]):
        self.callback = callback

    def emit(self, event: MonitorEvent) -> None:
        self.callback(event)


class RecordingSink:
    """Keeps every event in memory; thread-safe.

    Useful for hosts that poll for events instead of subscribing, and in tests.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[MonitorEvent] = []
        self._changed = threading.Condition(self._lock)

    def emit(self, event: MonitorEvent) -> None:
        with self._changed:
            self._events.append(event)
            self._changed.notify_all()

    @property
    def events(self) -> List[MonitorEvent]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: type) -> List[MonitorEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def wait_for(self, event_type: type, count: int = 1, timeout: float = 5.0) -> bool:
        """Block until ``count`` events of ``event_type`` arrived or timeout."""
        with self._changed:
            return self._changed.wait_for(
                lambda: sum(1 for e in self._events if isinstance(e, event_type)) >= count,
                timeout=timeout,
            )


def deliver(sink: Optional[NotificationSink], event: MonitorEvent) -> None:
    """Send an event, logging and dropping any sink failure."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception as e:
        logger.warning("Notification sink failed on %s: %s", event.event, e)
