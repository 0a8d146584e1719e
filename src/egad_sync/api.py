"""Stable API for egad-sync monitoring sessions.

This module is the boundary used by hosts (the CLI, a tray app, a service
wrapper). A host owns one ``MonitoringSession`` per state file and passes it
around explicitly; there is no process-wide registry.

Example:
    >>> from egad_sync.api import MonitoringSession
    >>> from egad_sync.events import CallbackSink
    >>> session = MonitoringSession(sink=CallbackSink(print))
    >>> tracker = session.start_monitoring("/data/shared")
    >>> session.get_status()
    True
    >>> session.stop_monitoring()
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from .config import MonitorConfig, load_config
from .core import Tracker
from .errors import TrackerError
from .events import NotificationSink, SyncError, SyncStarted, SyncStopped, deliver
from .ops import (
    create_tracker,
    is_monitoring_active,
    load_tracker,
    stop_monitoring_and_delete_state,
)
from .sync import SyncLoop

logger = logging.getLogger(__name__)

STOP_TIMEOUT_SECS = 30.0


class MonitoringSession:
    """Owned handle over one monitored root, its state file and its sync loop."""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        sink: Optional[NotificationSink] = None,
    ):
        self.config = config or load_config()
        self.sink = sink
        self._loop: Optional[SyncLoop] = None
        self._lock = threading.Lock()

    @property
    def loop(self) -> Optional[SyncLoop]:
        return self._loop

    @property
    def is_running(self) -> bool:
        """True while this session's sync loop is active."""
        return self._loop is not None and self._loop.is_running

    def _cancel_loop(self) -> None:
        if self._loop is not None:
            if not self._loop.stop(STOP_TIMEOUT_SECS):
                logger.warning("Sync loop did not stop within %ss", STOP_TIMEOUT_SECS)
            self._loop = None

    def _spawn_loop(self) -> SyncLoop:
        loop = SyncLoop(self.config, self.sink)
        loop.start()
        self._loop = loop
        return loop

    def start_monitoring(self, root: Union[str, Path]) -> Tracker:
        """Begin a new session on ``root``.

        Any loop already running in this session is stopped first so that two
        loops never write the same state file.

        Returns:
            The freshly created and persisted tracker

        Raises:
            RootNotADirectoryError: If root is not a directory (no state written)
            TrackerIOError: If root is missing/unreadable or state can't be saved
            ScanError: If the initial walk fails
        """
        with self._lock:
            self._cancel_loop()
            try:
                tracker = create_tracker(root, self.config)
            except TrackerError as e:
                logger.error("Failed to initialize tracker: %s", e)
                deliver(self.sink, SyncError.from_error("Failed to start", e))
                raise
            deliver(self.sink, SyncStarted(folder=tracker.root_target))
            self._spawn_loop()
            return tracker

    def resume(self) -> bool:
        """Restart the sync loop from persisted state, if there is any.

        Used at host startup so monitoring survives process restarts.

        Returns:
            True if a loop was started
        """
        with self._lock:
            if self.is_running:
                return True
            if not is_monitoring_active(self.config):
                logger.info("No active monitoring state at %s", self.config.state_file_path)
                return False
            self._cancel_loop()
            self._spawn_loop()
            return True

    def get_status(self) -> bool:
        """True iff persisted state exists and is valid."""
        return is_monitoring_active(self.config)

    def get_state(self) -> Tracker:
        """Return the last persisted tracker (root + full snapshot).

        Raises:
            StateNotFoundError, TrackerIOError, SerializationError
        """
        return load_tracker(self.config)

    def stop_monitoring(self) -> None:
        """Cancel the sync loop and delete persisted state.

        Raises:
            StateNotFoundError: If there was nothing to stop
            TrackerIOError: If the state file cannot be deleted
        """
        with self._lock:
            self._cancel_loop()
            stop_monitoring_and_delete_state(self.config)
            deliver(self.sink, SyncStopped())

    def close(self) -> None:
        """Stop the loop without touching persisted state."""
        with self._lock:
            self._cancel_loop()

    def __enter__(self) -> "MonitoringSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# ============= Module-level shortcuts =============

def start_monitoring(
    root: Union[str, Path],
    config: Optional[MonitorConfig] = None,
    sink: Optional[NotificationSink] = None,
) -> MonitoringSession:
    """Start monitoring ``root`` and return the owning session."""
    session = MonitoringSession(config, sink)
    session.start_monitoring(root)
    return session


def get_status(config: Optional[MonitorConfig] = None) -> bool:
    return is_monitoring_active(config or load_config())


def get_state(config: Optional[MonitorConfig] = None) -> Tracker:
    return load_tracker(config or load_config())


def stop_monitoring(config: Optional[MonitorConfig] = None) -> None:
    """Delete persisted state without a session (e.g. from another process)."""
    stop_monitoring_and_delete_state(config or load_config())
