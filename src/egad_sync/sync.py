"""Background sync loop.

One loop owns one tracker. Each tick rescans the tracked root on a worker
thread, diffs it against the tracker's snapshot, reports non-empty change
sets and persists the new snapshot. Ticks never overlap: the next wait only
starts once the previous tick's persist step has finished.

State machine::

    IDLE -> STARTING -> RUNNING -> STOPPED            (stop() called)
    IDLE -> STARTING -> STOPPED_ON_ERROR              (state could not be loaded)

Failures inside a RUNNING tick are reported and the loop carries on with the
next tick.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Optional

from .config import MonitorConfig
from .core import DiffResult, Tracker
from .errors import TrackerError
from .events import FileDiffs, NotificationSink, SyncError, deliver
from .ops import load_tracker, refresh_tracker, save_tracker

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    """Lifecycle of a sync loop."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    STOPPED_ON_ERROR = "stopped_on_error"


def log_changes(diff: DiffResult) -> None:
    """Log detected changes."""
    logger.info("Detected changes:")
    for change in diff.changes:
        logger.info("%s", change)


class SyncLoop:
    """Periodic scan/diff/notify/persist cycle for the persisted tracker."""

    def __init__(self, config: MonitorConfig, sink: Optional[NotificationSink] = None):
        self.config = config
        self.sink = sink
        self.state = LoopState.IDLE
        self.tracker: Optional[Tracker] = None
        self.ticks = 0
        self._dirty = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    # ---- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Spawn the loop thread.

        Raises:
            RuntimeError: If this loop was already started
        """
        if self._thread is not None:
            raise RuntimeError("Sync loop already started")
        self.state = LoopState.STARTING
        self._thread = threading.Thread(target=self._run, name="egad-sync-loop", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Signal the loop to stop and wait for it.

        A tick in flight runs to completion (including its persist step)
        before the loop exits.

        Returns:
            True if the loop thread is no longer running
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None:
            return True
        if thread is not threading.current_thread():
            thread.join(timeout)
        return not thread.is_alive()

    @property
    def is_running(self) -> bool:
        """True while the loop thread is alive and has not been told to stop."""
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop thread exits (on its own or after stop())."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # ---- loop body ----------------------------------------------------------

    def _run(self) -> None:
        try:
            self.tracker = load_tracker(self.config)
        except TrackerError as e:
            logger.error("Failed to load state: %s", e)
            self.state = LoopState.STOPPED_ON_ERROR
            deliver(self.sink, SyncError.from_error("Failed to load state", e))
            return

        if self._stop_event.is_set():
            self.state = LoopState.STOPPED
            return

        interval = self.config.sync_interval_secs
        self.state = LoopState.RUNNING
        logger.info(
            "Starting background sync loop for %s with interval %ss",
            self.tracker.root_target,
            interval,
        )

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="egad-scan")
        try:
            next_tick = time.monotonic() + interval
            while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
                try:
                    self.tick()
                except Exception as e:
                    logger.exception("Unexpected error in sync cycle")
                    deliver(self.sink, SyncError.from_error("Unexpected sync error", e))
                next_tick += interval
                now = time.monotonic()
                if next_tick < now:
                    # A slow cycle overran one or more ticks; skip them
                    next_tick = now + interval
        finally:
            self._executor.shutdown(wait=True)
            self._executor = None
            self.state = LoopState.STOPPED
            logger.info("Sync loop for %s stopped", self.tracker.root_target)

    def tick(self) -> Optional[DiffResult]:
        """Run one scan -> diff -> notify -> persist cycle.

        Returns:
            The full change set, or None if the scan failed

        Raises:
            RuntimeError: If no tracker has been loaded
        """
        if self.tracker is None:
            raise RuntimeError("Sync loop has no tracker loaded")

        try:
            diff = refresh_tracker(self.tracker, self._executor)
        except TrackerError as e:
            logger.error("Failed to compute diff: %s", e)
            deliver(self.sink, SyncError.from_error("Failed to compute diff", e))
            return None
        self.ticks += 1

        if not diff.is_empty:
            log_changes(diff)
            self._dirty = True
            reported = diff if self.config.include_directories else diff.only_files()
            if not reported.is_empty:
                deliver(self.sink, FileDiffs(
                    folder=self.tracker.root_target,
                    changes=reported.describe(),
                ))

        # A previous failed save leaves memory ahead of disk; retry until it lands.
        # Once stop() has been called the state may already be deleted, so the
        # save is skipped rather than recreating it.
        if self._dirty:
            try:
                if save_tracker(self.tracker, self.config, cancel=self._stop_event):
                    self._dirty = False
            except TrackerError as e:
                logger.error("Failed to save state: %s", e)
                deliver(self.sink, SyncError.from_error("Failed to save state", e))

        return diff


def start_sync_loop(config: MonitorConfig, sink: Optional[NotificationSink] = None) -> SyncLoop:
    """Create and start a sync loop over the persisted tracker."""
    loop = SyncLoop(config, sink)
    loop.start()
    return loop
