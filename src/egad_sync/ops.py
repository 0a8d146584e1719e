"""Core operations for egad-sync: tracker creation, refresh and persistence."""

from concurrent.futures import Executor
from pathlib import Path
from typing import Optional, Union
import json
import logging
import os
import tempfile
import threading

import portalocker
from pydantic import ValidationError

from .config import MonitorConfig
from .constants import STATE_LOCK_TIMEOUT_SECS
from .core import DiffResult, Tracker
from .diffing import compute_diff
from .errors import (
    SerializationError,
    StateNotFoundError,
    TrackerIOError,
)
from .snapshot import scan_dir, scan_dir_in_worker

logger = logging.getLogger(__name__)


# ============= Atomic Write Helpers =============

def _atomic_write_text(path: Path, text: str) -> None:
    """Atomically write text to file with crash safety.

    1. Writes to temp file with fsync to ensure content is on disk
    2. Atomic rename to target path (appears all-at-once)
    3. Fsync parent directory to ensure rename is durable

    Directory fsync is best-effort (not supported on Windows).

    Args:
        path: Target file path
        text: Text content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory
    f = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
        suffix=""
    )
    tmp = Path(f.name)

    try:
        with f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp, path)

        try:
            flags = os.O_RDONLY
            if hasattr(os, "O_DIRECTORY"):
                flags |= os.O_DIRECTORY

            dirfd = os.open(str(path.parent), flags)
            try:
                os.fsync(dirfd)
            finally:
                os.close(dirfd)
        except OSError:
            # Expected on Windows or filesystems that don't support directory fsync
            logger.debug("Directory fsync not supported for %s", path.parent)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def _state_lock(config: MonitorConfig) -> portalocker.Lock:
    """Exclusive lock serializing writers of the state file."""
    config.lock_path.parent.mkdir(parents=True, exist_ok=True)
    return portalocker.Lock(str(config.lock_path), "w", timeout=STATE_LOCK_TIMEOUT_SECS)


# ============= State Store =============

def save_tracker(
    tracker: Tracker,
    config: MonitorConfig,
    cancel: Optional[threading.Event] = None,
) -> bool:
    """Persist the full tracker (root + snapshot), replacing any previous state.

    Readers never observe a half-written file: the state is written to a temp
    file and renamed into place while holding the state lock.

    Args:
        tracker: Tracker to persist
        config: Monitor configuration
        cancel: If set by the time the lock is held, nothing is written. A
            stopping loop passes its stop token so it cannot recreate state
            that stop_monitoring has already deleted.

    Returns:
        True if the state was written

    Raises:
        TrackerIOError: If the state cannot be written
    """
    path = config.state_file_path
    state_text = json.dumps(tracker.model_dump(mode="json"), indent=2)
    try:
        with _state_lock(config):
            if cancel is not None and cancel.is_set():
                logger.info("Save of %s cancelled", path)
                return False
            _atomic_write_text(path, state_text)
    except (OSError, portalocker.LockException) as e:
        raise TrackerIOError(f"I/O error: cannot save state to {path}: {e}") from e
    logger.info("Saved state to %s", path)
    return True


def load_tracker(config: MonitorConfig) -> Tracker:
    """Load the persisted tracker.

    Raises:
        StateNotFoundError: If no state file exists
        TrackerIOError: If the state file cannot be read
        SerializationError: If the state file is not a valid tracker
    """
    path = config.state_file_path
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        raise StateNotFoundError(str(path)) from e
    except OSError as e:
        raise TrackerIOError(f"I/O error: cannot read state from {path}: {e}") from e

    try:
        data = json.loads(raw.decode("utf-8"))
        return Tracker.model_validate(data)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        raise SerializationError(str(path), str(e)) from e


def is_monitoring_active(config: MonitorConfig) -> bool:
    """Check whether persisted state exists and parses. No side effects."""
    try:
        load_tracker(config)
    except (StateNotFoundError, TrackerIOError, SerializationError):
        return False
    return True


def stop_monitoring_and_delete_state(config: MonitorConfig) -> None:
    """Delete the persisted state.

    Raises:
        StateNotFoundError: If there is no state to delete (nothing to stop)
        TrackerIOError: If the state file cannot be deleted
    """
    path = config.state_file_path
    try:
        with _state_lock(config):
            path.unlink()
    except FileNotFoundError as e:
        raise StateNotFoundError(str(path)) from e
    except (OSError, portalocker.LockException) as e:
        raise TrackerIOError(f"I/O error: cannot delete state at {path}: {e}") from e
    logger.info("Stopped monitoring and deleted state file at %s", path)


# ============= Tracker Operations =============

def create_tracker(root: Union[str, Path], config: MonitorConfig) -> Tracker:
    """Scan ``root`` and persist it as the new tracked state.

    Nothing is written when the scan fails.

    Raises:
        RootNotADirectoryError: If root is not a directory
        TrackerIOError: If root is missing, unreadable, or state cannot be saved
        ScanError: If the walk fails part-way
    """
    root_target = os.path.abspath(root)
    logger.info("Initializing tracker for directory: %s", root_target)
    tracker = Tracker(root_target=root_target, files_state=scan_dir(root_target))
    save_tracker(tracker, config)
    return tracker


def refresh_tracker(tracker: Tracker, executor: Optional[Executor] = None) -> DiffResult:
    """Rescan the tracker's root, diff against its snapshot, adopt the new scan.

    The snapshot is replaced even when nothing changed. On scan failure the
    tracker is left untouched.

    Args:
        tracker: Tracker to refresh in place
        executor: Worker pool to scan on (a one-off worker if omitted)

    Returns:
        DiffResult describing what changed since the previous snapshot
    """
    new_state = scan_dir_in_worker(tracker.root_target, executor)
    diff = compute_diff(tracker.files_state, new_state)
    tracker.replace_snapshot(new_state)
    return diff
