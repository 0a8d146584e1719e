"""Directory snapshots built from filesystem metadata.

No file contents are read; a snapshot only records what ``lstat`` reports.
"""

import logging
import os
import stat
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

from .core import FileMetadata, Snapshot
from .errors import RootNotADirectoryError, ScanError, TrackerError, TrackerIOError, JoinError

logger = logging.getLogger(__name__)


def _metadata_from_stat(st: os.stat_result, is_dir: bool) -> FileMetadata:
    return FileMetadata(mtime_ns=st.st_mtime_ns, size=st.st_size, is_dir=is_dir)


def _check_root(root: Path) -> None:
    """Ensure the root exists and is a directory."""
    try:
        st = os.stat(root)
    except FileNotFoundError as e:
        raise TrackerIOError(f"I/O error: path does not exist: {root}") from e
    except OSError as e:
        raise TrackerIOError(f"I/O error: cannot read metadata of {root}: {e}") from e
    if not stat.S_ISDIR(st.st_mode):
        raise RootNotADirectoryError(str(root))


def scan_dir(target: Union[str, Path]) -> Snapshot:
    """Scan a directory tree and return its metadata snapshot.

    Walks every descendant of ``target`` (files, directories and symlinks),
    never following symbolic links. Each entry's metadata is read exactly
    once. The root itself is not included in the result.

    Args:
        target: Directory to scan. Relative paths are made absolute.

    Returns:
        Mapping of absolute path -> FileMetadata

    Raises:
        RootNotADirectoryError: If target exists but is not a directory
        TrackerIOError: If target does not exist or an entry's metadata
            cannot be read
        ScanError: If a directory cannot be listed during the walk
    """
    root = Path(os.path.abspath(target))
    _check_root(root)

    snapshot: Snapshot = {}
    pending = [str(root)]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            raise ScanError(current, str(e)) from e

        for entry in entries:
            try:
                st = entry.stat(follow_symlinks=False)
                is_dir = stat.S_ISDIR(st.st_mode)
            except OSError as e:
                raise TrackerIOError(f"I/O error: cannot read metadata of {entry.path}: {e}") from e
            snapshot[entry.path] = _metadata_from_stat(st, is_dir)
            if is_dir:
                pending.append(entry.path)

    logger.debug("Scanned %s: %d entries", root, len(snapshot))
    return snapshot


def scan_dir_in_worker(target: Union[str, Path], executor: Optional[Executor] = None) -> Snapshot:
    """Run ``scan_dir`` on a worker thread and wait for its result.

    Typed tracker errors raised by the scan propagate unchanged; anything
    else that prevents the worker from completing becomes a JoinError.

    Args:
        target: Directory to scan
        executor: Executor to submit to; a one-off single worker is used if omitted
    """
    owned = executor is None
    if owned:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="egad-scan")
    try:
        future = executor.submit(scan_dir, target)
        return future.result()
    except TrackerError:
        raise
    except Exception as e:
        raise JoinError(str(e) or type(e).__name__) from e
    finally:
        if owned:
            executor.shutdown(wait=False)
