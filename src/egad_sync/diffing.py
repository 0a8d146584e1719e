"""Diff computation logic - stable module for computing differences."""

from typing import List, Sequence

from .core import DiffResult, FileChange, Snapshot


def compute_diff(old: Snapshot, new: Snapshot) -> DiffResult:
    """
    Compute differences between two snapshots of the same root.

    Args:
        old: Snapshot the tracker currently holds.
        new: Freshly scanned snapshot.

    Returns:
        DiffResult with one FileChange per created, modified or deleted path.

    Note:
        Records are ordered by path: created/modified first, then deleted.
        A path deleted and recreated between scans shows up as Modified (or
        not at all if its metadata matches); a path created and deleted
        between scans never shows up.
    """
    changes = []

    for path in sorted(new):
        new_meta = new[path]
        old_meta = old.get(path)
        if old_meta is None:
            changes.append(FileChange.created(path, new_meta))
        elif old_meta.differs_from(new_meta):
            changes.append(FileChange.modified(path, new_meta))

    for path in sorted(old.keys() - new.keys()):
        changes.append(FileChange.deleted(path))

    return DiffResult(changes=changes)


def only_file_changes(changes: Sequence[FileChange]) -> List[FileChange]:
    """Drop Created/Modified records that describe directories.

    Deleted records are always kept since a deleted path's type is unknown.
    The input is left untouched and the relative order of survivors is kept.
    """
    return [change for change in changes if not change.is_dir]
