"""Core data models for egad-sync.

Snapshots, Trackers and Change Sets:
------------------------------------
A snapshot maps absolute paths to the metadata read from the filesystem
(modification time, size, directory flag). A tracker owns one root and
exactly one snapshot of it. Comparing the tracker's snapshot with a fresh
scan yields a change set; the tracker then adopts the fresh scan wholesale.

The root directory is never an entry in its own snapshot, so an empty
directory scans to an empty mapping.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


# ============= File Metadata =============

class FileMetadata(BaseModel):
    """Metadata captured for a single filesystem entry."""

    mtime_ns: int  # st_mtime_ns, filesystem clock
    size: int
    is_dir: bool = False

    def differs_from(self, other: "FileMetadata") -> bool:
        """Check whether two observations of a path count as a modification.

        Only (mtime, size) take part; ``is_dir`` is carried for filtering.
        """
        return self.mtime_ns != other.mtime_ns or self.size != other.size


Snapshot = Dict[str, FileMetadata]


# ============= Change Detection =============

class ChangeKind(str, Enum):
    """Type of change detected between two snapshots."""

    CREATED = "Created"
    MODIFIED = "Modified"
    DELETED = "Deleted"


class FileChange(BaseModel):
    """Single classified difference between two snapshots.

    Created and Modified records carry the new metadata; Deleted records
    carry none.
    """

    kind: ChangeKind
    path: str
    metadata: Optional[FileMetadata] = None

    @model_validator(mode="after")
    def _check_metadata(self) -> "FileChange":
        if self.kind == ChangeKind.DELETED and self.metadata is not None:
            raise ValueError("Deleted changes carry no metadata")
        if self.kind != ChangeKind.DELETED and self.metadata is None:
            raise ValueError(f"{self.kind.value} changes require metadata")
        return self

    @classmethod
    def created(cls, path: str, metadata: FileMetadata) -> "FileChange":
        return cls(kind=ChangeKind.CREATED, path=path, metadata=metadata)

    @classmethod
    def modified(cls, path: str, metadata: FileMetadata) -> "FileChange":
        return cls(kind=ChangeKind.MODIFIED, path=path, metadata=metadata)

    @classmethod
    def deleted(cls, path: str) -> "FileChange":
        return cls(kind=ChangeKind.DELETED, path=path)

    @property
    def is_dir(self) -> bool:
        """True for Created/Modified records describing a directory."""
        return self.metadata is not None and self.metadata.is_dir

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.path}"


class DiffResult(BaseModel):
    """Result of comparing two snapshots."""

    changes: List[FileChange] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changes

    @property
    def summary(self) -> Dict[ChangeKind, int]:
        """Get summary counts by change kind."""
        counts = {}
        for change in self.changes:
            counts[change.kind] = counts.get(change.kind, 0) + 1
        return counts

    def only_files(self) -> "DiffResult":
        """Copy of this result without directory-only records."""
        from .diffing import only_file_changes
        return DiffResult(changes=only_file_changes(self.changes))

    def describe(self) -> List[str]:
        """Human-readable ``"<Kind>: <path>"`` lines, in order."""
        return [str(change) for change in self.changes]

    def __len__(self) -> int:
        return len(self.changes)


# ============= Tracker =============

class Tracker(BaseModel):
    """
    Tracked root and its current snapshot (persisted as state.json).
    """

    root_target: str
    files_state: Dict[str, FileMetadata] = Field(default_factory=dict)

    def replace_snapshot(self, snapshot: Snapshot) -> None:
        """Adopt a freshly scanned snapshot wholesale."""
        self.files_state = dict(snapshot)

    @property
    def file_count(self) -> int:
        return sum(1 for m in self.files_state.values() if not m.is_dir)

    @property
    def dir_count(self) -> int:
        return sum(1 for m in self.files_state.values() if m.is_dir)

    @property
    def total_size(self) -> int:
        """Bytes of regular files in the snapshot."""
        return sum(m.size for m in self.files_state.values() if not m.is_dir)
