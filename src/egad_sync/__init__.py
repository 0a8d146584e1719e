"""egad-sync - poll-based directory change tracking with persisted state."""

from .api import MonitoringSession
from .config import MonitorConfig, load_config
from .constants import EGAD_SYNC_VERSION as __version__
from .core import ChangeKind, DiffResult, FileChange, FileMetadata, Tracker
from .diffing import compute_diff, only_file_changes
from .snapshot import scan_dir

__all__ = [
    "ChangeKind",
    "DiffResult",
    "FileChange",
    "FileMetadata",
    "MonitorConfig",
    "MonitoringSession",
    "Tracker",
    "compute_diff",
    "load_config",
    "only_file_changes",
    "scan_dir",
]
