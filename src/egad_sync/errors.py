"""Custom exceptions for egad-sync.

Every failure the tracker can produce belongs to one of the kinds in
``ErrorKind``. Each exception class pins its kind so callers (and the
notification stream) can branch on a closed set instead of parsing messages.
"""

from enum import Enum
from typing import Dict


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    NOT_A_DIRECTORY = "NotADirectory"
    NOT_FOUND = "NotFound"
    IO_ERROR = "IoError"
    SCAN_ERROR = "ScanError"
    JOIN_ERROR = "JoinError"
    SERIALIZATION_ERROR = "SerializationError"
    CONFIG_ERROR = "ConfigError"


class TrackerError(RuntimeError):
    """Base class for all tracker-related errors."""

    kind: ErrorKind = ErrorKind.IO_ERROR

    def to_payload(self) -> Dict[str, str]:
        """Structured form for event consumers: ``{"type", "details"}``."""
        return {"type": self.kind.value, "details": str(self)}


# Scan Errors
class RootNotADirectoryError(TrackerError):
    """Root path exists but is not a directory."""

    kind = ErrorKind.NOT_A_DIRECTORY

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"The specified path is not a directory: {path}")


class ScanError(TrackerError):
    """Directory walk failed (e.g. permission denied mid-walk)."""

    kind = ErrorKind.SCAN_ERROR

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"File scanning error at {path}: {reason}")


class JoinError(TrackerError):
    """Background scan task failed to complete."""

    kind = ErrorKind.JOIN_ERROR

    def __init__(self, reason: str):
        super().__init__(f"Background task error: {reason}")


# I/O Errors
class TrackerIOError(TrackerError):
    """Read, write or metadata failure."""

    kind = ErrorKind.IO_ERROR


class StateNotFoundError(TrackerIOError):
    """No persisted state exists (monitoring was never started or was stopped)."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"State not found at {path}")


# Serialization Errors
class SerializationError(TrackerError):
    """Persisted state is corrupt or incompatible."""

    kind = ErrorKind.SERIALIZATION_ERROR

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Serialization error in {path}: {reason}")


# Configuration Errors
class ConfigError(TrackerError):
    """Invalid configuration value."""

    kind = ErrorKind.CONFIG_ERROR
