"""Utility functions for egad-sync."""

from datetime import datetime


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_mtime(mtime_ns: int) -> str:
    """Format a nanosecond modification time as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(mtime_ns / 1_000_000_000).strftime("%Y-%m-%d %H:%M:%S")


def relative_to_root(path: str, root: str) -> str:
    """Display a tracked path relative to its root when possible.

    Examples:
        ("/data/a/b.txt", "/data") -> "a/b.txt"
        ("/elsewhere/c", "/data") -> "/elsewhere/c"
    """
    prefix = root.rstrip("/\\")
    if path.startswith(prefix) and len(path) > len(prefix) and path[len(prefix)] in "/\\":
        return path[len(prefix) + 1:]
    return path
