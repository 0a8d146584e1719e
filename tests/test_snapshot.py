"""Tests for directory scanning."""

import os
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from egad_sync.errors import (
    ErrorKind,
    JoinError,
    RootNotADirectoryError,
    ScanError,
    TrackerIOError,
)
from egad_sync.snapshot import scan_dir, scan_dir_in_worker


class _UnreadableEntry:
    """Directory entry whose metadata cannot be read."""

    def __init__(self, path):
        self.path = path
        self.name = os.path.basename(path)

    def stat(self, follow_symlinks=True):
        raise PermissionError(13, "Permission denied", self.path)


def _fake_scandir(entries):
    scandir = MagicMock()
    scandir.return_value.__enter__.return_value = iter(entries)
    return scandir


class TestScanDir:
    """Test snapshot contents."""

    def test_empty_directory_has_no_entries(self, watched_dir):
        """The root is not part of its own snapshot."""
        assert scan_dir(watched_dir) == {}

    def test_nested_entries_keyed_by_absolute_path(self, watched_dir, write_file):
        write_file("a.txt", "0123456789")
        write_file("sub/b.txt", "hello")
        (watched_dir / "sub" / "empty").mkdir()

        snapshot = scan_dir(watched_dir)

        a = str(watched_dir / "a.txt")
        sub = str(watched_dir / "sub")
        b = str(watched_dir / "sub" / "b.txt")
        empty = str(watched_dir / "sub" / "empty")
        assert set(snapshot) == {a, sub, b, empty}
        assert all(os.path.isabs(p) for p in snapshot)

        assert snapshot[a].size == 10
        assert snapshot[a].is_dir is False
        assert snapshot[b].size == 5
        assert snapshot[sub].is_dir is True
        assert snapshot[empty].is_dir is True
        assert snapshot[a].mtime_ns == os.stat(a).st_mtime_ns

    def test_relative_root_is_made_absolute(self, watched_dir, write_file, monkeypatch):
        write_file("a.txt")
        monkeypatch.chdir(watched_dir.parent)

        snapshot = scan_dir(watched_dir.name)

        assert list(snapshot) == [str(watched_dir / "a.txt")]

    def test_repeated_scans_are_equal(self, watched_dir, write_file):
        write_file("x/y/z.txt")
        write_file("top.txt")
        assert scan_dir(watched_dir) == scan_dir(watched_dir)

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlinks_recorded_but_not_followed(self, tmp_path, watched_dir):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("data")
        link = watched_dir / "link"
        link.symlink_to(outside, target_is_directory=True)

        snapshot = scan_dir(watched_dir)

        assert set(snapshot) == {str(link)}
        assert snapshot[str(link)].is_dir is False

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlink_loop_terminates(self, watched_dir):
        (watched_dir / "sub").mkdir()
        (watched_dir / "sub" / "back").symlink_to(watched_dir, target_is_directory=True)

        snapshot = scan_dir(watched_dir)

        assert set(snapshot) == {str(watched_dir / "sub"), str(watched_dir / "sub" / "back")}


class TestScanErrors:
    """Test that scans fail as a whole instead of skipping entries."""

    def test_regular_file_root_is_not_a_directory(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")

        with pytest.raises(RootNotADirectoryError) as exc_info:
            scan_dir(target)

        assert exc_info.value.kind == ErrorKind.NOT_A_DIRECTORY

    def test_missing_root_is_io_error(self, tmp_path):
        with pytest.raises(TrackerIOError) as exc_info:
            scan_dir(tmp_path / "nope")

        assert exc_info.value.kind == ErrorKind.IO_ERROR

    def test_unreadable_metadata_fails_whole_scan(self, watched_dir):
        entry = _UnreadableEntry(str(watched_dir / "locked.txt"))

        with patch("egad_sync.snapshot.os.scandir", _fake_scandir([entry])):
            with pytest.raises(TrackerIOError) as exc_info:
                scan_dir(watched_dir)

        assert "locked.txt" in str(exc_info.value)

    def test_unlistable_directory_is_scan_error(self, watched_dir):
        with patch("egad_sync.snapshot.os.scandir", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(ScanError) as exc_info:
                scan_dir(watched_dir)

        assert exc_info.value.kind == ErrorKind.SCAN_ERROR
        assert exc_info.value.path == str(watched_dir)


class TestScanInWorker:
    """Test scanning on a worker thread."""

    def test_matches_direct_scan(self, watched_dir, write_file):
        write_file("a.txt")
        write_file("d/b.txt")

        with ThreadPoolExecutor(max_workers=1) as executor:
            assert scan_dir_in_worker(watched_dir, executor) == scan_dir(watched_dir)

    def test_one_off_worker_when_no_executor(self, watched_dir, write_file):
        write_file("a.txt")
        assert scan_dir_in_worker(watched_dir) == scan_dir(watched_dir)

    def test_tracker_errors_propagate_unchanged(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")

        with pytest.raises(RootNotADirectoryError):
            scan_dir_in_worker(target)

    def test_unexpected_worker_failure_is_join_error(self, watched_dir):
        with patch("egad_sync.snapshot.scan_dir", side_effect=ValueError("worker crashed")):
            with pytest.raises(JoinError) as exc_info:
                scan_dir_in_worker(watched_dir)

        assert exc_info.value.kind == ErrorKind.JOIN_ERROR
        assert "worker crashed" in str(exc_info.value)

    def test_shut_down_executor_is_join_error(self, watched_dir):
        executor = ThreadPoolExecutor(max_workers=1)
        executor.shutdown()

        with pytest.raises(JoinError):
            scan_dir_in_worker(watched_dir, executor)
