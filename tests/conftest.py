"""Shared test fixtures and utilities."""

import time
from pathlib import Path

import platformdirs
import pytest

from egad_sync.config import MonitorConfig


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep platformdirs lookups and env overrides out of the real user profile."""
    data_dir = tmp_path / "user-data"
    config_dir = tmp_path / "user-config"
    monkeypatch.setattr(platformdirs, "user_data_dir", lambda *a, **k: str(data_dir))
    monkeypatch.setattr(platformdirs, "user_config_dir", lambda *a, **k: str(config_dir))
    for var in ("EGAD_SYNC_INTERVAL", "EGAD_SYNC_STATE_FILE", "EGAD_SYNC_INCLUDE_DIRS"):
        monkeypatch.delenv(var, raising=False)
    return data_dir, config_dir


@pytest.fixture
def watched_dir(tmp_path):
    """Empty directory to monitor."""
    root = tmp_path / "watched"
    root.mkdir()
    return root


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "state" / "state.json"


@pytest.fixture
def config(state_file):
    """Fast-ticking config with an isolated state file."""
    return MonitorConfig(sync_interval_secs=0.05, state_file_path=state_file)


@pytest.fixture
def write_file(watched_dir):
    """Factory fixture to write files relative to the watched directory."""
    def _write(path: str, content: str = "test content") -> Path:
        file_path = watched_dir / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        return file_path
    return _write


@pytest.fixture
def wait_until():
    """Poll a predicate until it returns truthy or the timeout elapses."""
    def _wait(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return bool(predicate())
    return _wait
