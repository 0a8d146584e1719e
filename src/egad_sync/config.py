"""Monitor configuration helpers."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml

from .constants import (
    APP_AUTHOR,
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_SYNC_INTERVAL_SECS,
    ENV_INCLUDE_DIRS,
    ENV_STATE_FILE,
    ENV_SYNC_INTERVAL,
    LOCK_SUFFIX,
    STATE_FILE,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)


def default_state_path() -> Path:
    """Get the platform-appropriate state file location.

    Uses the per-user application data directory; falls back to the current
    working directory when that directory cannot be created.
    """
    data_dir = Path(platformdirs.user_data_dir(APP_NAME, APP_AUTHOR))
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Data directory %s unavailable (%s), using current directory", data_dir, e)
        return Path.cwd() / STATE_FILE
    return data_dir / STATE_FILE


def default_config_path() -> Path:
    """Get the platform-appropriate config file location."""
    return Path(platformdirs.user_config_dir(APP_NAME, APP_AUTHOR)) / CONFIG_FILE


@dataclass
class MonitorConfig:
    """Process-wide monitoring configuration.

    Read once when a sync loop starts; changes are not picked up by a
    running loop.
    """

    sync_interval_secs: float = DEFAULT_SYNC_INTERVAL_SECS
    state_file_path: Path = field(default_factory=default_state_path)
    include_directories: bool = False

    def __post_init__(self):
        self.state_file_path = Path(self.state_file_path)
        try:
            self.sync_interval_secs = float(self.sync_interval_secs)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"sync_interval_secs must be a number, got {self.sync_interval_secs!r}") from e
        if self.sync_interval_secs <= 0:
            raise ConfigError(f"sync_interval_secs must be positive, got {self.sync_interval_secs}")

    @property
    def lock_path(self) -> Path:
        """Sidecar lock file guarding writes to the state file."""
        return self.state_file_path.with_name(self.state_file_path.name + LOCK_SUFFIX)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if os.environ.get(ENV_SYNC_INTERVAL):
        overrides["sync_interval_secs"] = os.environ[ENV_SYNC_INTERVAL]
    if os.environ.get(ENV_STATE_FILE):
        overrides["state_file_path"] = os.environ[ENV_STATE_FILE]
    if os.environ.get(ENV_INCLUDE_DIRS):
        overrides["include_directories"] = _parse_bool(os.environ[ENV_INCLUDE_DIRS])
    return overrides


def load_config(path: Optional[Path] = None, **overrides: Any) -> MonitorConfig:
    """Load monitor configuration.

    Resolution order: explicit keyword overrides > environment variables >
    YAML config file > defaults.

    Args:
        path: YAML file to read (defaults to the per-user config location;
            a missing file is not an error)
        **overrides: Field values that win over everything else; None is ignored

    Raises:
        ConfigError: If the file is not valid YAML or a value is invalid
    """
    cfg_path = Path(path) if path else default_config_path()

    data: Dict[str, Any] = {}
    if cfg_path.exists():
        try:
            data = yaml.safe_load(cfg_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration file {cfg_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid configuration file {cfg_path}: expected a mapping")

    known = {"sync_interval_secs", "state_file_path", "include_directories"}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown configuration keys in {cfg_path}: {', '.join(sorted(unknown))}")

    data.update(_env_overrides())
    data.update({k: v for k, v in overrides.items() if v is not None})
    return MonitorConfig(**data)
