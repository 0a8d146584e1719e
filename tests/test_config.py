"""Tests for configuration loading."""

from pathlib import Path

import platformdirs
import pytest

from egad_sync.config import MonitorConfig, default_state_path, load_config
from egad_sync.errors import ConfigError, ErrorKind


class TestDefaults:
    """Test default values."""

    def test_defaults(self, isolated_dirs):
        data_dir, _ = isolated_dirs

        config = MonitorConfig()

        assert config.sync_interval_secs == 60
        assert config.state_file_path == data_dir / "state.json"
        assert config.include_directories is False
        assert data_dir.is_dir()

    def test_falls_back_to_cwd_when_data_dir_unavailable(self, tmp_path, monkeypatch):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        monkeypatch.setattr(platformdirs, "user_data_dir", lambda *a, **k: str(blocker / "data"))
        monkeypatch.chdir(tmp_path)

        assert default_state_path() == tmp_path / "state.json"

    def test_lock_path_beside_state(self, tmp_path):
        config = MonitorConfig(state_file_path=tmp_path / "state.json")
        assert config.lock_path == tmp_path / "state.json.lock"

    def test_string_path_coerced(self, tmp_path):
        config = MonitorConfig(state_file_path=str(tmp_path / "s.json"))
        assert isinstance(config.state_file_path, Path)


class TestValidation:
    """Test invalid values."""

    @pytest.mark.parametrize("interval", [0, -5, "soon"])
    def test_bad_interval(self, interval):
        with pytest.raises(ConfigError) as exc_info:
            MonitorConfig(sync_interval_secs=interval)

        assert exc_info.value.kind == ErrorKind.CONFIG_ERROR

    def test_non_numeric_interval_keeps_cause(self):
        with pytest.raises(ConfigError) as exc_info:
            MonitorConfig(sync_interval_secs="soon")

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_invalid_yaml(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("sync_interval_secs: [unclosed")

        with pytest.raises(ConfigError):
            load_config(cfg)

    def test_unknown_key(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("sync_interval: 5\n")

        with pytest.raises(ConfigError, match="sync_interval"):
            load_config(cfg)

    def test_non_mapping(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError):
            load_config(cfg)


class TestLoadConfig:
    """Test resolution order: overrides > env > file > defaults."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config.sync_interval_secs == 60

    def test_default_config_location(self, isolated_dirs):
        _, config_dir = isolated_dirs
        config_dir.mkdir(parents=True)
        (config_dir / "config.yaml").write_text("sync_interval_secs: 15\n")

        assert load_config().sync_interval_secs == 15

    def test_file_values(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text(
            "sync_interval_secs: 5\n"
            f"state_file_path: {tmp_path / 'custom.json'}\n"
            "include_directories: true\n"
        )

        config = load_config(cfg)

        assert config.sync_interval_secs == 5
        assert config.state_file_path == tmp_path / "custom.json"
        assert config.include_directories is True

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("sync_interval_secs: 5\n")
        monkeypatch.setenv("EGAD_SYNC_INTERVAL", "7.5")
        monkeypatch.setenv("EGAD_SYNC_STATE_FILE", str(tmp_path / "env.json"))
        monkeypatch.setenv("EGAD_SYNC_INCLUDE_DIRS", "yes")

        config = load_config(cfg)

        assert config.sync_interval_secs == 7.5
        assert config.state_file_path == tmp_path / "env.json"
        assert config.include_directories is True

    def test_explicit_overrides_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EGAD_SYNC_INTERVAL", "7")

        config = load_config(tmp_path / "absent.yaml", sync_interval_secs=3, state_file_path=None)

        assert config.sync_interval_secs == 3

    def test_invalid_env_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EGAD_SYNC_INTERVAL", "never")

        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.yaml")
