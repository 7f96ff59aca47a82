"""Tests for CLI configuration loading and validation."""

import pytest
import yaml
from pydantic import ValidationError

from wmsync.cli.config import (
    ConnectivitySettings,
    LoggingSettings,
    WmsyncConfig,
    load_config,
    load_config_or_default,
    resolve_env_vars,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer WMSYNC_* variables out of these tests."""
    import os

    for key in list(os.environ):
        if key.startswith("WMSYNC_"):
            monkeypatch.delenv(key)


def write_config(tmp_path, data) -> str:
    path = tmp_path / "wmsync.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        """Defaults sync load-to-dock and refresh every known API."""
        cfg = WmsyncConfig()
        assert cfg.api.base_url == "http://127.0.0.1:8080"
        assert cfg.refresh.responsibilities == []
        assert cfg.refresh.max_retry_attempts == 3
        assert cfg.sync.responsibilities == ["LOAD_TO_DOCK"]
        assert cfg.store.database_url == "sqlite:///./wmsync.db"
        assert cfg.logging.level == "INFO"

    def test_level_is_case_insensitive(self):
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingSettings(level="chatty")

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValidationError):
            ConnectivitySettings(timeout=0)


class TestResolveEnvVars:
    def test_resolves_known_var(self, monkeypatch):
        monkeypatch.setenv("EBS_TOKEN", "abc")
        assert resolve_env_vars("Bearer ${EBS_TOKEN}") == "Bearer abc"

    def test_missing_var_is_empty(self):
        assert resolve_env_vars("${WMSYNC_TEST_UNSET_VAR}") == ""


class TestLoadConfig:
    """Tests for loading YAML with env resolution and overrides."""

    def test_loads_yaml(self, tmp_path):
        path = write_config(
            tmp_path,
            {
                "api": {"base_url": "https://ebs.example.com", "org_id": "204"},
                "refresh": {"responsibilities": ["ITEM", "REASON"]},
            },
        )
        cfg = load_config(path)
        assert cfg.api.base_url == "https://ebs.example.com"
        assert cfg.api.org_id == "204"
        assert cfg.refresh.responsibilities == ["ITEM", "REASON"]
        assert cfg.sync.responsibilities == ["LOAD_TO_DOCK"]

    def test_env_references_resolve(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EBS_TOKEN", "s3cret")
        path = write_config(tmp_path, {"api": {"token": "${EBS_TOKEN}"}})
        assert load_config(path).api.token == "s3cret"

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, {"refresh": {"max_retry_attempts": 2}})
        monkeypatch.setenv("WMSYNC_REFRESH_MAX_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("WMSYNC_SYNC_RESPONSIBILITIES", "LOAD_TO_DOCK, PICK")
        monkeypatch.setenv("WMSYNC_STORE_ECHO", "true")
        monkeypatch.setenv("WMSYNC_API_ORG_ID", "204")

        cfg = load_config(path)

        assert cfg.refresh.max_retry_attempts == 5
        assert cfg.sync.responsibilities == ["LOAD_TO_DOCK", "PICK"]
        assert cfg.store.echo is True
        assert cfg.api.org_id == "204"

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_no_config_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert load_config() is None

    def test_discovers_cwd_file(self, tmp_path, monkeypatch):
        write_config(tmp_path, {"api": {"token": "found"}})
        monkeypatch.chdir(tmp_path)
        assert load_config().api.token == "found"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "wmsync.yaml"
        path.write_text("")
        assert load_config(str(path)) == WmsyncConfig()

    def test_default_with_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("WMSYNC_LOGGING_LEVEL", "warning")
        assert load_config_or_default().logging.level == "WARNING"

    def test_invalid_values_raise(self, tmp_path):
        path = write_config(tmp_path, {"refresh": {"max_retry_attempts": "many"}})
        with pytest.raises(ValidationError):
            load_config(path)
