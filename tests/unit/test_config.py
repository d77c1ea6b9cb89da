"""
Unit tests for configuration loading.
"""

from pathlib import Path

import pytest

from confsync.config import SyncConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CONFSYNC_BASE_URL", "CONFSYNC_REMOTE_ENABLED", "CONFSYNC_CACHE_DIR", "CONFSYNC_STATE_DB"):
        monkeypatch.delenv(name, raising=False)


class TestSyncConfig:
    """Tests for SyncConfig."""

    def test_defaults(self):
        config = SyncConfig()

        assert config.get("remote.max_attempts") == 3
        assert config.get("remote.backoff_seconds") == [1.0, 2.0, 4.0]
        assert config.get("state.type") == "sqlite"
        assert config.content_url() == "https://example.blob.core.windows.net/main/conference.json"
        assert config.flags_url() == "https://example.blob.core.windows.net/main/featureflags.json"

    def test_yaml_is_merged_over_defaults(self, tmp_path):
        path = tmp_path / "confsync.yaml"
        path.write_text(
            "remote:\n"
            "  base_url: https://cdn.test/feeds/\n"
            "  timeout: 5\n"
            "storage:\n"
            "  pretty_print: true\n",
            encoding="utf-8",
        )

        config = SyncConfig(config_path=path)

        assert config.get("remote.timeout") == 5
        assert config.get("remote.max_attempts") == 3
        assert config.get("storage.pretty_print") is True
        assert config.content_url() == "https://cdn.test/feeds/conference.json"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert SyncConfig(config_path=path).get("remote.enabled") is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SyncConfig(config_path=tmp_path / "missing.yaml")

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError):
            SyncConfig(config_path=path)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CONFSYNC_BASE_URL", "https://env.test")
        monkeypatch.setenv("CONFSYNC_REMOTE_ENABLED", "false")
        monkeypatch.setenv("CONFSYNC_CACHE_DIR", "/tmp/confsync-cache")
        monkeypatch.setenv("CONFSYNC_STATE_DB", "/tmp/confsync.db")

        config = SyncConfig()

        assert config.content_url() == "https://env.test/conference.json"
        assert config.get("remote.enabled") is False
        assert config.get("storage.cache_dir") == "/tmp/confsync-cache"
        assert config.get("state.db_path") == "/tmp/confsync.db"

    def test_get_default(self):
        config = SyncConfig()

        assert config.get("remote.nope", "x") == "x"
        assert config.get("remote.timeout.deeper", "x") == "x"

    def test_example_config_loads(self):
        path = Path(__file__).parent.parent.parent / "config" / "confsync.example.yaml"

        config = SyncConfig(config_path=path)

        assert config.get("remote.fallback_validator_header") == "X-ETag"
        assert config.get("storage.content_bootstrap") is None
