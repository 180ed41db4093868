"""Unit tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from artifactor.config import ArtifactorConfig, get_config, reset_config


class TestArtifactorConfig:
    def test_defaults(self):
        config = ArtifactorConfig()
        assert config.log_level == "INFO"
        assert config.default_encoding == "utf-8"
        assert config.manifest_newline == "\r\n"
        assert config.primary_output_timeout == 30.0
        assert config.max_concurrent_runs == 4
        assert config.workspace_file == ".artifactor/workspace.json"
        assert config.backup_suffix == ".bak"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ARTIFACTOR_MANIFEST_NEWLINE", "LF")
        monkeypatch.setenv("ARTIFACTOR_PRIMARY_OUTPUT_TIMEOUT", "2.5")
        monkeypatch.setenv("ARTIFACTOR_MAX_CONCURRENT_RUNS", "8")
        config = ArtifactorConfig()
        assert config.manifest_newline == "\n"
        assert config.primary_output_timeout == 2.5
        assert config.max_concurrent_runs == 8

    def test_invalid_newline(self, monkeypatch):
        monkeypatch.setenv("ARTIFACTOR_MANIFEST_NEWLINE", "cr")
        with pytest.raises(ValueError, match="Invalid ARTIFACTOR_MANIFEST_NEWLINE"):
            ArtifactorConfig()


class TestSingleton:
    def test_cached_until_reset(self, monkeypatch):
        first = get_config()
        assert get_config() is first
        monkeypatch.setenv("ARTIFACTOR_BACKUP_SUFFIX", ".old")
        assert get_config().backup_suffix == ".bak"
        reset_config()
        assert get_config().backup_suffix == ".old"

    def test_dotenv_does_not_override_environment(self, monkeypatch, tmp_path: Path):
        (tmp_path / ".env").write_text(
            "ARTIFACTOR_LOG_LEVEL=DEBUG\nARTIFACTOR_BACKUP_SUFFIX=.env-bak\n", encoding="utf-8"
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ARTIFACTOR_LOG_LEVEL", "WARNING")
        # Registered so the value loaded from .env is removed again afterwards.
        monkeypatch.delenv("ARTIFACTOR_BACKUP_SUFFIX", raising=False)
        reset_config()
        config = get_config()
        assert config.log_level == "WARNING"
        assert config.backup_suffix == ".env-bak"
