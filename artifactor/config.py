"""Artifactor configuration -- encodings, manifest format, runtime limits."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_NEWLINES = {"crlf": "\r\n", "lf": "\n"}


def _load_env_file() -> None:
    """Load ``.env`` from the working directory without overriding real env vars."""
    env_file = Path.cwd() / ".env"
    if env_file.is_file():
        load_dotenv(env_file, override=False)


def _manifest_newline() -> str:
    name = os.environ.get("ARTIFACTOR_MANIFEST_NEWLINE", "crlf").strip().lower()
    if name not in _NEWLINES:
        raise ValueError(
            f"Invalid ARTIFACTOR_MANIFEST_NEWLINE '{name}'. Must be one of {sorted(_NEWLINES)}."
        )
    return _NEWLINES[name]


@dataclass
class ArtifactorConfig:
    """Top-level configuration for the output manager."""

    log_level: str = field(
        default_factory=lambda: os.environ.get("ARTIFACTOR_LOG_LEVEL", "INFO")
    )
    default_encoding: str = field(
        default_factory=lambda: os.environ.get("ARTIFACTOR_DEFAULT_ENCODING", "utf-8")
    )
    manifest_newline: str = field(default_factory=_manifest_newline)
    primary_output_timeout: float = field(
        default_factory=lambda: float(os.environ.get("ARTIFACTOR_PRIMARY_OUTPUT_TIMEOUT", "30"))
    )
    max_concurrent_runs: int = field(
        default_factory=lambda: int(os.environ.get("ARTIFACTOR_MAX_CONCURRENT_RUNS", "4"))
    )
    workspace_file: str = field(
        default_factory=lambda: os.environ.get(
            "ARTIFACTOR_WORKSPACE_FILE", ".artifactor/workspace.json"
        )
    )
    backup_suffix: str = field(
        default_factory=lambda: os.environ.get("ARTIFACTOR_BACKUP_SUFFIX", ".bak")
    )


# Singleton for convenience
_config: ArtifactorConfig | None = None


def get_config() -> ArtifactorConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None:
        _load_env_file()
        _config = ArtifactorConfig()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
