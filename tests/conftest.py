"""Shared fixtures: a project tree on disk and a workspace that knows it."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from artifactor.config import reset_config
from artifactor.lib.workspace.memory import InMemoryWorkspace


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    """Reset the global config singleton and ARTIFACTOR_* variables around each test."""
    for name in list(os.environ):
        if name.startswith("ARTIFACTOR_"):
            monkeypatch.delenv(name)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """App/App.csproj with the template App/Templates/Foo.tt."""
    root = tmp_path / "App"
    (root / "Templates").mkdir(parents=True)
    (root / "App.csproj").write_text("<Project />", encoding="utf-8")
    (root / "Templates" / "Foo.tt").write_text("<#@ template #>", encoding="utf-8")
    return root


@pytest.fixture
def lib_dir(tmp_path: Path) -> Path:
    """A second project, Lib/Lib.csproj, next to App."""
    root = tmp_path / "Lib"
    root.mkdir()
    (root / "Lib.csproj").write_text("<Project />", encoding="utf-8")
    return root


@pytest.fixture
def input_path(app_dir: Path) -> Path:
    return app_dir / "Templates" / "Foo.tt"


@pytest.fixture
def workspace(app_dir: Path, input_path: Path) -> InMemoryWorkspace:
    ws = InMemoryWorkspace()
    project = ws.add_project(app_dir / "App.csproj")
    ws.add_existing_file(project, input_path)
    return ws
