"""Tests for the af command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from artifactor.lib.artifacts.models import ItemMetadata
from artifactor.lib.workspace.persistence import load_workspace
from cli.af import cli


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def ws_file(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path / "state" / "workspace.json"


@pytest.fixture
def invoke(runner: CliRunner, ws_file: Path):
    def _invoke(*args: str):
        return runner.invoke(cli, ["--workspace", str(ws_file), *args])

    return _invoke


@pytest.fixture
def initialized(invoke, app_dir: Path) -> None:
    result = invoke("workspace", "init", "App/App.csproj")
    assert result.exit_code == 0, result.output


def _write_run(path: Path, outputs: list[dict]) -> Path:
    path.write_text(
        json.dumps({"input": "Templates/Foo.tt", "outputs": outputs}), encoding="utf-8"
    )
    return path


# ── workspace ─────────────────────────────────────────────────────────────


class TestWorkspaceCommands:
    def test_init(self, invoke, ws_file: Path, app_dir: Path):
        result = invoke("workspace", "init", "App/App.csproj", "--item-type", "Custom")
        assert result.exit_code == 0
        assert "Added project App" in result.output
        project = load_workspace(ws_file).list_projects()[0]
        assert project.path == app_dir / "App.csproj"
        assert project.item_types == {"Custom"}
        assert project.supports_references

    def test_init_without_references(self, invoke, ws_file: Path, app_dir: Path):
        invoke("workspace", "init", "App/App.csproj", "--no-references")
        assert not load_workspace(ws_file).list_projects()[0].supports_references

    def test_init_twice(self, invoke, initialized):
        result = invoke("workspace", "init", "App/App.csproj")
        assert result.exit_code == 1
        assert "already part of the workspace" in result.output

    def test_add(self, invoke, initialized, ws_file: Path, input_path: Path):
        result = invoke("workspace", "add", "App/Templates/Foo.tt")
        assert result.exit_code == 0
        assert load_workspace(ws_file).find_item(input_path) is not None

    def test_add_outside_projects(self, invoke, initialized, tmp_path: Path):
        (tmp_path / "Stray.tt").write_text("", encoding="utf-8")
        result = invoke("workspace", "add", "Stray.tt")
        assert result.exit_code == 1
        assert "No project of the workspace contains" in result.output

    def test_add_to_unknown_project(self, invoke, initialized, input_path: Path):
        result = invoke("workspace", "add", "App/Templates/Foo.tt", "--project", "Lib/Lib.csproj")
        assert result.exit_code == 1
        assert "is not part of the workspace" in result.output

    def test_show(self, invoke, initialized):
        invoke("workspace", "add", "App/Templates/Foo.tt")
        result = invoke("workspace", "show")
        assert result.exit_code == 0
        assert "Foo.tt" in result.output
        assert "folder" in result.output

    def test_missing_workspace_file(self, invoke):
        result = invoke("workspace", "show")
        assert result.exit_code == 1
        assert "Workspace file not found" in result.output
        assert "af workspace init" in result.output


# ── reconcile ─────────────────────────────────────────────────────────────


class TestReconcileCommand:
    def test_reconcile(self, invoke, initialized, ws_file: Path, app_dir: Path, input_path: Path):
        run_file = _write_run(
            app_dir / "run.json",
            [{"file": "Foo.Generated.cs", "content": "g"}, {"file": "Foo.Designer.cs", "content": "d"}],
        )
        result = invoke("reconcile", str(run_file))

        assert result.exit_code == 0, result.output
        assert "Reconciled" in result.output
        assert "written" in result.output
        assert (app_dir / "Templates" / "Foo.Generated.cs").read_text(encoding="utf-8") == "g"

        ws = load_workspace(ws_file)
        item = ws.find_item(input_path)
        assert ws.get_metadata(item, ItemMetadata.LAST_OUTPUTS) == (
            "\r\nFoo.Designer.cs\r\nFoo.Generated.cs\r\n"
        )
        assert ws.find_item(app_dir / "Templates" / "Foo.Designer.cs") is not None

    def test_rerun_removes_dropped_outputs(self, invoke, initialized, app_dir: Path):
        run_file = app_dir / "run.json"
        _write_run(run_file, [{"file": "A.cs", "content": "a"}, {"file": "B.cs", "content": "b"}])
        assert invoke("reconcile", str(run_file)).exit_code == 0

        _write_run(run_file, [{"file": "A.cs", "content": "a"}])
        result = invoke("reconcile", str(run_file))
        assert result.exit_code == 0
        assert "deleted" in result.output
        assert not (app_dir / "Templates" / "B.cs").exists()
        assert (app_dir / "Templates" / "A.cs").exists()

    def test_failed_reconcile(self, invoke, initialized, app_dir: Path):
        run_file = _write_run(
            app_dir / "run.json", [{"file": "A.cs", "directory": "../../Out", "content": "a"}]
        )
        result = invoke("reconcile", str(run_file))
        assert result.exit_code == 1
        assert "outside of directory" in result.output
        assert "Reconciliation of" in result.output

    def test_invalid_run_file(self, invoke, initialized, app_dir: Path):
        run_file = app_dir / "run.json"
        run_file.write_text("{}", encoding="utf-8")
        result = invoke("reconcile", str(run_file))
        assert result.exit_code == 1
        assert "Invalid run file" in result.output


# ── manifest ──────────────────────────────────────────────────────────────


class TestManifestCommands:
    def test_show_empty(self, invoke, initialized):
        invoke("workspace", "add", "App/Templates/Foo.tt")
        result = invoke("manifest", "show", "App/Templates/Foo.tt")
        assert result.exit_code == 0
        assert "No outputs recorded." in result.output

    def test_show_and_clear(self, invoke, initialized, ws_file: Path, app_dir: Path, input_path: Path):
        run_file = _write_run(app_dir / "run.json", [{"file": "A.cs", "content": "a"}])
        invoke("reconcile", str(run_file))

        result = invoke("manifest", "show", "App/Templates/Foo.tt")
        assert result.exit_code == 0
        assert "A.cs" in result.output

        result = invoke("manifest", "clear", "App/Templates/Foo.tt")
        assert result.exit_code == 0
        assert "Cleared recorded outputs" in result.output
        ws = load_workspace(ws_file)
        assert ws.get_metadata(ws.find_item(input_path), ItemMetadata.LAST_OUTPUTS) == ""
        assert (app_dir / "Templates" / "A.cs").exists()

    def test_show_unknown_input(self, invoke, initialized):
        result = invoke("manifest", "show", "App/Templates/Other.tt")
        assert result.exit_code == 1
        assert "does not belong to the workspace" in result.output
