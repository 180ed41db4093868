"""Unit tests for run description files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from artifactor.engine.scheduler import ReconciliationScheduler
from artifactor.lib.artifacts.models import CopyToOutputDirectory, ItemMetadata
from artifactor.lib.runs.loader import load_run_file, run_from_file
from artifactor.lib.runs.models import OutputSpec, RunFile
from artifactor.lib.workspace.checkout import ScriptedCheckout
from artifactor.lib.workspace.memory import InMemoryWorkspace


def _write_run(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestModels:
    def test_output_to_descriptor(self):
        output = OutputSpec(
            file="Gen/A.cs",
            encoding="UTF8",
            item_type="Compile",
            copy_to_output_directory="PreserveNewest",
            metadata={"AutoGen": "True"},
            references=["System.Xml"],
        )
        descriptor = output.to_descriptor()
        assert descriptor.path == "Gen/A.cs"
        assert descriptor.encoding == "utf-8"
        assert descriptor.item_type == "Compile"
        assert descriptor.copy_to_output_directory is CopyToOutputDirectory.COPY_IF_NEWER
        assert descriptor.metadata["autogen"] == "True"
        assert descriptor.references == ["System.Xml"]

    def test_unknown_encoding_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown encoding"):
            OutputSpec(file="A.cs", encoding="klingon")

    def test_defaults(self):
        run = RunFile(input="Foo.tt")
        assert run.outputs == []
        assert run.primary_output is None


class TestLoadRunFile:
    def test_load(self, tmp_path: Path):
        path = _write_run(
            tmp_path / "run.json",
            {"input": "Foo.tt", "outputs": [{"file": "A.cs", "content": "a"}]},
        )
        run = load_run_file(path)
        assert run.input == "Foo.tt"
        assert run.outputs[0].content == "a"

    def test_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_run_file(tmp_path / "missing.json")

    def test_invalid(self, tmp_path: Path):
        path = _write_run(tmp_path / "run.json", {"outputs": []})
        with pytest.raises(ValueError, match="Invalid run file"):
            load_run_file(path)

    def test_empty_primary_output_name(self, tmp_path: Path):
        path = _write_run(tmp_path / "run.json", {"input": "Foo.tt", "primary_output": {"file": ""}})
        with pytest.raises(ValueError, match="Invalid run file"):
            load_run_file(path)


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


class TestRunFromFile:
    @pytest.mark.asyncio
    async def test_replay(self, workspace: InMemoryWorkspace, input_path: Path, app_dir: Path):
        run = RunFile(
            input="Templates/Foo.tt",
            primary_output={"file": "Foo.cs", "content": "// primary\r\n"},
            outputs=[
                {"file": "Foo.Designer.cs", "content": "designer"},
                {"file": "Foo.Generated.cs", "content": "generated"},
            ],
        )
        scheduler = ReconciliationScheduler(workspace, ScriptedCheckout())
        record = await run_from_file(run, app_dir, scheduler)

        templates = app_dir / "Templates"
        assert record.status == "completed"
        assert (templates / "Foo.cs").read_bytes() == b"// primary\r\n"
        assert (templates / "Foo.Designer.cs").read_text(encoding="utf-8") == "designer"
        input_item = workspace.find_item(input_path)
        assert workspace.get_metadata(input_item, ItemMetadata.LAST_GEN_OUTPUT) == "Templates/Foo.cs"
        assert record.result.manifest == "\r\nFoo.Designer.cs\r\nFoo.Generated.cs\r\n"
        assert scheduler.engine.audit.filter_by_operation("write")

    @pytest.mark.asyncio
    async def test_conflicting_writes_are_reported(
        self, workspace: InMemoryWorkspace, app_dir: Path
    ):
        run = RunFile(
            input="Templates/Foo.tt",
            outputs=[
                {"file": "A.cs", "content": "a"},
                {"file": "A.cs", "encoding": "utf-16", "content": "b"},
            ],
        )
        scheduler = ReconciliationScheduler(workspace, ScriptedCheckout())
        record = await run_from_file(run, app_dir, scheduler)

        # The conflicting write is dropped; the rest still reconciles.
        assert record.status == "completed"
        assert (app_dir / "Templates" / "A.cs").read_text(encoding="utf-8") == "a"
        [error] = scheduler.diagnostics.errors
        assert "does not match" in error.message
