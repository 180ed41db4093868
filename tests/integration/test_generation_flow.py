"""Integration tests for repeated generation runs against a persisted workspace.

Exercises Transformation, ReconciliationScheduler, ReconciliationEngine,
placement and the manifest together, reloading the workspace from its JSON
snapshot between runs the way the command-line tool does.

Run with: pytest tests/integration/test_generation_flow.py -v
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from artifactor.engine.scheduler import ReconciliationScheduler
from artifactor.lib.artifacts.models import ArtifactDescriptor, ItemMetadata
from artifactor.lib.workspace.checkout import ScriptedCheckout
from artifactor.lib.workspace.memory import InMemoryWorkspace
from artifactor.lib.workspace.persistence import load_workspace, save_workspace
from artifactor.transformation import Transformation


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


async def _generate(
    workspace: InMemoryWorkspace,
    input_path: Path,
    writes: list[tuple[ArtifactDescriptor, str]],
    primary: str | None = None,
):
    """Render *writes* for *input_path* and reconcile them."""
    scheduler = ReconciliationScheduler(workspace, ScriptedCheckout())
    transformation = Transformation(input_path, scheduler)
    for descriptor, text in writes:
        transformation.write(descriptor, text)
    primary_path = None
    if primary is not None:
        transformation.write_primary(primary)
        primary_path = input_path.with_suffix(".cs")
        primary_path.write_text(primary, encoding="utf-8")
    try:
        record = await transformation.finish(primary_output=primary_path)
    finally:
        await scheduler.shutdown()
    return record, scheduler.diagnostics


@pytest.fixture
def snapshot(tmp_path: Path) -> Path:
    return tmp_path / ".artifactor" / "workspace.json"


def _reload(workspace: InMemoryWorkspace, snapshot: Path) -> InMemoryWorkspace:
    save_workspace(workspace, snapshot)
    return load_workspace(snapshot)


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


class TestGenerationFlow:
    @pytest.mark.asyncio
    async def test_outputs_converge_across_runs(
        self,
        workspace: InMemoryWorkspace,
        input_path: Path,
        app_dir: Path,
        lib_dir: Path,
        snapshot: Path,
    ):
        workspace.add_project(lib_dir / "Lib.csproj")
        templates = app_dir / "Templates"

        # Run 1: a dependent file, a file in a project folder and one in another project.
        record, diagnostics = await _generate(
            workspace,
            input_path,
            [
                (ArtifactDescriptor("Foo.Designer.cs"), "designer v1"),
                (ArtifactDescriptor("Model.cs", directory="../Models", item_type="Compile"), "model"),
                (
                    ArtifactDescriptor(
                        "Contracts.cs", project="../../Lib/Lib.csproj", references=["System.Runtime"]
                    ),
                    "contracts",
                ),
            ],
            primary="// Foo\n",
        )
        assert record.status == "completed", list(diagnostics)
        assert record.result.manifest == (
            "\r\n../../Lib/Contracts.cs\r\n../Models/Model.cs\r\nFoo.Designer.cs\r\n"
        )
        workspace = _reload(workspace, snapshot)
        input_item = workspace.find_item(input_path)
        assert workspace.get_metadata(input_item, ItemMetadata.LAST_GEN_OUTPUT) == "Templates/Foo.cs"
        assert workspace.resolve_project(lib_dir / "Lib.csproj").references == ["System.Runtime"]
        assert workspace.find_item(app_dir / "Models" / "Model.cs").item_type == "Compile"

        # Run 2: nothing changed.
        record, _ = await _generate(
            workspace,
            input_path,
            [
                (ArtifactDescriptor("Foo.Designer.cs"), "designer v1"),
                (ArtifactDescriptor("Model.cs", directory="../Models", item_type="Compile"), "model"),
                (
                    ArtifactDescriptor(
                        "Contracts.cs", project="../../Lib/Lib.csproj", references=["System.Runtime"]
                    ),
                    "contracts",
                ),
            ],
            primary="// Foo\n",
        )
        assert record.result.written == []
        assert record.result.deleted == []
        workspace = _reload(workspace, snapshot)

        # Run 3: the model and the contracts are dropped, the designer changes.
        record, _ = await _generate(
            workspace,
            input_path,
            [(ArtifactDescriptor("Foo.Designer.cs"), "designer v2")],
            primary="// Foo\n",
        )
        assert record.status == "completed"
        assert sorted(p.name for p in record.result.deleted) == ["Contracts.cs", "Model.cs"]
        assert record.result.written == [templates / "Foo.Designer.cs"]
        assert not (app_dir / "Models").exists()
        assert not (lib_dir / "Contracts.cs").exists()
        assert record.result.manifest == "Foo.Designer.cs"
        assert (templates / "Foo.Designer.cs").read_text(encoding="utf-8") == "designer v2"

        workspace = _reload(workspace, snapshot)
        assert workspace.find_item(app_dir / "Models") is None
        assert workspace.find_item(templates / "Foo.cs") is not None

    @pytest.mark.asyncio
    async def test_concurrent_inputs(self, workspace: InMemoryWorkspace, input_path: Path, app_dir: Path):
        other = app_dir / "Templates" / "Bar.tt"
        other.write_text("", encoding="utf-8")
        workspace.add_existing_file(workspace.list_projects()[0], other)

        scheduler = ReconciliationScheduler(workspace, ScriptedCheckout(), max_concurrent_runs=2)
        runs = []
        for path, name in ((input_path, "Foo.g.cs"), (other, "Bar.g.cs"), (input_path, "Foo.g.cs")):
            transformation = Transformation(path, scheduler)
            transformation.write(ArtifactDescriptor(name), f"// {name}")
            runs.append(transformation.finish())
        records = await asyncio.gather(*runs)
        await scheduler.shutdown()

        assert [r.status for r in records] == ["completed"] * 3
        assert (app_dir / "Templates" / "Foo.g.cs").exists()
        assert (app_dir / "Templates" / "Bar.g.cs").exists()
        foo_item = workspace.find_item(input_path)
        assert workspace.get_metadata(foo_item, ItemMetadata.LAST_OUTPUTS) == "Foo.g.cs"
