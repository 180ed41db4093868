"""Unit tests for manifest formatting and the metadata-backed manifest store."""

from __future__ import annotations

from pathlib import Path

import pytest

from artifactor.config import reset_config
from artifactor.lib.artifacts.errors import MissingInputItemError
from artifactor.lib.artifacts.models import ItemMetadata
from artifactor.lib.manifest.store import ManifestStore, format_manifest, parse_manifest
from artifactor.lib.workspace.memory import InMemoryWorkspace


class TestFormatManifest:
    def test_empty(self):
        assert format_manifest([], "\r\n") == ""

    def test_single_path_is_not_wrapped(self):
        assert format_manifest(["Foo.cs"], "\r\n") == "Foo.cs"

    def test_multiple_paths_are_sorted_and_wrapped(self):
        text = format_manifest(["Foo.Generated.cs", "Foo.Designer.cs"], "\r\n")
        assert text == "\r\nFoo.Designer.cs\r\nFoo.Generated.cs\r\n"

    def test_sort_ignores_case(self):
        assert format_manifest(["b.cs", "A.cs"], "\n") == "\nA.cs\nb.cs\n"

    def test_case_ties_are_ordinal(self):
        assert format_manifest(["a.cs", "A.cs"], "\n") == "\nA.cs\na.cs\n"

    def test_newline_from_config(self, monkeypatch):
        monkeypatch.setenv("ARTIFACTOR_MANIFEST_NEWLINE", "lf")
        reset_config()
        assert format_manifest(["x", "y"]) == "\nx\ny\n"


class TestParseManifest:
    def test_mixed_line_endings_and_blanks(self):
        text = "\r\nA.cs\n\nSub/B.cs\rC.cs\r\n"
        assert parse_manifest(text) == ["A.cs", "Sub/B.cs", "C.cs"]

    def test_empty(self):
        assert parse_manifest("") == []

    def test_roundtrip(self):
        paths = ["../Lib/A.cs", "Sub/B.cs"]
        assert parse_manifest(format_manifest(paths, "\r\n")) == paths


class TestManifestStore:
    def test_missing_input_item(self, workspace: InMemoryWorkspace, tmp_path: Path):
        store = ManifestStore(workspace)
        with pytest.raises(MissingInputItemError) as exc_info:
            store.load(tmp_path / "Other.tt")
        assert "does not belong to the workspace" in str(exc_info.value)

    def test_load_without_manifest(self, workspace: InMemoryWorkspace, input_path: Path):
        store = ManifestStore(workspace)
        assert store.load_text(input_path) == ""
        assert store.load(input_path) == []

    def test_save_stores_metadata(self, workspace: InMemoryWorkspace, input_path: Path):
        store = ManifestStore(workspace, newline="\r\n")
        text = store.save(input_path, ["Foo.Generated.cs", "Foo.Designer.cs"])
        item = workspace.find_item(input_path)
        assert workspace.get_metadata(item, ItemMetadata.LAST_OUTPUTS) == text
        assert text == "\r\nFoo.Designer.cs\r\nFoo.Generated.cs\r\n"

    def test_load_returns_relative_paths(self, workspace: InMemoryWorkspace, input_path: Path):
        store = ManifestStore(workspace)
        store.save(input_path, ["Foo.cs", "../Gen/Bar.cs"])
        assert store.load(input_path) == ["../Gen/Bar.cs", "Foo.cs"]

    @pytest.mark.parametrize(
        "paths",
        [[], ["Foo.cs"], ["Foo.Generated.cs", "Foo.Designer.cs"]],
        ids=["empty", "single", "multiple"],
    )
    def test_save_of_load_keeps_text(
        self, workspace: InMemoryWorkspace, input_path: Path, paths: list[str]
    ):
        store = ManifestStore(workspace, newline="\r\n")
        before = store.save(input_path, paths)
        after = store.save(input_path, store.load(input_path))
        assert after == before
        assert store.load_text(input_path) == before

    def test_clear(self, workspace: InMemoryWorkspace, input_path: Path):
        store = ManifestStore(workspace)
        store.save(input_path, ["Foo.cs"])
        store.clear(input_path)
        assert store.load(input_path) == []
