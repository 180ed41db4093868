"""Manifest of the outputs a previous run produced for an input file.

The manifest is stored as metadata of the input's workspace item: one path
per line, relative to the input's directory. When more than one path is
listed the text starts and ends with a newline, which keeps the value on
its own lines in project files.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from artifactor.config import get_config
from artifactor.lib.artifacts.errors import MissingInputItemError
from artifactor.lib.artifacts.models import ItemMetadata
from artifactor.lib.workspace.base import Workspace

logger = logging.getLogger("lib.manifest.store")


def format_manifest(paths: Iterable[str], newline: str | None = None) -> str:
    """Render relative paths as manifest text.

    Paths are sorted case-insensitively (ties broken ordinally) so the text
    does not depend on the order outputs were written in.
    """
    if newline is None:
        newline = get_config().manifest_newline
    ordered = sorted(paths, key=lambda p: (p.casefold(), p))
    text = newline.join(ordered)
    if len(ordered) > 1:
        text = newline + text + newline
    return text


def parse_manifest(text: str) -> list[str]:
    """Split manifest text into its relative paths, dropping blank lines."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return [line.strip() for line in lines if line.strip()]


class ManifestStore:
    """Reads and writes the manifest of an input file."""

    def __init__(self, workspace: Workspace, newline: str | None = None) -> None:
        self._workspace = workspace
        self._newline = newline

    def _input_item(self, input_path: Path):
        item = self._workspace.find_item(Path(input_path))
        if item is None:
            raise MissingInputItemError(str(input_path))
        return item

    def load_text(self, input_path: Path) -> str:
        item = self._input_item(input_path)
        return self._workspace.get_metadata(item, ItemMetadata.LAST_OUTPUTS)

    def load(self, input_path: Path) -> list[str]:
        """Paths recorded by the previous run, relative to the input's directory."""
        return parse_manifest(self.load_text(input_path))

    def save(self, input_path: Path, relative_paths: Iterable[str]) -> str:
        """Replace the manifest with *relative_paths* and return the stored text."""
        item = self._input_item(input_path)
        text = format_manifest(relative_paths, self._newline)
        self._workspace.set_metadata(item, ItemMetadata.LAST_OUTPUTS, text)
        logger.debug("Recorded outputs of %s: %r", input_path, text)
        return text

    def clear(self, input_path: Path) -> None:
        item = self._input_item(input_path)
        self._workspace.set_metadata(item, ItemMetadata.LAST_OUTPUTS, "")
