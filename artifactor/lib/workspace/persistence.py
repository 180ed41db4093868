"""Workspace snapshots -- persist an in-memory workspace as JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

from artifactor.lib.artifacts.errors import WorkspaceError
from artifactor.lib.artifacts.models import CaseInsensitiveDict
from artifactor.lib.workspace.base import WorkspaceItem, WorkspaceProject
from artifactor.lib.workspace.memory import InMemoryWorkspace

logger = logging.getLogger("lib.workspace.persistence")

SNAPSHOT_VERSION = 1


def _project_to_dict(project: WorkspaceProject) -> dict:
    return {
        "path": str(project.path),
        "item_types": sorted(project.item_types),
        "references": list(project.references),
        "supports_references": project.supports_references,
    }


def _item_to_dict(item: WorkspaceItem) -> dict:
    data = asdict(item)
    for key in ("path", "project_path", "parent_path"):
        data[key] = str(data[key])
    data["metadata"] = dict(item.metadata.items())
    return data


def save_workspace(workspace: InMemoryWorkspace, path: Path) -> None:
    """Save the workspace to *path* atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "version": SNAPSHOT_VERSION,
        "projects": [_project_to_dict(p) for p in workspace.list_projects()],
        "items": [_item_to_dict(i) for i in workspace.items()],
    }
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp.replace(path)
    logger.debug("Saved workspace to %s", path)


def load_workspace(path: Path) -> InMemoryWorkspace:
    """Load a workspace snapshot.

    Raises:
        WorkspaceError: If the file is missing or not a valid snapshot.
    """
    path = Path(path)
    if not path.exists():
        raise WorkspaceError(f"Workspace file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        workspace = InMemoryWorkspace()
        for proj in data.get("projects", []):
            workspace.restore_project(
                WorkspaceProject(
                    path=Path(proj["path"]),
                    item_types=set(proj.get("item_types", [])),
                    references=list(proj.get("references", [])),
                    supports_references=proj.get("supports_references", True),
                )
            )
        for raw in data.get("items", []):
            workspace.restore_item(
                WorkspaceItem(
                    path=Path(raw["path"]),
                    kind=raw["kind"],
                    project_path=Path(raw["project_path"]),
                    parent_path=Path(raw["parent_path"]),
                    parent_is_project=raw["parent_is_project"],
                    item_type=raw.get("item_type", ""),
                    custom_tool=raw.get("custom_tool", ""),
                    custom_tool_namespace=raw.get("custom_tool_namespace", ""),
                    copy_to_output_directory=raw.get("copy_to_output_directory", ""),
                    metadata=CaseInsensitiveDict(raw.get("metadata", {})),
                )
            )
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise WorkspaceError(f"Invalid workspace file {path}: {e}") from e
    logger.info(
        "Loaded workspace with %d projects and %d items from %s",
        len(workspace.list_projects()),
        len(workspace.items()),
        path,
    )
    return workspace
