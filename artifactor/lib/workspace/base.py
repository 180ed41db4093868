"""Workspace and checkout capabilities the output manager relies on.

The host environment (an IDE project system, a build tool's project model)
implements these; the output manager never touches a concrete object graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from artifactor.lib.artifacts.models import CaseInsensitiveDict
from artifactor.lib.artifacts.paths import path_key

# Item types every project recognizes, in addition to its declared ones.
BASE_ITEM_TYPES = frozenset({"None", "Compile", "Content", "EmbeddedResource"})


@dataclass
class WorkspaceProject:
    """A project: a root container identified by its project file."""

    path: Path
    item_types: set[str] = field(default_factory=set)
    references: list[str] = field(default_factory=list)
    supports_references: bool = True

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def key(self) -> str:
        return "project:" + path_key(self.path)


@dataclass
class WorkspaceItem:
    """A file or folder that is a member of a project."""

    path: Path
    kind: str  # "file" or "folder"
    project_path: Path
    parent_path: Path
    parent_is_project: bool
    item_type: str = ""
    custom_tool: str = ""
    custom_tool_namespace: str = ""
    copy_to_output_directory: str = ""
    metadata: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_folder(self) -> bool:
        return self.kind == "folder"

    @property
    def key(self) -> str:
        return "item:" + path_key(self.path)

    @property
    def parent_key(self) -> str:
        prefix = "project:" if self.parent_is_project else "item:"
        return prefix + path_key(self.parent_path)


Container = Union[WorkspaceProject, WorkspaceItem]


def container_directory(container: Container) -> Path:
    """Directory on disk where children of *container* live.

    Children of a file item (dependent files) sit next to it.
    """
    if isinstance(container, WorkspaceProject):
        return container.directory
    if container.is_folder:
        return container.path
    return container.path.parent


class Workspace:
    """Project membership and item properties.

    Subclasses implement every method that raises ``NotImplementedError``.
    Implementations raise ``WorkspaceError`` when the host refuses an operation.
    """

    def list_projects(self) -> list[WorkspaceProject]:
        raise NotImplementedError

    def find_item(self, path: Path) -> WorkspaceItem | None:
        """Find the workspace item for an absolute file path."""
        raise NotImplementedError

    def project_of(self, item: WorkspaceItem) -> WorkspaceProject:
        raise NotImplementedError

    def parent_of(self, item: WorkspaceItem) -> Container:
        raise NotImplementedError

    def children(self, container: Container) -> list[WorkspaceItem]:
        raise NotImplementedError

    def add_file(self, container: Container, path: Path) -> WorkspaceItem:
        """Make an existing file on disk a member of *container*."""
        raise NotImplementedError

    def add_folder(self, container: Container, name: str) -> WorkspaceItem:
        """Create a folder on disk and in the workspace.

        Raises:
            WorkspaceError: If the folder cannot be created, including when it
                already exists on disk.
        """
        raise NotImplementedError

    def add_folder_from_directory(self, container: Container, path: Path) -> WorkspaceItem:
        """Import an existing directory, with everything in it, into *container*."""
        raise NotImplementedError

    def delete_item(self, item: WorkspaceItem) -> None:
        """Remove *item* from the workspace and delete it from disk."""
        raise NotImplementedError

    def set_item_type(self, item: WorkspaceItem, value: str) -> None:
        raise NotImplementedError

    def set_custom_tool(self, item: WorkspaceItem, value: str) -> None:
        raise NotImplementedError

    def set_custom_tool_namespace(self, item: WorkspaceItem, value: str) -> None:
        raise NotImplementedError

    def set_copy_to_output_directory(self, item: WorkspaceItem, value: str) -> None:
        raise NotImplementedError

    def get_metadata(self, item: WorkspaceItem, key: str) -> str:
        """Return the metadata value, or an empty string when it is not set."""
        raise NotImplementedError

    def set_metadata(self, item: WorkspaceItem, key: str, value: str) -> None:
        raise NotImplementedError

    def supports_references(self, project: WorkspaceProject) -> bool:
        return project.supports_references

    def add_reference(self, project: WorkspaceProject, name: str) -> None:
        raise NotImplementedError

    def resolve_project(self, path: Path) -> WorkspaceProject | None:
        """Find a project by the absolute path of its project file."""
        key = "project:" + path_key(path)
        for project in self.list_projects():
            if project.key == key:
                return project
        return None

    def recognized_item_types(self, project: WorkspaceProject) -> set[str]:
        return set(BASE_ITEM_TYPES) | set(project.item_types)

    def reload_document(self, path: Path) -> None:
        """Ask an open editor of *path* to reload without an undo entry."""
        return None


class CheckoutOutcome(str, Enum):
    """Result of asking for permission to modify files."""

    OK = "ok"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Checkout:
    """Grants (or refuses) permission to modify a batch of files."""

    async def request_edit(self, paths: list[Path]) -> CheckoutOutcome:
        raise NotImplementedError
