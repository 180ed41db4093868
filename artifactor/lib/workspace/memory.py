"""In-memory workspace backed by the real filesystem.

Membership and item properties are kept in two flat tables keyed by
normalized path; the files themselves live on disk.
"""

from __future__ import annotations

import logging
from pathlib import Path

from artifactor.lib.artifacts.errors import WorkspaceError
from artifactor.lib.artifacts.paths import full_path, is_within, path_key
from artifactor.lib.workspace.base import (
    Container,
    Workspace,
    WorkspaceItem,
    WorkspaceProject,
    container_directory,
)

logger = logging.getLogger("lib.workspace.memory")


class InMemoryWorkspace(Workspace):
    """A workspace whose project model lives in memory.

    Used by the command-line tool (persisted as JSON between invocations)
    and by tests.
    """

    def __init__(self) -> None:
        self._projects: dict[str, WorkspaceProject] = {}
        self._items: dict[str, WorkspaceItem] = {}
        # Paths passed to reload_document, in call order.
        self.reloaded: list[Path] = []

    # -- projects ------------------------------------------------------------

    def add_project(
        self,
        path: Path,
        item_types: set[str] | None = None,
        supports_references: bool = True,
    ) -> WorkspaceProject:
        """Register a project by the path of its project file.

        Raises:
            WorkspaceError: If the project is already registered.
        """
        project = WorkspaceProject(
            path=full_path(Path.cwd(), path),
            item_types=set(item_types or ()),
            supports_references=supports_references,
        )
        if project.key in self._projects:
            raise WorkspaceError(f"Project {project.path} is already part of the workspace")
        self._projects[project.key] = project
        logger.info("Added project %s", project.path)
        return project

    def list_projects(self) -> list[WorkspaceProject]:
        return sorted(self._projects.values(), key=lambda p: path_key(p.path))

    def items(self) -> list[WorkspaceItem]:
        return list(self._items.values())

    def project_of(self, item: WorkspaceItem) -> WorkspaceProject:
        return self._projects["project:" + path_key(item.project_path)]

    def supports_references(self, project: WorkspaceProject) -> bool:
        return project.supports_references

    def add_reference(self, project: WorkspaceProject, name: str) -> None:
        if not project.supports_references:
            raise WorkspaceError(f"Project {project.path} does not accept references")
        if name not in project.references:
            project.references.append(name)
            logger.debug("Added reference %s to %s", name, project.name)

    # -- membership ----------------------------------------------------------

    def find_item(self, path: Path) -> WorkspaceItem | None:
        return self._items.get("item:" + path_key(path))

    def parent_of(self, item: WorkspaceItem) -> Container:
        if item.parent_is_project:
            return self._projects[item.parent_key]
        return self._items[item.parent_key]

    def children(self, container: Container) -> list[WorkspaceItem]:
        return [i for i in self._items.values() if i.parent_key == container.key]

    def _project_path_of(self, container: Container) -> Path:
        if isinstance(container, WorkspaceProject):
            return container.path
        return container.project_path

    def _register(self, container: Container, path: Path, kind: str) -> WorkspaceItem:
        item = WorkspaceItem(
            path=path,
            kind=kind,
            project_path=self._project_path_of(container),
            parent_path=container.path,
            parent_is_project=isinstance(container, WorkspaceProject),
        )
        if item.key in self._items:
            raise WorkspaceError(f"{path} is already part of the workspace")
        self._items[item.key] = item
        return item

    def add_file(self, container: Container, path: Path) -> WorkspaceItem:
        path = Path(path)
        if not path.is_file():
            raise WorkspaceError(f"Cannot add {path}: file does not exist")
        item = self._register(container, path, "file")
        logger.debug("Added file %s", path)
        return item

    def add_folder(self, container: Container, name: str) -> WorkspaceItem:
        path = container_directory(container) / name
        if path.exists():
            raise WorkspaceError(f"Cannot create folder {path}: it already exists on disk")
        try:
            path.mkdir(parents=True)
        except OSError as e:
            raise WorkspaceError(f"Cannot create folder {path}: {e}") from e
        item = self._register(container, path, "folder")
        logger.debug("Added folder %s", path)
        return item

    def add_folder_from_directory(self, container: Container, path: Path) -> WorkspaceItem:
        path = Path(path)
        if not path.is_dir():
            raise WorkspaceError(f"Cannot add {path}: directory does not exist")
        folder = self._register(container, path, "folder")
        for entry in sorted(path.iterdir()):
            if entry.is_dir():
                self.add_folder_from_directory(folder, entry)
            elif self.find_item(entry) is None:
                self._register(folder, entry, "file")
        logger.debug("Added existing folder %s", path)
        return folder

    def delete_item(self, item: WorkspaceItem) -> None:
        for child in self.children(item):
            self.delete_item(child)
        self._items.pop(item.key, None)
        if item.is_folder:
            # Only empty directories are removed from disk.
            if item.path.is_dir() and not any(item.path.iterdir()):
                item.path.rmdir()
        else:
            item.path.unlink(missing_ok=True)
        logger.debug("Deleted %s", item.path)

    # -- properties ----------------------------------------------------------

    def set_item_type(self, item: WorkspaceItem, value: str) -> None:
        item.item_type = value

    def set_custom_tool(self, item: WorkspaceItem, value: str) -> None:
        item.custom_tool = value

    def set_custom_tool_namespace(self, item: WorkspaceItem, value: str) -> None:
        item.custom_tool_namespace = value

    def set_copy_to_output_directory(self, item: WorkspaceItem, value: str) -> None:
        item.copy_to_output_directory = value

    def get_metadata(self, item: WorkspaceItem, key: str) -> str:
        return item.metadata.get(key, "")

    def set_metadata(self, item: WorkspaceItem, key: str, value: str) -> None:
        item.metadata[key] = value

    def reload_document(self, path: Path) -> None:
        self.reloaded.append(Path(path))

    def add_existing_file(self, project: WorkspaceProject, path: Path) -> WorkspaceItem:
        """Include a file from the project's directory tree, with its folders.

        Folders between the project directory and the file are registered
        as they are; nothing else in them is imported.

        Raises:
            WorkspaceError: If the file is missing or outside the project directory.
        """
        path = full_path(Path.cwd(), path)
        try:
            relative = path.parent.relative_to(project.directory)
        except ValueError:
            raise WorkspaceError(
                f"{path} is not located under project directory {project.directory}"
            ) from None

        container: Container = project
        for segment in relative.parts:
            folder = self.find_item(container_directory(container) / segment)
            if folder is None:
                folder = self._register(container, container_directory(container) / segment, "folder")
            container = folder
        return self.add_file(container, path)

    def project_for(self, path: Path) -> WorkspaceProject | None:
        """The project with the deepest directory containing *path*."""
        candidates = [p for p in self._projects.values() if is_within(path, p.directory)]
        if not candidates:
            return None
        return max(candidates, key=lambda p: len(path_key(p.directory)))

    # -- bulk loading --------------------------------------------------------

    def restore_project(self, project: WorkspaceProject) -> None:
        """Insert a project exactly as given (used when loading snapshots)."""
        self._projects[project.key] = project

    def restore_item(self, item: WorkspaceItem) -> None:
        """Insert an item exactly as given, without touching the disk."""
        self._items[item.key] = item
