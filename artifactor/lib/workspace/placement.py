"""WorkspacePlacement -- decides which container each output file belongs to."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from artifactor.lib.artifacts.errors import (
    MissingTargetProjectError,
    OutsideProjectDirectoryError,
    UnsupportedItemTypeError,
    WorkspaceError,
)
from artifactor.lib.artifacts.models import ArtifactDescriptor
from artifactor.lib.artifacts.paths import full_path, is_within, path_key
from artifactor.lib.workspace.base import (
    Container,
    Workspace,
    WorkspaceItem,
    WorkspaceProject,
    container_directory,
)

logger = logging.getLogger("lib.workspace.placement")


class WorkspacePlacement:
    """Resolves destinations of output files for one reconciliation run.

    Precedence:
        1. An explicit target project: the container is that project's root.
        2. An explicit directory: the container is the root of the project
           that owns the input file.
        3. Otherwise the output becomes a dependent child of the input item.

    The project map is built once, when the placement is created.
    """

    def __init__(self, workspace: Workspace, input_item: WorkspaceItem) -> None:
        self._workspace = workspace
        self._input_item = input_item
        self._input_dir = input_item.path.parent
        self._projects = self.build_project_map()

    @property
    def current_project(self) -> WorkspaceProject:
        return self._workspace.project_of(self._input_item)

    def build_project_map(self) -> dict[str, WorkspaceProject]:
        """Map the normalized path of every project file to its project."""
        return {path_key(p.path): p for p in self._workspace.list_projects()}

    def output_path(self, artifact: ArtifactDescriptor) -> Path:
        """Absolute path of *artifact* on disk."""
        return full_path(self._input_dir, artifact.path)

    def target_project(self, artifact: ArtifactDescriptor) -> WorkspaceProject:
        """Project the output belongs to.

        Raises:
            MissingTargetProjectError: If the requested project is not in the workspace.
        """
        if not artifact.project:
            return self.current_project
        project_path = full_path(self._input_dir, artifact.project)
        project = self._projects.get(path_key(project_path))
        if project is None:
            raise MissingTargetProjectError(str(project_path))
        return project

    def validate(self, artifact: ArtifactDescriptor) -> None:
        """Check that *artifact* can be placed, before anything is modified.

        Raises:
            MissingTargetProjectError: If the target project is unknown.
            OutsideProjectDirectoryError: If an explicit directory escapes the project.
            UnsupportedItemTypeError: If the project does not know the item type.
        """
        if artifact.is_default:
            return
        project = self.target_project(artifact)
        output_path = self.output_path(artifact)

        if artifact.directory and not is_within(output_path, project.directory):
            raise OutsideProjectDirectoryError(str(output_path), str(project.path))

        if artifact.item_type:
            recognized = {t.casefold() for t in self._workspace.recognized_item_types(project)}
            if artifact.item_type.casefold() not in recognized:
                raise UnsupportedItemTypeError(
                    artifact.item_type, str(output_path), str(project.path)
                )

    def resolve_container(self, artifact: ArtifactDescriptor) -> Container:
        """Find (creating folders as needed) the container for *artifact*."""
        if not artifact.project and not artifact.directory:
            return self._input_item

        project = self.target_project(artifact)
        directory = self.output_path(artifact).parent
        relative = os.path.relpath(str(directory), str(project.directory))

        container: Container = project
        if relative == os.curdir:
            return container
        for segment in Path(relative).parts:
            container = self.ensure_folder(container, segment)
        return container

    def ensure_folder(self, container: Container, name: str) -> WorkspaceItem:
        """Return the child folder *name* of *container*, creating it if needed.

        A folder that exists on disk but not in the workspace is imported
        from disk.
        """
        for child in self._workspace.children(container):
            if child.is_folder and child.name.casefold() == name.casefold():
                return child
        try:
            return self._workspace.add_folder(container, name)
        except WorkspaceError:
            directory = container_directory(container) / name
            if not directory.is_dir():
                raise
            logger.debug("Importing existing directory %s", directory)
            return self._workspace.add_folder_from_directory(container, directory)
