"""Error taxonomy for output reconciliation.

``TransformationError`` and its subclasses are expected, caller-caused
conditions: they are reported as a single message attributed to the input
file. Everything else is operational and reported with full detail.
"""

from __future__ import annotations

from collections.abc import Sequence


class TransformationError(Exception):
    """A validation or business-rule failure caused by the generator's output."""


class PropertyConflictError(TransformationError):
    """Two writes to the same output file disagree about one of its properties."""

    def __init__(self, property_name: str, new_value: str, old_value: str, path: str) -> None:
        self.property_name = property_name
        self.new_value = new_value
        self.old_value = old_value
        self.path = path
        super().__init__(
            f"{property_name} value '{new_value}' does not match value '{old_value}' "
            f"set previously for output file '{path}'."
        )


class DefaultOutputMisuseError(TransformationError):
    """The default output was given a property only named outputs may have."""


class MissingTargetProjectError(TransformationError):
    """An output targets a project that is not part of the workspace."""

    def __init__(self, project: str) -> None:
        self.project = project
        super().__init__(f"Target project {project} does not belong to the workspace")


class OutsideProjectDirectoryError(TransformationError):
    """An output with an explicit directory resolves outside its project directory."""

    def __init__(self, output_path: str, project_path: str) -> None:
        self.output_path = output_path
        self.project_path = project_path
        super().__init__(
            f"Output file {output_path} is located outside of directory "
            f"of target project {project_path}"
        )


class UnsupportedItemTypeError(TransformationError):
    """The requested item type is not recognized by the target project."""

    def __init__(self, item_type: str, output_path: str, project_path: str) -> None:
        self.item_type = item_type
        self.output_path = output_path
        self.project_path = project_path
        super().__init__(
            f"ItemType {item_type} specified for output file {output_path} "
            f"is not supported for project {project_path}"
        )


class UnsupportedPropertyError(TransformationError):
    """The workspace refused a property or reference required by an output."""


class MissingInputItemError(TransformationError):
    """The input file that triggered generation is not a workspace member."""

    def __init__(self, input_path: str) -> None:
        self.input_path = input_path
        super().__init__(f"Input file {input_path} does not belong to the workspace")


class WorkspaceError(Exception):
    """A workspace operation failed."""


class CheckoutAbortedError(Exception):
    """Files that must be modified could not be checked out."""

    def __init__(self, outcome: str, paths: Sequence[str]) -> None:
        self.outcome = outcome
        self.paths = list(paths)
        super().__init__(
            "The code generation cannot be completed because one or more files that must be "
            "modified cannot be changed. If the files are under source control, you may want "
            "to check them out; if the files are read-only on disk, you may want to change "
            f"their attributes. (checkout {outcome}: {', '.join(self.paths)})"
        )


class PrimaryOutputTimeoutError(Exception):
    """The primary output file did not appear on disk in time."""

    def __init__(self, input_path: str, pattern: str, timeout: float) -> None:
        self.input_path = input_path
        self.pattern = pattern
        self.timeout = timeout
        super().__init__(
            f"Primary output matching '{pattern}' for {input_path} "
            f"did not appear within {timeout:.1f}s"
        )
