"""Artifacts -- descriptors and per-run registry of generated output files.

Pure in-memory bookkeeping: no filesystem or workspace access happens here.
"""

from artifactor.lib.artifacts.errors import (
    TransformationError,
    PropertyConflictError,
    DefaultOutputMisuseError,
    MissingTargetProjectError,
    OutsideProjectDirectoryError,
    UnsupportedItemTypeError,
    UnsupportedPropertyError,
    MissingInputItemError,
    WorkspaceError,
    CheckoutAbortedError,
    PrimaryOutputTimeoutError,
)
from artifactor.lib.artifacts.models import (
    ArtifactDescriptor,
    CopyToOutputDirectory,
    ItemMetadata,
    WellKnownMetadata,
)
from artifactor.lib.artifacts.registry import ArtifactRegistry
from artifactor.lib.artifacts.paths import full_path, path_key, same_path, relative_path

__all__ = [
    "TransformationError",
    "PropertyConflictError",
    "DefaultOutputMisuseError",
    "MissingTargetProjectError",
    "OutsideProjectDirectoryError",
    "UnsupportedItemTypeError",
    "UnsupportedPropertyError",
    "MissingInputItemError",
    "WorkspaceError",
    "CheckoutAbortedError",
    "PrimaryOutputTimeoutError",
    "ArtifactDescriptor",
    "CopyToOutputDirectory",
    "ItemMetadata",
    "WellKnownMetadata",
    "ArtifactRegistry",
    "full_path",
    "path_key",
    "same_path",
    "relative_path",
]
