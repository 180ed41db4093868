"""Data model for generated output files."""

from __future__ import annotations

import codecs
import io
import os
from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from enum import Enum

from artifactor.config import get_config
from artifactor.lib.artifacts.errors import DefaultOutputMisuseError, PropertyConflictError


class ItemMetadata:
    """Names of workspace item metadata used by the output manager."""

    GENERATOR = "Generator"
    CUSTOM_TOOL_NAMESPACE = "CustomToolNamespace"
    COPY_TO_OUTPUT_DIRECTORY = "CopyToOutputDirectory"
    TEMPLATE = "Template"
    LAST_GEN_OUTPUT = "LastGenOutput"
    LAST_OUTPUTS = "LastOutputs"


class WellKnownMetadata(str, Enum):
    """Metadata keys that have dedicated workspace setters.

    All other keys are opaque and stored as plain item metadata.
    """

    CUSTOM_TOOL = ItemMetadata.GENERATOR
    CUSTOM_TOOL_NAMESPACE = ItemMetadata.CUSTOM_TOOL_NAMESPACE
    COPY_TO_OUTPUT_DIRECTORY = ItemMetadata.COPY_TO_OUTPUT_DIRECTORY

    @classmethod
    def lookup(cls, key: str) -> WellKnownMetadata | None:
        for member in cls:
            if member.value.casefold() == key.casefold():
                return member
        return None


class CopyToOutputDirectory(str, Enum):
    """Values of the CopyToOutputDirectory metadata."""

    DO_NOT_COPY = ""
    COPY_ALWAYS = "Always"
    COPY_IF_NEWER = "PreserveNewest"

    @classmethod
    def parse(cls, value: str) -> CopyToOutputDirectory:
        for member in (cls.COPY_ALWAYS, cls.COPY_IF_NEWER):
            if member.value.casefold() == (value or "").casefold():
                return member
        return cls.DO_NOT_COPY


class CaseInsensitiveDict(MutableMapping):
    """A str-keyed mapping that compares keys case-insensitively.

    The first spelling of a key is the one that is kept.
    """

    def __init__(self, data: Mapping[str, str] | Iterable[tuple[str, str]] | None = None) -> None:
        self._store: dict[str, tuple[str, str]] = {}
        if data:
            self.update(data)

    def __getitem__(self, key: str) -> str:
        return self._store[key.casefold()][1]

    def __setitem__(self, key: str, value: str) -> None:
        folded = key.casefold()
        original = self._store[folded][0] if folded in self._store else key
        self._store[folded] = (original, value)

    def __delitem__(self, key: str) -> None:
        del self._store[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"CaseInsensitiveDict({dict(self.items())!r})"


def normalize_encoding(name: str) -> str:
    """Return the canonical codec name for *name*.

    Raises:
        ValueError: If the encoding is unknown.
    """
    try:
        return codecs.lookup(name).name
    except LookupError:
        raise ValueError(f"Unknown encoding '{name}'") from None


class ArtifactDescriptor:
    """Destination, properties and accumulated content of one output file.

    A descriptor with an empty ``file`` is the *default* output: the primary
    text of the transformation. It may not carry a directory, a project, or
    the preserve-existing flag.

    Descriptors stay mutable while a run is writing to them and are frozen
    by :meth:`finalize` when the run is handed over to reconciliation.
    """

    def __init__(
        self,
        file: str = "",
        *,
        directory: str = "",
        project: str = "",
        encoding: str | None = None,
        item_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        references: Iterable[str] = (),
        preserve_existing: bool = False,
        custom_tool: str | None = None,
        custom_tool_namespace: str | None = None,
        copy_to_output_directory: CopyToOutputDirectory | None = None,
        primary: bool = False,
        buffer: io.StringIO | None = None,
    ) -> None:
        self._finalized = False
        self._file = ""
        self._directory = ""
        self._project = ""
        self._encoding: str | None = None
        self._item_type: str | None = None
        self._metadata = CaseInsensitiveDict(metadata)
        self._references: list[str] = []
        self._preserve_existing = False
        self._buffer = buffer if buffer is not None else io.StringIO()
        # Set once by the registry for the transformation's primary output.
        self.primary = primary

        self.directory = directory
        self.file = file
        self.project = project
        if encoding is not None:
            self.encoding = encoding
        if item_type is not None:
            self.item_type = item_type
        for reference in references:
            self.add_reference(reference)
        self.preserve_existing = preserve_existing
        if custom_tool is not None:
            self.custom_tool = custom_tool
        if custom_tool_namespace is not None:
            self.custom_tool_namespace = custom_tool_namespace
        if copy_to_output_directory is not None:
            self.copy_to_output_directory = copy_to_output_directory

    def __repr__(self) -> str:
        label = "default" if self.is_default else self.path
        return f"ArtifactDescriptor({label!r}, encoding={self.encoding!r})"

    def _check_mutable(self) -> None:
        if self._finalized:
            raise RuntimeError(f"Output '{self.path}' is finalized and can no longer change")

    # ── destination ─────────────────────────────────────────────────────

    @property
    def file(self) -> str:
        return self._file

    @file.setter
    def file(self, value: str) -> None:
        if value is None:
            raise ValueError("file cannot be None")
        self._check_mutable()
        value = value.replace("\\", "/")
        if value:
            directory, name = os.path.split(value)
            if directory:
                self._directory = directory
            self._file = name
        else:
            self._file = value

    @property
    def directory(self) -> str:
        return self._directory

    @directory.setter
    def directory(self, value: str) -> None:
        if value is None:
            raise ValueError("directory cannot be None")
        self._check_mutable()
        self._directory = value.replace("\\", "/")

    @property
    def project(self) -> str:
        return self._project

    @project.setter
    def project(self, value: str) -> None:
        if value is None:
            raise ValueError("project cannot be None")
        self._check_mutable()
        self._project = value.replace("\\", "/")

    @property
    def path(self) -> str:
        """Path of the output relative to the input file's directory."""
        project_directory = os.path.dirname(self._project) if self._project else ""
        parts = [p for p in (project_directory, self._directory, self._file) if p]
        return "/".join(parts)

    @property
    def is_default(self) -> bool:
        return self.primary or not self._file

    # ── properties ──────────────────────────────────────────────────────

    @property
    def encoding(self) -> str:
        return self._encoding or normalize_encoding(get_config().default_encoding)

    @encoding.setter
    def encoding(self, value: str) -> None:
        self._check_mutable()
        self._encoding = normalize_encoding(value)

    @property
    def item_type(self) -> str:
        return self._item_type or ""

    @item_type.setter
    def item_type(self, value: str) -> None:
        if value is None:
            raise ValueError("item_type cannot be None")
        self._check_mutable()
        self._item_type = value

    @property
    def preserve_existing(self) -> bool:
        return self._preserve_existing

    @preserve_existing.setter
    def preserve_existing(self, value: bool) -> None:
        self._check_mutable()
        self._preserve_existing = bool(value)

    @property
    def metadata(self) -> CaseInsensitiveDict:
        return self._metadata

    def set_metadata(self, key: str, value: str) -> None:
        self._check_mutable()
        self._metadata[key] = value

    @property
    def custom_tool(self) -> str:
        return self._metadata.get(ItemMetadata.GENERATOR, "")

    @custom_tool.setter
    def custom_tool(self, value: str) -> None:
        self.set_metadata(ItemMetadata.GENERATOR, value)

    @property
    def custom_tool_namespace(self) -> str:
        return self._metadata.get(ItemMetadata.CUSTOM_TOOL_NAMESPACE, "")

    @custom_tool_namespace.setter
    def custom_tool_namespace(self, value: str) -> None:
        self.set_metadata(ItemMetadata.CUSTOM_TOOL_NAMESPACE, value)

    @property
    def copy_to_output_directory(self) -> CopyToOutputDirectory:
        return CopyToOutputDirectory.parse(
            self._metadata.get(ItemMetadata.COPY_TO_OUTPUT_DIRECTORY, "")
        )

    @copy_to_output_directory.setter
    def copy_to_output_directory(self, value: CopyToOutputDirectory) -> None:
        self.set_metadata(ItemMetadata.COPY_TO_OUTPUT_DIRECTORY, CopyToOutputDirectory(value).value)

    def well_known_metadata(self) -> list[tuple[WellKnownMetadata, str]]:
        """Metadata entries that map to dedicated workspace setters."""
        result = []
        for key, value in self._metadata.items():
            member = WellKnownMetadata.lookup(key)
            if member is not None:
                result.append((member, value))
        return result

    def custom_metadata(self) -> list[tuple[str, str]]:
        """Metadata entries stored verbatim on the workspace item."""
        return [
            (key, value)
            for key, value in self._metadata.items()
            if WellKnownMetadata.lookup(key) is None
        ]

    @property
    def references(self) -> list[str]:
        return list(self._references)

    def add_reference(self, name: str) -> None:
        self._check_mutable()
        if name not in self._references:
            self._references.append(name)

    # ── content ─────────────────────────────────────────────────────────

    @property
    def content(self) -> str:
        return self._buffer.getvalue()

    def append(self, text: str) -> None:
        self._check_mutable()
        self._buffer.write(text)

    # ── lifecycle ───────────────────────────────────────────────────────

    def validate(self) -> None:
        """Check the rules that apply to a single descriptor.

        Raises:
            DefaultOutputMisuseError: If the default output sets a directory,
                a project, or the preserve-existing flag.
        """
        if self._file:
            return
        if self._directory:
            raise DefaultOutputMisuseError("Output Directory cannot be specified without File.")
        if self._project:
            raise DefaultOutputMisuseError("Output Project cannot be specified without File.")
        if self._preserve_existing:
            raise DefaultOutputMisuseError(
                "Default output file of the transformation cannot be preserved."
            )

    def check_consistency(self, other: ArtifactDescriptor) -> None:
        """Verify that *other* agrees with the properties established here.

        Encoding and item type are only compared once a write has
        established them, so the implicitly created default output accepts
        whatever its first explicit write asks for.

        Raises:
            PropertyConflictError: On the first property that differs.
        """
        if self._encoding is not None and other.encoding != self.encoding:
            raise PropertyConflictError("Encoding", other.encoding, self.encoding, self.path)

        if self._item_type is not None and other.item_type.casefold() != self.item_type.casefold():
            raise PropertyConflictError("ItemType", other.item_type, self.item_type, self.path)

        for key, value in other.metadata.items():
            if key in self._metadata and self._metadata[key] != value:
                raise PropertyConflictError(
                    f"Metadata '{key}'", value, self._metadata[key], self.path
                )

        if other.preserve_existing != self.preserve_existing:
            raise PropertyConflictError(
                "PreserveExistingFile",
                str(other.preserve_existing),
                str(self.preserve_existing),
                self.path,
            )

    def merge_from(self, other: ArtifactDescriptor) -> None:
        """Fold the properties of a consistent write into this descriptor.

        Scalar properties are established by the first write; references are
        unioned and metadata keys are added only when not set yet.
        """
        self._check_mutable()
        if not (self._file or self._directory or self._project):
            self._file = other.file
            self._directory = other.directory
            self._project = other.project
        if self._encoding is None:
            self._encoding = other.encoding
        if self._item_type is None:
            self._item_type = other.item_type
        self._preserve_existing = other.preserve_existing
        for reference in other.references:
            self.add_reference(reference)
        for key, value in other.metadata.items():
            if key not in self._metadata:
                self._metadata[key] = value

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> None:
        self._finalized = True

    def assign_primary_file(self, name: str) -> None:
        """Record the on-disk name of the primary output once it is known."""
        if not self.primary:
            raise RuntimeError("Only the primary output is named after the run")
        self._file = os.path.basename(name.replace("\\", "/"))
