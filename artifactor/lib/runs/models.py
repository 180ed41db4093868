"""Pydantic models of run description files."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from artifactor.lib.artifacts.models import (
    ArtifactDescriptor,
    CopyToOutputDirectory,
    normalize_encoding,
)


class PrimaryOutputSpec(BaseModel):
    """The primary output a renderer produced for the input file."""

    file: str = Field(..., min_length=1)
    content: str = ""


class OutputSpec(BaseModel):
    """One write to a named (or the default) output."""

    file: str = ""
    directory: str = ""
    project: str = ""
    encoding: str | None = None
    item_type: str | None = None
    custom_tool: str | None = None
    custom_tool_namespace: str | None = None
    copy_to_output_directory: CopyToOutputDirectory | None = None
    metadata: dict[str, str] = {}
    references: list[str] = []
    preserve_existing: bool = False
    content: str = ""

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, v: str | None) -> str | None:
        return normalize_encoding(v) if v is not None else None

    def to_descriptor(self) -> ArtifactDescriptor:
        return ArtifactDescriptor(
            self.file,
            directory=self.directory,
            project=self.project,
            encoding=self.encoding,
            item_type=self.item_type,
            metadata=self.metadata,
            references=self.references,
            preserve_existing=self.preserve_existing,
            custom_tool=self.custom_tool,
            custom_tool_namespace=self.custom_tool_namespace,
            copy_to_output_directory=self.copy_to_output_directory,
        )


class RunFile(BaseModel):
    """A recorded generation run: the input file and everything it wrote.

    Paths are relative to the directory containing the run file.
    """

    input: str = Field(..., min_length=1)
    primary_output: PrimaryOutputSpec | None = None
    outputs: list[OutputSpec] = []
