"""Transformation -- the explicit context of one generation run.

A renderer creates a ``Transformation`` for the input file it is processing,
writes rendered text through it, and calls :meth:`Transformation.finish`
when done. Nothing is looked up from global state.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from artifactor.engine.diagnostics import Diagnostic, DiagnosticLog
from artifactor.engine.scheduler import ReconciliationScheduler, RunRecord
from artifactor.lib.artifacts.errors import TransformationError
from artifactor.lib.artifacts.models import ArtifactDescriptor
from artifactor.lib.artifacts.paths import full_path
from artifactor.lib.artifacts.registry import ArtifactRegistry
from artifactor.lib.workspace.base import WorkspaceItem

logger = logging.getLogger("transformation")


class Transformation:
    """Collects the outputs of one run and hands them to the scheduler.

    Args:
        input_path: The input file being transformed.
        scheduler: Scheduler that reconciles the outputs when the run finishes.
    """

    def __init__(self, input_path: Path, scheduler: ReconciliationScheduler) -> None:
        self.input_path = full_path(Path.cwd(), input_path)
        self.started_at = time.time()
        self._scheduler = scheduler
        self._registry = ArtifactRegistry()
        self._finished = False

    @property
    def registry(self) -> ArtifactRegistry:
        return self._registry

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._scheduler.diagnostics

    def write(self, descriptor: ArtifactDescriptor, text: str) -> bool:
        """Write *text* to the output described by *descriptor*.

        Validation failures abandon only this write and are reported
        against the input file.

        Returns:
            True if the text was accepted.
        """
        try:
            self._registry.write(descriptor, text)
        except TransformationError as e:
            self.report_error(str(e))
            return False
        return True

    def write_primary(self, text: str) -> None:
        self._registry.write_primary(text)

    def get_metadata_value(self, key: str) -> str:
        """Read a metadata value of the input item, falling back to its parent item."""
        workspace = self._scheduler.workspace
        item = workspace.find_item(self.input_path)
        if item is None:
            return ""
        value = workspace.get_metadata(item, key)
        if not value:
            parent = workspace.parent_of(item)
            if isinstance(parent, WorkspaceItem):
                value = workspace.get_metadata(parent, key)
        return value

    def report_error(self, message: str) -> Diagnostic:
        return self.diagnostics.error(message, file=str(self.input_path))

    def report_warning(self, message: str) -> Diagnostic:
        return self.diagnostics.warning(message, file=str(self.input_path))

    async def finish(
        self,
        *,
        primary_output: Path | None = None,
        primary_extension: str | None = None,
    ) -> RunRecord:
        """Close the run and reconcile its outputs.

        Args:
            primary_output: Path of the primary output if the caller wrote it.
            primary_extension: Extension of the primary output to wait for
                when the renderer writes it asynchronously.

        Raises:
            RuntimeError: If the run was already finished.
        """
        if self._finished:
            raise RuntimeError(f"Transformation of {self.input_path} is already finished")
        self._finished = True
        artifacts = self._registry.snapshot()
        logger.debug("Finishing %s with %d outputs", self.input_path, len(artifacts))
        return await self._scheduler.run(
            self.input_path,
            artifacts,
            primary_output=primary_output,
            primary_extension=primary_extension,
            started_at=self.started_at,
        )
