"""Reconciliation Engine -- converges disk and workspace state with a run's outputs.

Given the input file of a completed run and the outputs it produced, the
engine deletes outputs the previous run recorded but this run no longer
produces, writes the outputs whose content changed, places every output in
the workspace and records the new manifest.

Failures abort the remaining steps without rolling back the completed ones;
re-running with the same outputs converges.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from artifactor.config import get_config
from artifactor.engine.diagnostics import DiagnosticLog
from artifactor.lib.artifacts.errors import (
    CheckoutAbortedError,
    MissingInputItemError,
    TransformationError,
    UnsupportedPropertyError,
    WorkspaceError,
)
from artifactor.lib.artifacts.models import (
    ArtifactDescriptor,
    ItemMetadata,
    WellKnownMetadata,
)
from artifactor.lib.artifacts.paths import full_path, path_key, relative_path
from artifactor.lib.guards.audit import AuditLog
from artifactor.lib.guards.file_guard import FileGuard
from artifactor.lib.manifest.store import ManifestStore
from artifactor.lib.workspace.base import (
    Checkout,
    CheckoutOutcome,
    Workspace,
    WorkspaceItem,
    WorkspaceProject,
)
from artifactor.lib.workspace.placement import WorkspacePlacement

logger = logging.getLogger("engine.reconciler")


@dataclass
class ReconciliationResult:
    """What a reconciliation run did."""

    input_path: Path
    deleted: list[Path] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    moved: list[Path] = field(default_factory=list)
    configured: list[Path] = field(default_factory=list)
    manifest: str | None = None
    succeeded: bool = False


class ReconciliationEngine:
    """Applies the outputs of one run to the filesystem and the workspace.

    Args:
        workspace: Project membership capability.
        checkout: Permission to modify files.
        diagnostics: Channel errors and warnings are reported to.
        audit: Audit trail for file operations.
        manifest_store: Override the manifest store (defaults to one over *workspace*).
    """

    def __init__(
        self,
        workspace: Workspace,
        checkout: Checkout,
        diagnostics: DiagnosticLog | None = None,
        audit: AuditLog | None = None,
        manifest_store: ManifestStore | None = None,
    ) -> None:
        self._workspace = workspace
        self._checkout = checkout
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._audit = audit if audit is not None else AuditLog()
        self._manifest = manifest_store or ManifestStore(workspace)

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._diagnostics

    @property
    def audit(self) -> AuditLog:
        return self._audit

    # -- validation ----------------------------------------------------------

    def _input_item(self, input_path: Path) -> WorkspaceItem:
        item = self._workspace.find_item(input_path)
        if item is None:
            raise MissingInputItemError(str(input_path))
        return item

    def validate(self, input_path: Path, artifacts: Iterable[ArtifactDescriptor]) -> None:
        """Check every output before anything is modified.

        Empty named outputs are reported as warnings.

        Raises:
            TransformationError: On the first output that cannot be placed.
        """
        input_path = full_path(Path.cwd(), input_path)
        placement = WorkspacePlacement(self._workspace, self._input_item(input_path))
        self._validate(placement, input_path, list(artifacts))

    def _validate(
        self,
        placement: WorkspacePlacement,
        input_path: Path,
        artifacts: list[ArtifactDescriptor],
    ) -> None:
        for artifact in artifacts:
            artifact.validate()
            placement.validate(artifact)
            if not artifact.is_default and not artifact.content.strip():
                self._diagnostics.warning(
                    f"Generated output file '{artifact.path}' is empty.", file=str(input_path)
                )

    # -- reconciliation ------------------------------------------------------

    async def reconcile(
        self, input_path: Path, artifacts: Iterable[ArtifactDescriptor]
    ) -> ReconciliationResult:
        """Converge disk and workspace state with *artifacts*.

        Never raises: failures are reported to the diagnostics log and the
        result is returned with ``succeeded=False``.
        """
        input_path = full_path(Path.cwd(), input_path)
        artifacts = list(artifacts)
        result = ReconciliationResult(input_path=input_path)
        actor = str(input_path)

        try:
            input_item = self._input_item(input_path)
            placement = WorkspacePlacement(self._workspace, input_item)
            self._validate(placement, input_path, artifacts)

            # The default output takes part only once its file name is known.
            outputs = [a for a in artifacts if a.file]
            guard = FileGuard(self._audit, roots=self._roots(input_path))

            self._delete_stale(input_path, placement, outputs, guard, result)
            to_write = self._outputs_to_write(placement, outputs, guard, result)
            if to_write:
                await self._request_checkout([placement.output_path(a) for a in to_write], actor)
            self._write(placement, to_write, guard, actor, result)
            for artifact in outputs:
                self._configure(placement, artifact, guard, actor, result)
            result.manifest = self._record_outputs(input_item, input_path, placement, outputs)
            result.succeeded = True
            logger.info(
                "Reconciled %s: %d written, %d skipped, %d deleted, %d moved",
                input_path,
                len(result.written),
                len(result.skipped),
                len(result.deleted),
                len(result.moved),
            )
        except TransformationError as e:
            # Expected error condition. Report the message only.
            self._diagnostics.error(str(e), file=actor)
        except Exception as e:
            logger.error("Reconciliation of %s failed: %s", input_path, e, exc_info=True)
            self._diagnostics.report_exception(e, file=actor)
        return result

    def _roots(self, input_path: Path) -> list[Path]:
        roots = [p.directory for p in self._workspace.list_projects()]
        roots.append(input_path.parent)
        return roots

    # Step 1
    def _delete_stale(
        self,
        input_path: Path,
        placement: WorkspacePlacement,
        outputs: list[ArtifactDescriptor],
        guard: FileGuard,
        result: ReconciliationResult,
    ) -> None:
        current = {path_key(placement.output_path(a)) for a in outputs}
        for recorded in self._manifest.load(input_path):
            previous = full_path(input_path.parent, recorded)
            if path_key(previous) in current:
                continue
            item = self._workspace.find_item(previous)
            if item is None:
                logger.debug("Stale output %s is not in the workspace", previous)
                continue
            self._delete_item(item, guard, str(input_path))
            result.deleted.append(previous)

    def _delete_item(self, item: WorkspaceItem, guard: FileGuard, actor: str) -> None:
        """Delete *item* and every parent folder it leaves empty."""
        parent = self._workspace.parent_of(item)
        if not item.is_folder and guard.exists(item.path):
            # Validates and audits the physical delete before the workspace drops the item.
            guard.delete(item.path, actor)
        self._workspace.delete_item(item)
        logger.info("Deleted stale output %s", item.path)

        if isinstance(parent, WorkspaceProject):
            return
        if parent.is_folder and not self._workspace.children(parent):
            self._delete_item(parent, guard, actor)

    # Step 2
    def _outputs_to_write(
        self,
        placement: WorkspacePlacement,
        outputs: list[ArtifactDescriptor],
        guard: FileGuard,
        result: ReconciliationResult,
    ) -> list[ArtifactDescriptor]:
        to_write = []
        for artifact in outputs:
            path = placement.output_path(artifact)
            if guard.exists(path):
                if artifact.preserve_existing:
                    result.skipped.append(path)
                    continue
                if self._unchanged(guard, path, artifact):
                    result.skipped.append(path)
                    continue
            to_write.append(artifact)
        return to_write

    @staticmethod
    def _unchanged(guard: FileGuard, path: Path, artifact: ArtifactDescriptor) -> bool:
        try:
            existing = guard.read_text(path, artifact.encoding)
        except UnicodeDecodeError:
            # Written in another encoding.
            logger.debug("%s does not decode as %s", path, artifact.encoding)
            return False
        return existing == artifact.content

    # Step 3
    async def _request_checkout(self, paths: list[Path], actor: str) -> None:
        names = [str(p) for p in paths]
        outcome = await self._checkout.request_edit(paths)
        if outcome != CheckoutOutcome.OK:
            self._audit.log_denied(
                "checkout", "request_edit", actor, f"checkout {outcome.value}", {"paths": names}
            )
            raise CheckoutAbortedError(outcome.value, names)
        self._audit.log_allowed("checkout", "request_edit", actor, {"paths": names})

    # Step 4
    def _write(
        self,
        placement: WorkspacePlacement,
        to_write: list[ArtifactDescriptor],
        guard: FileGuard,
        actor: str,
        result: ReconciliationResult,
    ) -> None:
        for artifact in to_write:
            path = placement.output_path(artifact)
            guard.make_dirs(path.parent, actor)
            guard.write_text(path, artifact.content, artifact.encoding, actor)
            self._workspace.reload_document(path)
            result.written.append(path)

    # Step 5
    def _configure(
        self,
        placement: WorkspacePlacement,
        artifact: ArtifactDescriptor,
        guard: FileGuard,
        actor: str,
        result: ReconciliationResult,
    ) -> None:
        path = placement.output_path(artifact)
        container = placement.resolve_container(artifact)
        item = self._workspace.find_item(path)

        if item is None:
            item = self._workspace.add_file(container, path)
        elif item.parent_key != container.key:
            # Rename the file out of the way so removing the old item
            # does not delete it.
            backup = Path(str(path) + get_config().backup_suffix)
            guard.move(path, backup, actor)
            self._workspace.delete_item(item)
            guard.move(backup, path, actor)
            item = self._workspace.add_file(container, path)
            result.moved.append(path)
            logger.info("Moved %s to %s", path, container.path)

        if artifact.item_type:
            self._workspace.set_item_type(item, artifact.item_type)

        for key, value in artifact.well_known_metadata():
            if key is WellKnownMetadata.CUSTOM_TOOL:
                self._workspace.set_custom_tool(item, value)
            elif key is WellKnownMetadata.CUSTOM_TOOL_NAMESPACE:
                self._workspace.set_custom_tool_namespace(item, value)
            elif key is WellKnownMetadata.COPY_TO_OUTPUT_DIRECTORY:
                self._workspace.set_copy_to_output_directory(
                    item, artifact.copy_to_output_directory.value
                )
        for key, value in artifact.custom_metadata():
            self._workspace.set_metadata(item, key, value)

        self._add_references(item, artifact)
        result.configured.append(path)

    def _add_references(self, item: WorkspaceItem, artifact: ArtifactDescriptor) -> None:
        if not artifact.references:
            return
        project = self._workspace.project_of(item)
        if not self._workspace.supports_references(project):
            raise UnsupportedPropertyError(
                f"Project {project.name} does not support references required by {item.name}"
            )
        for reference in artifact.references:
            try:
                self._workspace.add_reference(project, reference)
            except WorkspaceError as e:
                raise UnsupportedPropertyError(
                    f"Reference {reference} required by {item.name} could not be added "
                    f"to project {project.name}"
                ) from e

    # Step 6
    def _record_outputs(
        self,
        input_item: WorkspaceItem,
        input_path: Path,
        placement: WorkspacePlacement,
        outputs: list[ArtifactDescriptor],
    ) -> str:
        last_gen_output = self._last_gen_output_path(input_item)
        recorded = []
        for artifact in outputs:
            if artifact.is_default or artifact.preserve_existing:
                continue
            path = placement.output_path(artifact)
            if last_gen_output is not None and path_key(path) == path_key(last_gen_output):
                continue
            recorded.append(relative_path(input_path, path))
        return self._manifest.save(input_path, recorded)

    def _last_gen_output_path(self, input_item: WorkspaceItem) -> Path | None:
        value = self._workspace.get_metadata(input_item, ItemMetadata.LAST_GEN_OUTPUT)
        if not value:
            return None
        project = self._workspace.project_of(input_item)
        return full_path(project.directory, value)
