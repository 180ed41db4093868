"""Reconciliation Scheduler -- serializes runs per input file.

Runs for the same input file execute one after another; runs for different
input files proceed concurrently up to a configurable limit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from artifactor.config import get_config
from artifactor.engine.diagnostics import DiagnosticLog
from artifactor.engine.output_watcher import wait_for_primary_output
from artifactor.engine.reconciler import ReconciliationEngine, ReconciliationResult
from artifactor.lib.artifacts.errors import MissingInputItemError
from artifactor.lib.artifacts.models import ArtifactDescriptor, ItemMetadata
from artifactor.lib.artifacts.paths import full_path, path_key, relative_path
from artifactor.lib.guards.audit import AuditLog
from artifactor.lib.workspace.base import Checkout, Workspace

logger = logging.getLogger("engine.scheduler")


@dataclass
class RunRecord:
    """A submitted reconciliation run."""

    run_id: str
    input_path: Path
    status: str = "queued"  # queued, waiting, writing, completed, failed
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    result: ReconciliationResult | None = None
    error: str | None = None

    def is_active(self) -> bool:
        return self.status in ("queued", "waiting", "writing")


class ReconciliationScheduler:
    """Runs reconciliations as asyncio tasks.

    Each run first resolves the primary output (given, or awaited on disk),
    names the default output after it, and then hands the outputs to the
    reconciliation engine while holding the lock of its input file.
    """

    def __init__(
        self,
        workspace: Workspace,
        checkout: Checkout,
        *,
        diagnostics: DiagnosticLog | None = None,
        audit: AuditLog | None = None,
        max_concurrent_runs: int | None = None,
    ) -> None:
        self._workspace = workspace
        self._engine = ReconciliationEngine(workspace, checkout, diagnostics, audit)
        limit = max_concurrent_runs or get_config().max_concurrent_runs
        self._semaphore = asyncio.Semaphore(limit)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._runs: dict[str, RunRecord] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._shutdown_event = asyncio.Event()

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._engine.diagnostics

    @contextlib.asynccontextmanager
    async def _input_lock(self, input_path: Path):
        """Hold the lock of *input_path*; dropped once no run holds or awaits it."""
        key = path_key(input_path)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def submit(
        self,
        input_path: Path,
        artifacts: Iterable[ArtifactDescriptor],
        *,
        primary_output: Path | None = None,
        primary_extension: str | None = None,
        started_at: float | None = None,
    ) -> RunRecord:
        """Queue a reconciliation run.

        Args:
            input_path: Input file the outputs were generated from.
            artifacts: Finalized outputs of the run.
            primary_output: Path of the primary output when already known.
            primary_extension: Extension of the primary output to wait for
                when its path is not known.
            started_at: Timestamp the run started at (used when waiting).

        Returns:
            RunRecord handle.

        Raises:
            RuntimeError: If the scheduler is shutting down.
        """
        if self._shutdown_event.is_set():
            raise RuntimeError("Scheduler is shutting down, cannot accept new runs")

        record = RunRecord(
            run_id=f"run-{uuid.uuid4().hex[:8]}",
            input_path=full_path(Path.cwd(), input_path),
        )
        self._runs[record.run_id] = record
        task = asyncio.create_task(
            self._execute(record, list(artifacts), primary_output, primary_extension, started_at)
        )
        self._tasks[record.run_id] = task

        logger.info("Queued run %s for %s", record.run_id, record.input_path)
        return record

    async def run(
        self, input_path: Path, artifacts: Iterable[ArtifactDescriptor], **kwargs
    ) -> RunRecord:
        """Submit a run and wait for it to finish."""
        record = await self.submit(input_path, artifacts, **kwargs)
        return await self.wait(record.run_id)

    async def wait(self, run_id: str) -> RunRecord:
        task = self._tasks[run_id]
        await asyncio.shield(task)
        return self._runs[run_id]

    async def _execute(
        self,
        record: RunRecord,
        artifacts: list[ArtifactDescriptor],
        primary_output: Path | None,
        primary_extension: str | None,
        started_at: float | None,
    ) -> None:
        """Internal: resolve the primary output, then reconcile under the input's lock."""
        try:
            async with self._input_lock(record.input_path):
                async with self._semaphore:
                    record.status = "waiting"
                    primary = await self._resolve_primary(
                        record.input_path, primary_output, primary_extension, started_at
                    )
                    if primary is not None:
                        self._name_primary_output(record.input_path, artifacts, primary)

                    record.status = "writing"
                    logger.info("Run %s writing outputs of %s", record.run_id, record.input_path)
                    record.result = await self._engine.reconcile(record.input_path, artifacts)
                    record.status = "completed" if record.result.succeeded else "failed"

        except asyncio.CancelledError:
            record.status = "failed"
            record.error = "cancelled"
            logger.warning("Run %s cancelled", record.run_id)
            raise

        except Exception as e:
            record.status = "failed"
            record.error = str(e)
            self.diagnostics.report_exception(e, file=str(record.input_path))

        finally:
            record.finished_at = datetime.now(timezone.utc)
            logger.info("Run %s finished: %s", record.run_id, record.status)

    async def _resolve_primary(
        self,
        input_path: Path,
        primary_output: Path | None,
        primary_extension: str | None,
        started_at: float | None,
    ) -> Path | None:
        if primary_output is not None:
            return full_path(input_path.parent, primary_output)
        if primary_extension is None:
            return None
        return await wait_for_primary_output(
            input_path, primary_extension, started_at if started_at is not None else 0.0
        )

    def _name_primary_output(
        self, input_path: Path, artifacts: list[ArtifactDescriptor], primary: Path
    ) -> None:
        """Name the default output after the primary file and record it on the input."""
        for artifact in artifacts:
            if artifact.primary:
                artifact.assign_primary_file(primary.name)
                break

        item = self._workspace.find_item(input_path)
        if item is None:
            raise MissingInputItemError(str(input_path))
        project = self._workspace.project_of(item)
        # Stored relative to the project directory.
        value = relative_path(project.path, primary)
        self._workspace.set_metadata(item, ItemMetadata.LAST_GEN_OUTPUT, value)

    def get_run(self, run_id: str) -> RunRecord | None:
        """Get a run by ID."""
        return self._runs.get(run_id)

    def list_active(self) -> list[RunRecord]:
        """List runs that have not finished."""
        return [r for r in self._runs.values() if r.is_active()]

    def list_all(self) -> list[RunRecord]:
        """List all runs (including finished)."""
        return list(self._runs.values())

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Stop accepting runs and wait for the active ones.

        Runs still queued or waiting when *timeout* expires are cancelled;
        runs that already started writing are always awaited.
        """
        self._shutdown_event.set()
        logger.info("Scheduler shutdown initiated, waiting up to %.0fs for active runs", timeout)

        active = {rid: t for rid, t in self._tasks.items() if not t.done()}
        if active:
            _done, pending = await asyncio.wait(list(active.values()), timeout=timeout)
            writing = []
            for run_id, task in active.items():
                if task not in pending:
                    continue
                if self._runs[run_id].status == "writing":
                    writing.append(task)
                else:
                    task.cancel()
            if writing:
                await asyncio.wait(writing)
            cancelled = [t for t in pending if t not in writing]
            if cancelled:
                await asyncio.gather(*cancelled, return_exceptions=True)

        logger.info("Scheduler shutdown complete. %d runs processed.", len(self._runs))
