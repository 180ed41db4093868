"""Load run description files and replay them as transformations."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from artifactor.engine.scheduler import ReconciliationScheduler, RunRecord
from artifactor.lib.artifacts.paths import full_path
from artifactor.lib.guards.file_guard import FileGuard
from artifactor.lib.runs.models import RunFile
from artifactor.transformation import Transformation

logger = logging.getLogger("lib.runs.loader")


def load_run_file(path: Path) -> RunFile:
    """Parse and validate a run description file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a valid run description.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Run file not found: {path}")
    try:
        return RunFile.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ValueError(f"Invalid run file {path}: {e}") from e


async def run_from_file(
    run_file: RunFile,
    base_dir: Path,
    scheduler: ReconciliationScheduler,
) -> RunRecord:
    """Replay *run_file* as a transformation and reconcile its outputs.

    The primary output, when present, is written to disk first, the way a
    renderer would, and passed to the scheduler by path.
    """
    transformation = Transformation(full_path(base_dir, run_file.input), scheduler)
    for output in run_file.outputs:
        transformation.write(output.to_descriptor(), output.content)

    primary_path = None
    if run_file.primary_output is not None:
        transformation.write_primary(run_file.primary_output.content)
        primary_path = full_path(transformation.input_path.parent, run_file.primary_output.file)
        guard = FileGuard(scheduler.engine.audit)
        guard.write_text(
            primary_path,
            transformation.registry.primary_output,
            transformation.registry.default.encoding,
            str(transformation.input_path),
        )

    logger.info("Replaying %d outputs for %s", len(run_file.outputs), transformation.input_path)
    return await transformation.finish(primary_output=primary_path)
