"""Waits for the primary output of a run to appear on disk.

The renderer writes the primary output itself, next to the input file, under
a name only it knows: the input's stem followed by anything, with the
output extension. The watcher reports the first such file created or
modified after the run started.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from artifactor.config import get_config
from artifactor.lib.artifacts.errors import PrimaryOutputTimeoutError
from artifactor.lib.artifacts.paths import same_path

logger = logging.getLogger("engine.output_watcher")


def primary_output_pattern(input_path: Path, extension: str) -> str:
    """Glob pattern matching candidate primary outputs of *input_path*."""
    if extension and not extension.startswith("."):
        extension = "." + extension
    return f"{Path(input_path).stem}*{extension}"


def _matches(path: Path, pattern: str, input_path: Path) -> bool:
    if same_path(path, input_path):
        return False
    return fnmatch.fnmatchcase(path.name.casefold(), pattern.casefold())


def find_primary_output(input_path: Path, pattern: str, started_at: float) -> Path | None:
    """Return an existing match modified at or after *started_at*, if any."""
    input_path = Path(input_path)
    candidates = [
        p
        for p in input_path.parent.iterdir()
        if p.is_file() and _matches(p, pattern, input_path) and p.stat().st_mtime >= started_at
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


class _PrimaryOutputHandler(FileSystemEventHandler):
    """Resolves a future, on the event loop, with the first matching file."""

    def __init__(
        self,
        input_path: Path,
        pattern: str,
        loop: asyncio.AbstractEventLoop,
        found: asyncio.Future,
    ) -> None:
        self._input_path = input_path
        self._pattern = pattern
        self._loop = loop
        self._found = found

    def _offer(self, raw_path) -> None:
        path = Path(str(raw_path))
        if _matches(path, self._pattern, self._input_path):
            self._loop.call_soon_threadsafe(self._resolve, path)

    def _resolve(self, path: Path) -> None:
        if not self._found.done():
            self._found.set_result(path)

    def on_created(self, event):  # type: ignore[override]
        if not event.is_directory:
            self._offer(event.src_path)

    def on_modified(self, event):  # type: ignore[override]
        if not event.is_directory:
            self._offer(event.src_path)

    def on_moved(self, event):  # type: ignore[override]
        if not event.is_directory:
            self._offer(event.dest_path)


async def wait_for_primary_output(
    input_path: Path,
    extension: str,
    started_at: float,
    timeout: float | None = None,
) -> Path:
    """Wait until the primary output of *input_path* exists.

    Args:
        input_path: Absolute path of the input file.
        extension: Extension of the primary output (with or without the dot).
        started_at: Timestamp (``time.time()``) the run started at; older
            files are leftovers of previous runs.
        timeout: Seconds to wait; defaults to the configured timeout.

    Returns:
        Absolute path of the primary output.

    Raises:
        PrimaryOutputTimeoutError: If no matching file appears in time.
    """
    input_path = Path(input_path)
    if timeout is None:
        timeout = get_config().primary_output_timeout
    pattern = primary_output_pattern(input_path, extension)

    loop = asyncio.get_running_loop()
    found: asyncio.Future = loop.create_future()
    observer = Observer()
    observer.schedule(
        _PrimaryOutputHandler(input_path, pattern, loop, found),
        str(input_path.parent),
        recursive=False,
    )
    observer.start()
    try:
        # Scan only after the observer runs so a file written in between is not missed.
        existing = find_primary_output(input_path, pattern, started_at)
        if existing is not None:
            return existing
        logger.debug("Waiting up to %.1fs for %s in %s", timeout, pattern, input_path.parent)
        return await asyncio.wait_for(found, timeout=timeout)
    except asyncio.TimeoutError:
        raise PrimaryOutputTimeoutError(str(input_path), pattern, timeout) from None
    finally:
        observer.stop()
        await loop.run_in_executor(None, observer.join)
