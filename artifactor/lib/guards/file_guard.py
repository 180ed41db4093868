"""FileGuard -- validates and executes the file operations of a reconciliation run."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from artifactor.lib.artifacts.paths import is_within
from artifactor.lib.guards.audit import AuditLog


@dataclass
class ValidationResult:
    """Result of a path validation check."""

    allowed: bool
    reason: str


class FileGuard:
    """Validates and executes filesystem operations on output files.

    Every write, move and delete the reconciliation engine performs flows
    through this guard. When *roots* are given, operations are confined to
    those directories (normally the directories of the workspace projects).
    """

    def __init__(self, audit: AuditLog, roots: Iterable[Path] | None = None) -> None:
        self._audit = audit
        self._roots = [Path(r) for r in roots] if roots is not None else None

    @property
    def audit(self) -> AuditLog:
        return self._audit

    def validate_path(self, path: Path) -> ValidationResult:
        """Check whether *path* may be modified.

        Args:
            path: The target file path; must be absolute.

        Returns:
            ValidationResult with allowed flag and reason.
        """
        path_str = str(path)
        if "\x00" in path_str:
            return ValidationResult(False, "Path contains null bytes")
        if not Path(path).is_absolute():
            return ValidationResult(False, f"Path is not absolute: {path}")
        if self._roots is not None and not any(is_within(path, r) for r in self._roots):
            return ValidationResult(False, f"Path is outside workspace projects: {path}")
        return ValidationResult(True, "Path is valid")

    def _check(self, path: Path, operation: str, actor: str, details: dict) -> None:
        result = self.validate_path(path)
        if not result.allowed:
            self._audit.log_denied("file", operation, actor, result.reason, details)
            raise PermissionError(f"FileGuard denied {operation}: {result.reason}")

    # -- reads ---------------------------------------------------------------

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def read_text(self, path: Path, encoding: str) -> str:
        """Read a file without translating line endings.

        A leading byte order mark is dropped so content compares equal to
        what a generator renders.
        """
        with open(path, encoding=encoding, newline="") as fh:
            text = fh.read()
        return text[1:] if text.startswith("\ufeff") else text

    # -- writes --------------------------------------------------------------

    def make_dirs(self, path: Path, actor: str) -> None:
        path = Path(path)
        if path.is_dir():
            return
        details = {"path": str(path)}
        self._check(path, "make_dirs", actor, details)
        path.mkdir(parents=True, exist_ok=True)
        self._audit.log_allowed("file", "make_dirs", actor, details)

    def write_text(self, path: Path, content: str, encoding: str, actor: str) -> Path:
        """Atomically replace *path* with *content*.

        Line endings are written exactly as given.

        Raises:
            PermissionError: If validation fails.
            OSError: If the file cannot be written.
        """
        path = Path(path)
        details = {"path": str(path), "size": len(content), "encoding": encoding}
        self._check(path, "write", actor, details)

        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd = tempfile.NamedTemporaryFile(
            mode="w",
            encoding=encoding,
            newline="",
            dir=path.parent,
            prefix=".artifactor_",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = Path(tmp_fd.name)
        try:
            tmp_fd.write(content)
            tmp_fd.close()
            tmp_path.replace(path)
        except Exception as e:
            tmp_fd.close()
            tmp_path.unlink(missing_ok=True)
            self._audit.log_error("file", "write", actor, str(e), details)
            raise

        self._audit.log_allowed("file", "write", actor, details)
        return path

    def move(self, source: Path, target: Path, actor: str) -> None:
        """Rename *source* to *target*, replacing *target* if it exists."""
        details = {"source": str(source), "target": str(target)}
        self._check(Path(source), "move", actor, details)
        self._check(Path(target), "move", actor, details)
        os.replace(source, target)
        self._audit.log_allowed("file", "move", actor, details)

    def delete(self, path: Path, actor: str) -> None:
        """Delete a file; a missing file is not an error."""
        path = Path(path)
        details = {"path": str(path)}
        self._check(path, "delete", actor, details)
        path.unlink(missing_ok=True)
        self._audit.log_allowed("file", "delete", actor, details)
