"""Diagnostics -- the error-reporting channel shared by renderers and reconciliation."""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass

from artifactor.lib.artifacts.errors import TransformationError

logger = logging.getLogger("engine.diagnostics")


@dataclass
class Diagnostic:
    """A single error or warning attributed to a file."""

    message: str
    file: str = ""
    is_warning: bool = False
    detail: str | None = None  # Formatted traceback for operational failures

    def __str__(self) -> str:
        kind = "warning" if self.is_warning else "error"
        prefix = f"{self.file}: " if self.file else ""
        return f"{prefix}{kind}: {self.message}"


class DiagnosticLog:
    """Collects diagnostics for one or more runs."""

    def __init__(self) -> None:
        self._entries: list[Diagnostic] = []

    def __iter__(self):
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def error(self, message: str, file: str = "", detail: str | None = None) -> Diagnostic:
        diagnostic = Diagnostic(message=message, file=file, detail=detail)
        self._entries.append(diagnostic)
        logger.error("%s", diagnostic)
        return diagnostic

    def warning(self, message: str, file: str = "") -> Diagnostic:
        diagnostic = Diagnostic(message=message, file=file, is_warning=True)
        self._entries.append(diagnostic)
        logger.warning("%s", diagnostic)
        return diagnostic

    def report_exception(self, exc: BaseException, file: str = "") -> Diagnostic:
        """Report *exc* the way its category requires.

        Validation errors are expected and reported by message only; anything
        else carries the full traceback.
        """
        if isinstance(exc, TransformationError):
            return self.error(str(exc), file=file)
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return self.error(f"{type(exc).__name__}: {exc}", file=file, detail=detail)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self._entries if not d.is_warning]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._entries if d.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(not d.is_warning for d in self._entries)
