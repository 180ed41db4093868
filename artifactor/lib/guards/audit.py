"""Audit trail of the file operations performed while reconciling outputs."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("guards.audit")

MAX_RING_BUFFER = 1000


@dataclass
class AuditEntry:
    """A single audit log entry."""

    timestamp: datetime
    guard: str  # "file", "checkout"
    operation: str  # "write", "delete", "move", ...
    actor: str  # Input file whose run requested the operation
    details: dict[str, Any] = field(default_factory=dict)
    result: str = "allowed"  # "allowed", "denied", "error"
    reason: str | None = None


class AuditLog:
    """Append-only audit trail of privileged operations.

    Entries live in an in-memory ring buffer and are mirrored to the
    ``guards.audit`` logger.
    """

    def __init__(self, maxlen: int = MAX_RING_BUFFER) -> None:
        self._buffer: deque[AuditEntry] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._buffer)

    def log(self, entry: AuditEntry) -> None:
        """Append an entry to the audit log."""
        self._buffer.append(entry)
        logger.info(
            "[%s] %s.%s by %s: %s%s",
            entry.result.upper(),
            entry.guard,
            entry.operation,
            entry.actor,
            entry.details,
            f" -- {entry.reason}" if entry.reason else "",
        )

    def _record(
        self,
        result: str,
        guard: str,
        operation: str,
        actor: str,
        details: dict | None,
        reason: str | None = None,
    ) -> None:
        self.log(
            AuditEntry(
                timestamp=datetime.now(timezone.utc),
                guard=guard,
                operation=operation,
                actor=actor,
                details=details or {},
                result=result,
                reason=reason,
            )
        )

    def log_allowed(
        self, guard: str, operation: str, actor: str, details: dict | None = None
    ) -> None:
        """Convenience: log an allowed operation."""
        self._record("allowed", guard, operation, actor, details)

    def log_denied(
        self, guard: str, operation: str, actor: str, reason: str, details: dict | None = None
    ) -> None:
        """Convenience: log a denied operation."""
        self._record("denied", guard, operation, actor, details, reason)

    def log_error(
        self, guard: str, operation: str, actor: str, reason: str, details: dict | None = None
    ) -> None:
        """Convenience: log an error."""
        self._record("error", guard, operation, actor, details, reason)

    def recent(self, limit: int = 50) -> list[AuditEntry]:
        """Get recent entries."""
        entries = list(self._buffer)
        return entries[-limit:]

    def filter_by_operation(self, operation: str) -> list[AuditEntry]:
        return [e for e in self._buffer if e.operation == operation]

    def filter_by_result(self, result: str) -> list[AuditEntry]:
        """Get entries by result type."""
        return [e for e in self._buffer if e.result == result]
