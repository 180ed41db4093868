"""Write guards -- every file operation of a run is validated and audited.

The reconciliation engine never touches the filesystem directly.
"""

from artifactor.lib.guards.audit import AuditLog, AuditEntry
from artifactor.lib.guards.file_guard import FileGuard, ValidationResult

__all__ = [
    "AuditLog",
    "AuditEntry",
    "FileGuard",
    "ValidationResult",
]
