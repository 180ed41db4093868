"""Engine -- reconciliation of run outputs with disk and workspace state."""

from artifactor.engine.diagnostics import Diagnostic, DiagnosticLog
from artifactor.engine.output_watcher import wait_for_primary_output
from artifactor.engine.reconciler import ReconciliationEngine, ReconciliationResult
from artifactor.engine.scheduler import ReconciliationScheduler, RunRecord

__all__ = [
    "Diagnostic",
    "DiagnosticLog",
    "wait_for_primary_output",
    "ReconciliationEngine",
    "ReconciliationResult",
    "ReconciliationScheduler",
    "RunRecord",
]
