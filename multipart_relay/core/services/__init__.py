"""
Protocol services of the upload engine.
"""

from .fingerprint import fingerprint
from .planner import plan, part_count, range_for
from .reconciler import SessionReconciler
from .transport import PartTransport, run_cancellable
from .orchestrator import UploadOrchestrator, choose_strategy

__all__ = [
    "fingerprint",
    "plan",
    "part_count",
    "range_for",
    "SessionReconciler",
    "PartTransport",
    "run_cancellable",
    "UploadOrchestrator",
    "choose_strategy",
]
