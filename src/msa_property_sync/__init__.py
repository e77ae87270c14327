"""Package initializer for `msa_property_sync`."""

from .orchestrator import SyncOrchestrator
from .run_result import SyncRunSummary

__all__ = ["SyncOrchestrator", "SyncRunSummary"]
