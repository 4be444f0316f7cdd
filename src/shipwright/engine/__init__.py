"""Release pipeline engine."""

from .orchestrator import EntryOutcome, ReleaseEngine, RunMode, RunResult

__all__ = [
    "EntryOutcome",
    "ReleaseEngine",
    "RunMode",
    "RunResult",
]
