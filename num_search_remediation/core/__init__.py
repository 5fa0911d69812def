"""Core utilities for the remediation job."""
from .log_sink import LogSink
from .outcome_recorder import OutcomeRecorder, format_summary
from .progress_store import ProgressStore

__all__ = [
    "LogSink",
    "OutcomeRecorder",
    "format_summary",
    "ProgressStore",
]
