"""
Outcome recorder for remediation runs.

Writes each per-record classification to its audit sink as soon as it is
known, and the run summary once at the end. When a ProgressStore is
attached, every entry is mirrored into the run history as well.
"""
from typing import Optional

import structlog

from num_search_remediation.config import Settings
from num_search_remediation.core.log_sink import LogSink
from num_search_remediation.core.progress_store import ProgressStore
from num_search_remediation.models import OutcomeRecord, RunSummary

logger = structlog.get_logger(__name__)

NO_CANDIDATES_MESSAGE = "No invalid documents found."


def format_summary(summary: RunSummary) -> str:
    """
    Render a run summary for the summary sink and the console.

    Args:
        summary: Final run counts

    Returns:
        Summary block text
    """
    if summary.total == 0:
        return NO_CANDIDATES_MESSAGE

    text = (
        "SUMMARY\n"
        "-----------------\n"
        f"Total Invalid: {summary.total}\n"
        f"Scanned: {summary.scanned}\n"
        f"Updated: {summary.updated}\n"
        f"Skipped: {summary.skipped}\n"
        f"Errored: {summary.errored}\n"
    )
    if summary.cursor_fault:
        text += f"Cursor Fault: {summary.cursor_fault}\n"
    return text


class OutcomeRecorder:
    """Routes remediation outcomes to their audit sinks."""

    def __init__(
        self,
        sink: LogSink,
        settings: Settings,
        progress_store: Optional[ProgressStore] = None,
    ):
        """
        Initialize outcome recorder.

        Args:
            sink: File sink for the audit logs
            settings: Settings holding the sink names
            progress_store: Optional run history store
        """
        self.sink = sink
        self.settings = settings
        self.progress = progress_store
        self.run_id: Optional[str] = None
        self._sink_by_outcome = {
            "updated": settings.updated_log,
            "skipped": settings.skipped_log,
            "errored": settings.error_log,
        }

    async def reset(self, run_id: str) -> None:
        """Truncate all sinks and start a new run."""
        self.run_id = run_id
        for name in self.settings.sink_names:
            self.sink.truncate(name)

        if self.progress:
            await self.progress.start_run(run_id)

        logger.info("sinks_reset", run_id=run_id, log_dir=str(self.sink.log_dir))

    async def record(self, outcome: OutcomeRecord) -> None:
        """Append one outcome to the sink for its classification."""
        if outcome.outcome == "errored":
            line = f"{outcome.record_id} - {outcome.error}"
        else:
            line = outcome.record_id

        self.sink.append_line(self._sink_by_outcome[outcome.outcome], line)

        if self.progress:
            await self.progress.record_outcome(self.run_id, outcome)

    async def record_cursor_fault(self, position: int, error: str) -> None:
        """Record a cursor failure at the given scan position."""
        self.sink.append_line(
            self.settings.cursor_error_log,
            f"Cursor failed at document #{position}: {error}",
        )

    async def record_fatal(self, error: str) -> None:
        """Record a failure that aborted the whole run."""
        self.sink.append_line(self.settings.error_log, f"Fatal: {error}")

        if self.progress:
            await self.progress.fail_run(self.run_id, error)

    async def write_summary(self, summary: RunSummary) -> str:
        """
        Overwrite the summary sink with the final run summary.

        Returns:
            The rendered summary text
        """
        text = format_summary(summary)
        self.sink.overwrite(self.settings.summary_log, text)

        if self.progress:
            await self.progress.finish_run(summary)

        return text
