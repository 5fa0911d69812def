"""
num_search remediator.

Scans candidate job documents and patches num_search one document at a
time. A failed update is recorded and the scan moves on; a failed cursor
ends the scan but the run still writes its summary.
"""
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

import structlog

from num_search_remediation.clients.mongo_client import MongoStore
from num_search_remediation.config import Settings
from num_search_remediation.core.outcome_recorder import OutcomeRecorder
from num_search_remediation.engine.predicate import (
    build_candidate_filter,
    build_update_pipeline,
)
from num_search_remediation.models import JobRecord, OutcomeRecord, RunSummary

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class RemediationFatalError(Exception):
    """The run was aborted before or outside the scan."""
    pass


class Remediator:
    """Recomputes num_search for every candidate document."""

    def __init__(
        self,
        store: MongoStore,
        recorder: OutcomeRecorder,
        settings: Settings,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize remediator.

        Args:
            store: Document store client
            recorder: Outcome recorder for the audit sinks
            settings: Run configuration
            on_progress: Called with (scanned, total) every
                settings.progress_every scanned documents
        """
        self.store = store
        self.recorder = recorder
        self.settings = settings
        self.on_progress = on_progress
        self.criterion = build_candidate_filter()
        self.pipeline = build_update_pipeline()

    async def run(self, run_id: Optional[str] = None) -> RunSummary:
        """
        Run the full remediation.

        Args:
            run_id: Optional run ID (generated if not provided)

        Returns:
            RunSummary with final counts

        Raises:
            RemediationFatalError: If the run could not be carried out
        """
        if run_id is None:
            run_id = f"num_search_{datetime.now():%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"

        start_time = datetime.now()

        try:
            await self.recorder.reset(run_id)
            await self.store.connect()

            total = await self.store.count_matching(self.criterion)
            logger.info("remediation_started", run_id=run_id, total=total)

            summary = RunSummary(run_id=run_id, total=total)
            if total > 0:
                await self._scan(summary)
            else:
                logger.info("no_candidates_found", run_id=run_id)

            summary.duration_seconds = (datetime.now() - start_time).total_seconds()
            await self.recorder.write_summary(summary)

            logger.info(
                "remediation_complete",
                run_id=run_id,
                total=summary.total,
                scanned=summary.scanned,
                updated=summary.updated,
                skipped=summary.skipped,
                errored=summary.errored,
                cursor_fault=summary.cursor_fault is not None,
                duration_seconds=round(summary.duration_seconds, 2),
            )
            return summary

        except Exception as e:
            logger.error("remediation_fatal_error", run_id=run_id, error=str(e))
            try:
                await self.recorder.record_fatal(str(e))
            except Exception as sink_error:
                logger.error("fatal_error_not_recorded", run_id=run_id, error=str(sink_error))
            raise RemediationFatalError(str(e)) from e

        finally:
            await self.store.close()

    async def _scan(self, summary: RunSummary) -> None:
        """Stream candidates and remediate each one, updating summary in place."""
        async with self.store.open_cursor(self.criterion) as cursor:
            while True:
                try:
                    document = await anext(cursor)
                except StopAsyncIteration:
                    break
                except Exception as e:
                    summary.cursor_fault = f"Cursor failed at document #{summary.scanned}: {e}"
                    logger.warning(
                        "cursor_failed",
                        run_id=summary.run_id,
                        position=summary.scanned,
                        error=str(e),
                    )
                    await self.recorder.record_cursor_fault(summary.scanned, str(e))
                    break

                summary.scanned += 1
                outcome = await self.remediate_document(document)

                if outcome.outcome == "updated":
                    summary.updated += 1
                elif outcome.outcome == "skipped":
                    summary.skipped += 1
                else:
                    summary.errored += 1

                await self.recorder.record(outcome)

                if summary.scanned % self.settings.progress_every == 0:
                    logger.info(
                        "remediation_progress",
                        run_id=summary.run_id,
                        scanned=summary.scanned,
                        total=summary.total,
                    )
                    if self.on_progress:
                        self.on_progress(summary.scanned, summary.total)

    async def remediate_document(self, document: dict[str, Any]) -> OutcomeRecord:
        """
        Apply the recomputation to a single document.

        Args:
            document: Raw document from the cursor

        Returns:
            OutcomeRecord classifying the attempt
        """
        record_id = document.get("_id")

        try:
            record = JobRecord.model_validate(document)
            changed = await self.store.update_one(record.id, self.pipeline)
        except Exception as e:
            logger.error("record_update_failed", record_id=str(record_id), error=str(e))
            return OutcomeRecord(record_id=str(record_id), outcome="errored", error=str(e))

        if changed:
            return OutcomeRecord(record_id=str(record_id), outcome="updated")

        logger.debug("record_skipped", record_id=str(record_id))
        return OutcomeRecord(record_id=str(record_id), outcome="skipped")
