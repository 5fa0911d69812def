"""
CLI for the num_search remediation job.

Commands:
- run: Recompute num_search for all candidate documents
- count: Count candidate documents without changing anything
- status: Show a past run from the run history
- history: List recent runs
- reset: Delete a run from the run history
"""
import asyncio
import logging
import sys
from typing import Optional

import structlog
import typer

from num_search_remediation.config import Settings, get_settings
from num_search_remediation.clients.mongo_client import MongoStore
from num_search_remediation.core.log_sink import LogSink
from num_search_remediation.core.outcome_recorder import OutcomeRecorder, format_summary
from num_search_remediation.core.progress_store import ProgressStore
from num_search_remediation.engine.predicate import build_candidate_filter
from num_search_remediation.engine.remediator import Remediator, RemediationFatalError

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="num-search-remediation",
    help="num_search Remediation Job - Recompute missing or malformed job lookup keys"
)


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the given level and output format."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=settings.log_level.upper(),
    )

    if settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def print_progress(scanned: int, total: int) -> None:
    """Print a progress line."""
    typer.echo(f"Processed {scanned}/{total}...")


@app.command()
def run(
    run_id: Optional[str] = typer.Option(None, "--run-id", "-r", help="Custom run ID"),
):
    """
    Recompute num_search for all candidate documents.

    Truncates the audit logs, scans every document whose num_search,
    job_id or client_code is missing or malformed, and writes one line per
    document to the updated, skipped or error log.
    """
    settings = get_settings()
    configure_logging(settings)

    async def _run():
        store = MongoStore(settings)
        progress = ProgressStore(settings.progress_db_path)
        await progress.initialize()

        try:
            recorder = OutcomeRecorder(LogSink(settings.log_dir), settings, progress)
            remediator = Remediator(store, recorder, settings, on_progress=print_progress)

            typer.echo(f"Connecting to {settings.db_name}.{settings.collection_name}")
            return await remediator.run(run_id)

        finally:
            await progress.close()

    try:
        summary = asyncio.run(_run())
    except RemediationFatalError as e:
        typer.echo(f"Fatal error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Run ID: {summary.run_id}")
    typer.echo(f"Total invalid documents: {summary.total}")

    if summary.cursor_fault:
        typer.echo(
            f"Warning: cursor error occurred. Check {settings.cursor_error_log} for details.",
            err=True,
        )

    typer.echo("")
    typer.echo(format_summary(summary))


@app.command()
def count():
    """
    Count candidate documents (read only).

    Connects to the collection and reports how many documents a run
    would scan, without writing any logs or updates.
    """
    settings = get_settings()
    configure_logging(settings)

    async def _count():
        store = MongoStore(settings)
        try:
            await store.connect()
            return await store.count_matching(build_candidate_filter())
        finally:
            await store.close()

    try:
        total = asyncio.run(_count())
    except Exception as e:
        typer.echo(f"Fatal error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Total invalid documents: {total}")


@app.command()
def status(
    run_id: str = typer.Option(..., "--run-id", "-r", help="Run ID to check"),
):
    """
    Show a remediation run.

    Displays the stored counts of the specified run and its errored
    documents.
    """
    settings = get_settings()
    configure_logging(settings)

    async def _status():
        progress = ProgressStore(settings.progress_db_path)
        await progress.initialize()

        try:
            run_row = await progress.get_run(run_id)
            if run_row is None:
                typer.echo(f"No run found with ID: {run_id}")
                raise typer.Exit(1)

            typer.echo(f"\nRun: {run_id}")
            typer.echo(f"Status: {run_row['status']}")
            typer.echo(f"Started: {run_row['started_at']}")
            typer.echo(f"Finished: {run_row['finished_at'] or '-'}")

            counts = await progress.get_outcome_counts(run_id)
            for outcome in ["updated", "skipped", "errored"]:
                typer.echo(f"{outcome.capitalize()}: {counts.get(outcome, 0)}")

            if run_row["error_message"]:
                typer.echo(f"Error: {run_row['error_message']}")

            errored = await progress.get_errored_records(run_id)
            if errored:
                typer.echo(f"\nErrored documents ({len(errored)}):")
                for item in errored[:10]:
                    typer.echo(f"  - {item['record_id']}: {item['error_message']}")
                if len(errored) > 10:
                    typer.echo(f"  ... and {len(errored) - 10} more")

        finally:
            await progress.close()

    asyncio.run(_status())


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of runs to show"),
):
    """
    List recent remediation runs.
    """
    settings = get_settings()
    configure_logging(settings)

    async def _history():
        progress = ProgressStore(settings.progress_db_path)
        await progress.initialize()
        try:
            return await progress.list_runs(limit)
        finally:
            await progress.close()

    runs = asyncio.run(_history())
    if not runs:
        typer.echo("No runs recorded")
        return

    for item in runs:
        counts = " ".join(
            f"{key}={item[key] if item[key] is not None else '-'}"
            for key in ["total", "updated", "skipped", "errored"]
        )
        typer.echo(f"{item['run_id']}  {item['status']:<12}  {counts}")


@app.command()
def reset(
    run_id: str = typer.Option(..., "--run-id", "-r", help="Run ID to reset"),
    confirm: bool = typer.Option(False, "--confirm", "-y", help="Confirm reset"),
):
    """
    Delete a run from the run history.

    Audit log files are not touched; they are truncated by the next run.
    """
    if not confirm:
        typer.echo("This will delete the stored history for the run.")
        typer.echo("Use --confirm to proceed.")
        raise typer.Exit(1)

    settings = get_settings()
    configure_logging(settings)

    async def _reset():
        progress = ProgressStore(settings.progress_db_path)
        await progress.initialize()

        try:
            return await progress.reset_run(run_id)
        finally:
            await progress.close()

    removed = asyncio.run(_reset())
    typer.echo(f"Reset {removed} outcome entries for run: {run_id}")


if __name__ == "__main__":
    app()
