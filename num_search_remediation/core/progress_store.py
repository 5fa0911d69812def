"""
SQLite-based run history.

Records each remediation run and every per-record outcome so past runs
can be inspected after the log files have been truncated by a newer run.
"""
import aiosqlite
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from num_search_remediation.models import OutcomeRecord, RunSummary

logger = structlog.get_logger(__name__)


class ProgressStore:
    """SQLite-based history of remediation runs."""

    def __init__(self, db_path: str = "remediation_runs.db"):
        """
        Initialize progress store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS remediation_runs (
                run_id TEXT PRIMARY KEY,
                status TEXT NOT NULL DEFAULT 'running',
                total INTEGER,
                scanned INTEGER,
                updated INTEGER,
                skipped INTEGER,
                errored INTEGER,
                error_message TEXT,
                started_at TEXT NOT NULL,
                finished_at TEXT
            )
        """)

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS remediation_outcomes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL,
                record_id TEXT NOT NULL,
                outcome TEXT NOT NULL,
                error_message TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_outcomes_run_outcome
            ON remediation_outcomes(run_id, outcome)
        """)

        await self._conn.commit()
        logger.info("progress_store_initialized", db_path=self.db_path)

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get database connection."""
        if not self._conn:
            raise RuntimeError("ProgressStore not initialized")
        return self._conn

    async def start_run(self, run_id: str) -> None:
        """Mark a run as started."""
        now = datetime.now().isoformat()

        await self.conn.execute("""
            INSERT INTO remediation_runs (run_id, status, started_at)
            VALUES (?, 'running', ?)
            ON CONFLICT(run_id)
            DO UPDATE SET status = 'running', error_message = NULL,
                          started_at = ?, finished_at = NULL
        """, (run_id, now, now))
        await self.conn.commit()

    async def record_outcome(self, run_id: str, outcome: OutcomeRecord) -> None:
        """Record the outcome of one remediation attempt."""
        now = datetime.now().isoformat()

        await self.conn.execute("""
            INSERT INTO remediation_outcomes
            (run_id, record_id, outcome, error_message, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (run_id, outcome.record_id, outcome.outcome, outcome.error, now))
        await self.conn.commit()

    async def finish_run(self, summary: RunSummary) -> None:
        """Store final counts and mark a run as finished."""
        now = datetime.now().isoformat()
        status = "cursor_fault" if summary.cursor_fault else "completed"

        await self.conn.execute("""
            UPDATE remediation_runs
            SET status = ?, total = ?, scanned = ?, updated = ?, skipped = ?,
                errored = ?, error_message = ?, finished_at = ?
            WHERE run_id = ?
        """, (
            status, summary.total, summary.scanned, summary.updated,
            summary.skipped, summary.errored, summary.cursor_fault, now,
            summary.run_id,
        ))
        await self.conn.commit()

    async def fail_run(self, run_id: str, error: str) -> None:
        """Mark a run as failed."""
        now = datetime.now().isoformat()

        await self.conn.execute("""
            UPDATE remediation_runs
            SET status = 'failed', error_message = ?, finished_at = ?
            WHERE run_id = ?
        """, (error, now, run_id))
        await self.conn.commit()

    async def get_run(self, run_id: str) -> Optional[Dict]:
        """Get a run by ID."""
        cursor = await self.conn.execute("""
            SELECT * FROM remediation_runs WHERE run_id = ?
        """, (run_id,))
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def get_outcome_counts(self, run_id: str) -> Dict[str, int]:
        """Get per-outcome record counts for a run."""
        cursor = await self.conn.execute("""
            SELECT outcome, COUNT(*) as count
            FROM remediation_outcomes
            WHERE run_id = ?
            GROUP BY outcome
        """, (run_id,))
        rows = await cursor.fetchall()
        return {row['outcome']: row['count'] for row in rows}

    async def get_errored_records(self, run_id: str) -> List[Dict]:
        """Get errored records for a run, in scan order."""
        cursor = await self.conn.execute("""
            SELECT record_id, error_message, created_at
            FROM remediation_outcomes
            WHERE run_id = ? AND outcome = 'errored'
            ORDER BY id
        """, (run_id,))
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def list_runs(self, limit: int = 10) -> List[Dict]:
        """List the most recent runs."""
        cursor = await self.conn.execute("""
            SELECT * FROM remediation_runs
            ORDER BY started_at DESC
            LIMIT ?
        """, (limit,))
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def reset_run(self, run_id: str) -> int:
        """Delete a run and its outcomes. Returns the number of outcome rows removed."""
        cursor = await self.conn.execute("""
            DELETE FROM remediation_outcomes WHERE run_id = ?
        """, (run_id,))
        await self.conn.execute("""
            DELETE FROM remediation_runs WHERE run_id = ?
        """, (run_id,))
        await self.conn.commit()
        return cursor.rowcount

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("progress_store_closed")
