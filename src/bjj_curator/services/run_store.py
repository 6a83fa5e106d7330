"""SQLite-backed storage for curation runs.

The ``active`` column plus its partial unique index means the database
itself refuses a second pending/running run, whichever process asks.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

import aiosqlite

from bjj_curator.models.curation_run import (
    ACTIVE_STATUSES,
    CurationRun,
    RunStatus,
    RunSummary,
    RunType,
)
from bjj_curator.services.errors import RunNotEligibleError
from bjj_curator.utils.database import Database, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class RunStore:
    """Async CRUD for CurationRun rows."""

    def __init__(self, database: Database):
        self.database = database

    async def create_run(self, run_type: RunType) -> CurationRun:
        """Insert a new pending run.

        Raises:
            RunNotEligibleError: If another run is already pending or running
        """
        run_id = str(uuid.uuid4())
        now = utc_now().isoformat()
        conn = self.database.connection

        try:
            await conn.execute(
                "INSERT INTO curation_runs (id, run_type, status, active, created_at) VALUES (?, ?, ?, 1, ?)",
                (run_id, run_type.value, RunStatus.PENDING.value, now),
            )
            await conn.commit()
        except aiosqlite.IntegrityError as e:
            await conn.rollback()
            raise RunNotEligibleError("A curation run is already active") from e

        logger.info(f"Created {run_type.value} curation run {run_id}")
        return await self.get_run(run_id)

    async def mark_running(self, run_id: str) -> bool:
        conn = self.database.connection
        cursor = await conn.execute(
            "UPDATE curation_runs SET status = ?, started_at = ? WHERE id = ? AND status = ?",
            (RunStatus.RUNNING.value, utc_now().isoformat(), run_id, RunStatus.PENDING.value),
        )
        await conn.commit()
        return cursor.rowcount == 1

    async def close_run(
        self,
        run_id: str,
        status: RunStatus,
        summary: RunSummary,
        error: Optional[str] = None,
        acceptance_rate: Optional[float] = None,
        guardrail_status: Optional[str] = None,
    ) -> bool:
        """Move an active run to a terminal status.

        The update only matches active rows, so closing twice is a no-op.

        Returns:
            True if this call closed the run, False if it was already closed
        """
        conn = self.database.connection
        placeholders = ", ".join("?" for _ in ACTIVE_STATUSES)
        cursor = await conn.execute(
            f"""
            UPDATE curation_runs SET
                status = ?, active = 0, completed_at = ?, error_message = ?,
                videos_screened = ?, videos_analyzed = ?, videos_added = ?, videos_rejected = ?,
                videos_skipped_duration = ?, videos_skipped_duplicates = ?,
                videos_skipped_quota = ?, videos_skipped_other = ?,
                searches_performed = ?, searches_failed = ?, quota_used = ?,
                acceptance_rate = ?, guardrail_status = ?
            WHERE id = ? AND status IN ({placeholders})
            """,
            (
                status.value,
                utc_now().isoformat(),
                error,
                summary.analyzed,
                summary.analyzed,
                summary.added,
                summary.rejected,
                summary.skipped_duration,
                summary.skipped_duplicates,
                summary.skipped_quota,
                summary.skipped_other,
                summary.searches_performed,
                summary.searches_failed,
                summary.quota_used,
                acceptance_rate,
                guardrail_status,
                run_id,
                *ACTIVE_STATUSES,
            ),
        )
        await conn.commit()
        return cursor.rowcount == 1

    async def get_run(self, run_id: str) -> Optional[CurationRun]:
        async with self.database.connection.execute(
            "SELECT * FROM curation_runs WHERE id = ?", (run_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_run(row) if row else None

    async def get_active_run(self) -> Optional[CurationRun]:
        async with self.database.connection.execute(
            "SELECT * FROM curation_runs WHERE active = 1 LIMIT 1"
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_run(row) if row else None

    async def get_last_run(self, run_type: Optional[RunType] = None) -> Optional[CurationRun]:
        runs = await self.list_runs(limit=1, run_type=run_type)
        return runs[0] if runs else None

    async def list_runs(
        self,
        limit: int = 20,
        status: Optional[RunStatus] = None,
        run_type: Optional[RunType] = None,
    ) -> list[CurationRun]:
        """List runs newest first, with optional filters."""
        query = "SELECT * FROM curation_runs WHERE 1=1"
        params: list[Any] = []

        if status:
            query += " AND status = ?"
            params.append(status.value)
        if run_type:
            query += " AND run_type = ?"
            params.append(run_type.value)

        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        async with self.database.connection.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_run(row) for row in rows]

    async def find_stale_runs(self, max_age: timedelta, now: Optional[datetime] = None) -> list[CurationRun]:
        """Active runs created longer than ``max_age`` ago."""
        now = now or utc_now()
        async with self.database.connection.execute(
            "SELECT * FROM curation_runs WHERE active = 1"
        ) as cursor:
            rows = await cursor.fetchall()
        stale = []
        for row in rows:
            run = self._row_to_run(row)
            started = parse_timestamp(run.started_at or run.created_at)
            if started is not None and now - started > max_age:
                stale.append(run)
        return stale

    async def aggregate_stats(self, since: Optional[datetime] = None) -> dict[str, Any]:
        """Totals across runs, optionally only those created after ``since``."""
        query = """
            SELECT COUNT(*) AS total_runs,
                   SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed_runs,
                   SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) AS failed_runs,
                   COALESCE(SUM(videos_analyzed), 0) AS videos_analyzed,
                   COALESCE(SUM(videos_added), 0) AS videos_added,
                   COALESCE(SUM(videos_rejected), 0) AS videos_rejected,
                   COALESCE(SUM(videos_skipped_duplicates), 0) AS videos_skipped_duplicates,
                   COALESCE(SUM(quota_used), 0) AS quota_used
            FROM curation_runs
        """
        params: list[Any] = []
        if since is not None:
            query += " WHERE created_at >= ?"
            params.append(since.isoformat())

        async with self.database.connection.execute(query, params) as cursor:
            row = await cursor.fetchone()

        stats = {key: (row[key] or 0) for key in row.keys()}
        analyzed = stats["videos_analyzed"]
        stats["approval_rate"] = round(stats["videos_added"] / analyzed * 100, 2) if analyzed else 0.0
        return stats

    def _row_to_run(self, row: aiosqlite.Row) -> CurationRun:
        return CurationRun(
            id=row["id"],
            run_type=RunType(row["run_type"]),
            status=RunStatus(row["status"]),
            created_at=row["created_at"],
            videos_screened=row["videos_screened"],
            videos_analyzed=row["videos_analyzed"],
            videos_added=row["videos_added"],
            videos_rejected=row["videos_rejected"],
            videos_skipped_duration=row["videos_skipped_duration"],
            videos_skipped_duplicates=row["videos_skipped_duplicates"],
            videos_skipped_quota=row["videos_skipped_quota"],
            videos_skipped_other=row["videos_skipped_other"],
            searches_performed=row["searches_performed"],
            searches_failed=row["searches_failed"],
            quota_used=row["quota_used"],
            acceptance_rate=row["acceptance_rate"],
            guardrail_status=row["guardrail_status"],
            error_message=row["error_message"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )
