"""Per-source exhaustion tracking.

A source (an instructor, or a technique when no instructor is targeted) that
keeps returning nothing new is put on cooldown so the run stops spending
search quota on it. Any successful search resets the counter.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from bjj_curator.utils.database import Database, parse_timestamp, utc_now
from bjj_curator.utils.text import normalize_source_key

logger = logging.getLogger(__name__)

DEFAULT_TRIGGER_COUNT = 5
DEFAULT_COOLDOWN_DAYS = 30


@dataclass
class ExhaustionState:
    source: str
    display_name: str
    consecutive_empty: int = 0
    cooldown_until: Optional[str] = None
    last_empty_at: Optional[str] = None
    updated_at: Optional[str] = None

    def is_cooling_down(self, now: datetime) -> bool:
        until = parse_timestamp(self.cooldown_until)
        return until is not None and until > now

    def to_dict(self) -> dict:
        return asdict(self)


class ExhaustionTracker:
    """Tracks consecutive empty searches per source in the database."""

    def __init__(
        self,
        database: Database,
        trigger_count: int = DEFAULT_TRIGGER_COUNT,
        cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the tracker.

        Args:
            database: Connected curation database
            trigger_count: Consecutive empty searches that start a cooldown
            cooldown_days: Length of a cooldown
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.database = database
        self.trigger_count = trigger_count
        self.cooldown = timedelta(days=cooldown_days)
        self.clock = clock

    async def get_state(self, source: str) -> Optional[ExhaustionState]:
        async with self.database.connection.execute(
            "SELECT * FROM source_exhaustion WHERE source = ?", (normalize_source_key(source),)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_state(row) if row else None

    async def record_empty_search(self, source: str) -> ExhaustionState:
        """Count an empty search; start a cooldown once the trigger is reached."""
        key = normalize_source_key(source)
        now = self.clock()
        conn = self.database.connection

        await conn.execute(
            """
            INSERT INTO source_exhaustion (source, display_name, consecutive_empty, last_empty_at, updated_at)
            VALUES (?, ?, 1, ?, ?)
            ON CONFLICT(source) DO UPDATE SET
                consecutive_empty = consecutive_empty + 1,
                last_empty_at = excluded.last_empty_at,
                updated_at = excluded.updated_at
            """,
            (key, source, now.isoformat(), now.isoformat()),
        )

        state = await self.get_state(key)
        if state.consecutive_empty >= self.trigger_count and not state.is_cooling_down(now):
            state.cooldown_until = (now + self.cooldown).isoformat()
            await conn.execute(
                "UPDATE source_exhaustion SET cooldown_until = ? WHERE source = ?",
                (state.cooldown_until, key),
            )
            logger.info(
                f"Source '{source}' exhausted after {state.consecutive_empty} empty searches, "
                f"cooling down until {state.cooldown_until}"
            )

        await conn.commit()
        return state

    async def record_success(self, source: str) -> None:
        """Reset the counter and clear any cooldown for a source."""
        key = normalize_source_key(source)
        conn = self.database.connection
        await conn.execute(
            "UPDATE source_exhaustion SET consecutive_empty = 0, cooldown_until = NULL, updated_at = ? "
            "WHERE source = ?",
            (self.clock().isoformat(), key),
        )
        await conn.commit()

    async def is_eligible(self, source: str) -> bool:
        """True unless the source is inside an active cooldown."""
        state = await self.get_state(source)
        return state is None or not state.is_cooling_down(self.clock())

    async def cooling_sources(self) -> set[str]:
        """Keys of all sources currently on cooldown."""
        async with self.database.connection.execute(
            "SELECT source FROM source_exhaustion WHERE cooldown_until IS NOT NULL AND cooldown_until > ?",
            (self.clock().isoformat(),),
        ) as cursor:
            rows = await cursor.fetchall()
        return {row["source"] for row in rows}

    async def list_states(self, only_cooling: bool = False) -> list[ExhaustionState]:
        async with self.database.connection.execute(
            "SELECT * FROM source_exhaustion ORDER BY consecutive_empty DESC, source ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        states = [self._row_to_state(row) for row in rows]
        if only_cooling:
            now = self.clock()
            states = [state for state in states if state.is_cooling_down(now)]
        return states

    async def clear(self, source: Optional[str] = None) -> int:
        """Clear exhaustion state for one source, or all sources.

        Returns:
            Number of rows cleared
        """
        conn = self.database.connection
        if source is None:
            cursor = await conn.execute("DELETE FROM source_exhaustion")
        else:
            cursor = await conn.execute(
                "DELETE FROM source_exhaustion WHERE source = ?", (normalize_source_key(source),)
            )
        await conn.commit()
        cleared = cursor.rowcount
        logger.info(f"Cleared exhaustion state for {source or 'all sources'} ({cleared} rows)")
        return cleared

    def _row_to_state(self, row) -> ExhaustionState:
        return ExhaustionState(
            source=row["source"],
            display_name=row["display_name"],
            consecutive_empty=row["consecutive_empty"],
            cooldown_until=row["cooldown_until"],
            last_empty_at=row["last_empty_at"],
            updated_at=row["updated_at"],
        )
