"""Daily search quota ledger.

The video index grants a fixed number of quota units per day (10,000 on the
free tier) and resets at midnight Pacific time. Every paid call is checked
against the ledger before it is made and debited after it succeeds. Rows are
keyed by quota day, so a new day starts from zero without a reset job.

Quota Budget (10,000 units/day):
- search.list: 100 units
- videos.list: 1 unit (batched, 50 per request)
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from bjj_curator.services.errors import QuotaExhaustedError
from bjj_curator.utils.database import Database, utc_now

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 10000
DEFAULT_TIMEZONE = "America/Los_Angeles"


@dataclass
class QuotaUsage:
    """Quota consumption for one quota day."""

    date: str
    units_used: int
    units_limit: int
    exhausted: bool = False
    exhausted_reason: Optional[str] = None
    search_calls: int = 0
    detail_calls: int = 0

    @property
    def units_remaining(self) -> int:
        return max(0, self.units_limit - self.units_used)

    @property
    def percent_used(self) -> float:
        if self.units_limit <= 0:
            return 100.0
        return round(self.units_used / self.units_limit * 100, 1)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["units_remaining"] = self.units_remaining
        data["percent_used"] = self.percent_used
        return data


def _row_to_usage(row) -> QuotaUsage:
    return QuotaUsage(
        date=row["date"],
        units_used=row["units_used"],
        units_limit=row["units_limit"],
        exhausted=bool(row["exhausted"]),
        exhausted_reason=row["exhausted_reason"],
        search_calls=row["search_calls"],
        detail_calls=row["detail_calls"],
    )


class QuotaLedger:
    """Persistent per-day quota accounting shared by all processes."""

    def __init__(
        self,
        database: Database,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        timezone_name: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the ledger.

        Args:
            database: Connected curation database
            daily_limit: Quota units available per day
            timezone_name: Timezone in which the provider's quota day rolls over
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.database = database
        self.daily_limit = daily_limit
        self.tz = ZoneInfo(timezone_name)
        self.clock = clock

    def quota_date(self) -> str:
        """Current quota day as YYYY-MM-DD in the provider's timezone."""
        return self.clock().astimezone(self.tz).date().isoformat()

    async def _ensure_row(self, date: str) -> None:
        conn = self.database.connection
        await conn.execute(
            "INSERT OR IGNORE INTO quota_usage (date, units_used, units_limit, updated_at) "
            "VALUES (?, 0, ?, ?)",
            (date, self.daily_limit, utc_now().isoformat()),
        )
        await conn.commit()

    async def usage(self) -> QuotaUsage:
        """Get today's quota usage."""
        date = self.quota_date()
        await self._ensure_row(date)
        async with self.database.connection.execute(
            "SELECT * FROM quota_usage WHERE date = ?", (date,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_usage(row)

    async def remaining(self, safety_ratio: float = 1.0) -> int:
        """Units that may still be spent today.

        Args:
            safety_ratio: Fraction of the daily limit treated as spendable

        Returns:
            Remaining units, 0 once the day is marked exhausted
        """
        usage = await self.usage()
        if usage.exhausted:
            return 0
        spendable = int(usage.units_limit * safety_ratio)
        return max(0, spendable - usage.units_used)

    async def ensure_available(self, cost: int) -> None:
        """Raise unless a call costing ``cost`` units fits in today's budget.

        Raises:
            QuotaExhaustedError: If the call would exceed the ceiling
        """
        remaining = await self.remaining()
        if remaining < cost:
            raise QuotaExhaustedError(
                f"Quota exhausted: {cost} units needed, {remaining} remaining",
                remaining=remaining,
            )

    async def debit(self, cost: int, kind: str = "search") -> QuotaUsage:
        """Record units spent by a successful call.

        Consumption is clamped at the daily limit so the ledger never reports
        more usage than the ceiling allows.

        Args:
            cost: Units to debit
            kind: "search" or "detail", for per-call counters
        """
        date = self.quota_date()
        await self._ensure_row(date)
        column = "search_calls" if kind == "search" else "detail_calls"
        conn = self.database.connection
        await conn.execute(
            f"UPDATE quota_usage SET units_used = MIN(units_limit, units_used + ?), "
            f"{column} = {column} + 1, updated_at = ? WHERE date = ?",
            (cost, utc_now().isoformat(), date),
        )
        await conn.commit()
        usage = await self.usage()
        logger.debug(f"Debited {cost} quota units ({kind}): {usage.units_used}/{usage.units_limit}")
        return usage

    async def mark_exhausted(self, reason: str = "Provider reported quota exceeded") -> None:
        """Mark today's quota exhausted after the provider refuses a call."""
        date = self.quota_date()
        await self._ensure_row(date)
        conn = self.database.connection
        await conn.execute(
            "UPDATE quota_usage SET exhausted = 1, exhausted_reason = ?, updated_at = ? WHERE date = ?",
            (reason, utc_now().isoformat(), date),
        )
        await conn.commit()
        logger.warning(f"Quota marked exhausted for {date}: {reason}")

    async def history(self, days: int = 7) -> list[QuotaUsage]:
        """Recent quota days, newest first."""
        async with self.database.connection.execute(
            "SELECT * FROM quota_usage ORDER BY date DESC LIMIT ?", (days,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_usage(row) for row in rows]
