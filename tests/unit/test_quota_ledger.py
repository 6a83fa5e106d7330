"""Unit tests for the daily quota ledger."""

from datetime import datetime, timezone

import pytest

from bjj_curator.services.errors import QuotaExhaustedError
from bjj_curator.services.quota_ledger import QuotaLedger


class TestQuotaDate:
    def test_quota_day_follows_pacific_time(self, database):
        """07:30 UTC on Jan 15 is still Jan 14 in Los Angeles."""
        ledger = QuotaLedger(database, clock=lambda: datetime(2026, 1, 15, 7, 30, tzinfo=timezone.utc))
        assert ledger.quota_date() == "2026-01-14"

    def test_quota_day_after_pacific_midnight(self, database):
        ledger = QuotaLedger(database, clock=lambda: datetime(2026, 1, 15, 8, 30, tzinfo=timezone.utc))
        assert ledger.quota_date() == "2026-01-15"


class TestQuotaLedger:
    @pytest.mark.asyncio
    async def test_fresh_day_has_full_quota(self, database, clock):
        ledger = QuotaLedger(database, daily_limit=1000, clock=clock)
        usage = await ledger.usage()
        assert usage.units_used == 0
        assert usage.units_remaining == 1000
        assert await ledger.remaining(safety_ratio=0.95) == 950

    @pytest.mark.asyncio
    async def test_debit_counts_calls(self, database, clock):
        ledger = QuotaLedger(database, daily_limit=1000, clock=clock)
        await ledger.debit(100, "search")
        usage = await ledger.debit(1, "detail")
        assert usage.units_used == 101
        assert usage.search_calls == 1
        assert usage.detail_calls == 1
        assert usage.percent_used == 10.1

    @pytest.mark.asyncio
    async def test_usage_never_exceeds_limit(self, database, clock):
        ledger = QuotaLedger(database, daily_limit=150, clock=clock)
        await ledger.debit(100)
        usage = await ledger.debit(100)
        assert usage.units_used == 150
        assert usage.units_remaining == 0

    @pytest.mark.asyncio
    async def test_ensure_available_raises_before_overspend(self, database, clock):
        ledger = QuotaLedger(database, daily_limit=150, clock=clock)
        await ledger.ensure_available(100)
        await ledger.debit(100)

        with pytest.raises(QuotaExhaustedError) as exc_info:
            await ledger.ensure_available(100)
        assert exc_info.value.remaining == 50

    @pytest.mark.asyncio
    async def test_mark_exhausted_zeroes_remaining(self, database, clock):
        ledger = QuotaLedger(database, daily_limit=1000, clock=clock)
        await ledger.mark_exhausted("quotaExceeded")

        assert await ledger.remaining() == 0
        usage = await ledger.usage()
        assert usage.exhausted is True
        assert usage.exhausted_reason == "quotaExceeded"
        with pytest.raises(QuotaExhaustedError):
            await ledger.ensure_available(1)

    @pytest.mark.asyncio
    async def test_new_day_starts_from_zero(self, database, clock):
        ledger = QuotaLedger(database, daily_limit=1000, clock=clock)
        await ledger.debit(900)
        await ledger.mark_exhausted()

        clock.advance(days=1)
        assert await ledger.remaining() == 1000

        history = await ledger.history()
        assert len(history) == 2
        assert history[0].units_used == 0
        assert history[1].units_used == 900
