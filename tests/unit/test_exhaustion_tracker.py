"""Unit tests for per-source exhaustion tracking."""

import pytest

from bjj_curator.services.exhaustion_tracker import ExhaustionTracker


@pytest.fixture
def tracker(database, clock):
    return ExhaustionTracker(database, trigger_count=3, cooldown_days=30, clock=clock)


class TestExhaustionTracker:
    @pytest.mark.asyncio
    async def test_unknown_source_is_eligible(self, tracker):
        assert await tracker.is_eligible("Gordon Ryan")
        assert await tracker.get_state("Gordon Ryan") is None

    @pytest.mark.asyncio
    async def test_cooldown_starts_at_trigger_count(self, tracker, clock):
        await tracker.record_empty_search("Gordon Ryan")
        state = await tracker.record_empty_search("Gordon Ryan")
        assert state.consecutive_empty == 2
        assert state.cooldown_until is None
        assert await tracker.is_eligible("Gordon Ryan")

        state = await tracker.record_empty_search("Gordon Ryan")
        assert state.consecutive_empty == 3
        assert state.cooldown_until is not None
        assert not await tracker.is_eligible("gordon ryan")
        assert await tracker.cooling_sources() == {"gordon ryan"}

    @pytest.mark.asyncio
    async def test_keys_are_case_folded(self, tracker):
        await tracker.record_empty_search("Knee Slice Pass")
        await tracker.record_empty_search("knee  slice pass")
        state = await tracker.get_state("KNEE SLICE PASS")
        assert state.consecutive_empty == 2
        assert state.display_name == "Knee Slice Pass"

    @pytest.mark.asyncio
    async def test_success_resets_counter_and_cooldown(self, tracker):
        for _ in range(3):
            await tracker.record_empty_search("armbar")
        await tracker.record_success("armbar")

        state = await tracker.get_state("armbar")
        assert state.consecutive_empty == 0
        assert state.cooldown_until is None
        assert await tracker.is_eligible("armbar")

    @pytest.mark.asyncio
    async def test_success_for_unknown_source_is_noop(self, tracker):
        await tracker.record_success("never searched")
        assert await tracker.get_state("never searched") is None

    @pytest.mark.asyncio
    async def test_cooldown_expires(self, tracker, clock):
        for _ in range(3):
            await tracker.record_empty_search("armbar")

        clock.advance(days=29)
        assert not await tracker.is_eligible("armbar")

        clock.advance(days=2)
        assert await tracker.is_eligible("armbar")
        assert await tracker.cooling_sources() == set()

    @pytest.mark.asyncio
    async def test_empty_search_after_expiry_restarts_cooldown(self, tracker, clock):
        for _ in range(3):
            await tracker.record_empty_search("armbar")
        clock.advance(days=31)

        state = await tracker.record_empty_search("armbar")

        assert state.consecutive_empty == 4
        assert state.is_cooling_down(clock())
        assert not await tracker.is_eligible("armbar")

    @pytest.mark.asyncio
    async def test_empty_search_during_cooldown_keeps_deadline(self, tracker, clock):
        for _ in range(3):
            await tracker.record_empty_search("armbar")
        first_deadline = (await tracker.get_state("armbar")).cooldown_until

        clock.advance(days=1)
        state = await tracker.record_empty_search("armbar")

        assert state.cooldown_until == first_deadline

    @pytest.mark.asyncio
    async def test_list_states(self, tracker):
        for _ in range(3):
            await tracker.record_empty_search("armbar")
        await tracker.record_empty_search("kimura")

        states = await tracker.list_states()
        assert [s.source for s in states] == ["armbar", "kimura"]

        cooling = await tracker.list_states(only_cooling=True)
        assert [s.source for s in cooling] == ["armbar"]
        assert cooling[0].to_dict()["consecutive_empty"] == 3

    @pytest.mark.asyncio
    async def test_clear_one_and_all(self, tracker):
        await tracker.record_empty_search("armbar")
        await tracker.record_empty_search("kimura")
        await tracker.record_empty_search("triangle choke")

        assert await tracker.clear("Armbar") == 1
        assert await tracker.clear("armbar") == 0
        assert await tracker.clear() == 2
        assert await tracker.list_states() == []
