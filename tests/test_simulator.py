"""Tests for the scripted demo simulator."""

from __future__ import annotations

import random

import pytest

from swarmviz.simulator import (
    CYCLE_DURATION_MS,
    MESSAGE_HISTORY,
    SIM_MODEL,
    TASK_POOL,
    AddMessage,
    SwarmSimulator,
    build_timeline,
    iso_timestamp,
    task_names,
)


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000.0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def simulator(clock: FakeClock) -> SwarmSimulator:
    return SwarmSimulator(clock=clock, rng=random.Random(7))


class TestTimeline:
    """Tests for the static script."""

    def test_offsets_non_decreasing(self) -> None:
        offsets = [e.offset_ms for e in build_timeline("a", "b")]
        assert offsets == sorted(offsets)

    def test_fits_in_cycle(self) -> None:
        assert build_timeline("a", "b")[-1].offset_ms < CYCLE_DURATION_MS

    def test_task_names_round_robin(self) -> None:
        """Consecutive cycles draw consecutive pool entries, wrapping around."""
        assert task_names(0) == (TASK_POOL[0], TASK_POOL[1])
        assert task_names(1) == (TASK_POOL[1], TASK_POOL[2])
        assert task_names(len(TASK_POOL) - 1) == (TASK_POOL[-1], TASK_POOL[0])

    def test_iso_timestamp_format(self) -> None:
        assert iso_timestamp(0.25) == "1970-01-01T00:00:00.250Z"


class TestTick:
    """Tests for timeline replay."""

    def test_nothing_before_first_tick(self, simulator: SwarmSimulator) -> None:
        assert simulator.sessions() == []

    def test_first_tick_spawns_coordinator(self, simulator: SwarmSimulator) -> None:
        simulator.tick()
        sessions = simulator.sessions()
        assert [s.agent_name for s in sessions] == ["coordinator"]
        assert sessions[0].state == "booting"
        assert sessions[0].depth == 0
        assert sessions[0].parent_agent is None

    def test_events_fire_once_in_order(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        """Each elapsed event fires exactly once; the cursor only moves forward."""
        clock.advance_ms(4_000)
        simulator.tick()
        first_cursor = simulator.cursor
        first_count = simulator.message_count()
        assert first_count == 2

        simulator.tick()
        assert simulator.cursor == first_cursor
        assert simulator.message_count() == first_count

    def test_catches_up_after_long_gap(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        """Events are never skipped even if ticks are sparse."""
        clock.advance_ms(30_000)
        simulator.tick()
        expected = [e for e in simulator.timeline if e.offset_ms <= 30_000]
        assert simulator.cursor == len(expected)
        messages = sum(1 for e in expected if isinstance(e, AddMessage))
        assert simulator.message_count() == messages

    def test_state_change_updates_activity(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        simulator.tick()
        clock.advance_ms(2_000)
        simulator.tick()
        coordinator = simulator.sessions()[0]
        assert coordinator.state == "working"
        assert coordinator.last_activity == iso_timestamp(clock.now)

    def test_merge_queue_lifecycle(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        """Merges enqueue as pending, go merging, then disappear."""
        clock.advance_ms(73_000)
        simulator.tick()
        queue = simulator.merge_queue()
        assert len(queue) == 1
        assert queue[0].status == "pending"
        assert queue[0].agent_name == "srv-builder-1"

        clock.advance_ms(88_000 - 73_000)
        simulator.tick()
        statuses = {e.agent_name: e.status for e in simulator.merge_queue()}
        assert statuses["srv-builder-1"] == "merging"

        clock.advance_ms(97_000 - 88_000)
        simulator.tick()
        assert simulator.merge_queue() == []


class TestMessages:
    """Tests for the message query surface."""

    def test_messages_since(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        clock.advance_ms(3_000)
        simulator.tick()
        cursor = simulator.recent_messages(50)[-1].created_at

        clock.advance_ms(1_000)
        simulator.tick()
        newer = simulator.messages_since(cursor)
        assert [m.subject for m in newer] == [f"Dispatch: {TASK_POOL[1]}"]

    def test_recent_messages_limit(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        clock.advance_ms(50_000)
        simulator.tick()
        recent = simulator.recent_messages(3)
        assert len(recent) == 3
        assert recent == simulator.recent_messages(50)[-3:]


class TestCycleReset:
    """Tests for the end-of-cycle reset."""

    def test_reset_archives_agents(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        clock.advance_ms(60_000)
        simulator.tick()
        in_flight = len(simulator.sessions())

        clock.advance_ms(CYCLE_DURATION_MS)
        simulator.tick()
        assert simulator.cycle == 1
        assert simulator.cursor == 0
        assert simulator.sessions() == []
        assert simulator.merge_queue() == []

        archived = simulator.metrics_sessions()
        assert len(archived) == in_flight
        for record in archived:
            assert record.model_used == SIM_MODEL
            assert 10_000 <= record.input_tokens < 60_000
            assert 5_000 <= record.output_tokens < 25_000
            assert 0.05 <= record.estimated_cost_usd < 0.45
            assert record.exit_code == 0

    def test_new_cycle_uses_next_task_names(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        clock.advance_ms(CYCLE_DURATION_MS)
        simulator.tick()
        simulator.tick()
        coordinator = simulator.sessions()[0]
        assert coordinator.bead_id == TASK_POOL[1]

    def test_message_history_is_bounded(self, simulator: SwarmSimulator, clock: FakeClock) -> None:
        """Messages survive resets but only the newest are kept."""
        for _ in range(5):
            clock.advance_ms(CYCLE_DURATION_MS - 5_000)
            simulator.tick()
            clock.advance_ms(10_000)
            simulator.tick()
        assert simulator.cycle == 5
        assert simulator.message_count() <= MESSAGE_HISTORY
        assert simulator.message_count() > 0
