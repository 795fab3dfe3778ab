"""Synthetic provider: the demo simulator behind the provider interface."""

from __future__ import annotations

from swarmviz.protocol import DashboardMode
from swarmviz.records import (
    ACTIVE_STATES,
    AgentSession,
    MailMessage,
    MergeEntry,
    MetricsSession,
    SwarmEvent,
    TokenSnapshot,
)
from swarmviz.simulator import SwarmSimulator

_NO_STORES = {
    "sessions": False,
    "mail": False,
    "mergeQueue": False,
    "metrics": False,
    "events": False,
}


class SyntheticProvider:
    """Serves the scripted demo swarm. Has no event stream or token snapshots."""

    def __init__(self, simulator: SwarmSimulator | None = None) -> None:
        self._simulator = simulator or SwarmSimulator()

    @property
    def mode(self) -> DashboardMode:
        return "demo"

    @property
    def name(self) -> str | None:
        return None

    @property
    def simulator(self) -> SwarmSimulator:
        return self._simulator

    def tick(self) -> None:
        self._simulator.tick()

    def sessions(self) -> list[AgentSession]:
        return self._simulator.sessions()

    def active_agent_count(self) -> int:
        return sum(1 for s in self._simulator.sessions() if s.state in ACTIVE_STATES)

    def recent_messages(self, limit: int) -> list[MailMessage]:
        return self._simulator.recent_messages(limit)

    def messages_since(self, since: str) -> list[MailMessage]:
        return self._simulator.messages_since(since)

    def message_count(self) -> int:
        return self._simulator.message_count()

    def merge_queue(self) -> list[MergeEntry]:
        return self._simulator.merge_queue()

    def metrics_sessions(self) -> list[MetricsSession]:
        return self._simulator.metrics_sessions()

    def token_snapshots(self) -> list[TokenSnapshot]:
        return []

    def recent_events(self, limit: int) -> list[SwarmEvent]:
        return []

    def events_after(self, after_id: int) -> list[SwarmEvent]:
        return []

    def max_event_id(self) -> int:
        return 0

    def store_status(self) -> dict[str, bool]:
        return dict(_NO_STORES)

    def close(self) -> None:
        pass
