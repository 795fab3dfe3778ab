"""The data provider contract shared by live and demo sources."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from swarmviz.protocol import DashboardMode
from swarmviz.records import (
    AgentSession,
    MailMessage,
    MergeEntry,
    MetricsSession,
    SwarmEvent,
    TokenSnapshot,
)


@runtime_checkable
class DataProvider(Protocol):
    """Uniform query surface over one source of swarm state.

    Two implementations exist: ``LiveProvider`` (read-only stores of one
    discovered instance) and ``SyntheticProvider`` (the scripted simulator).
    Query methods never raise; unavailable data reads as empty.
    """

    @property
    def mode(self) -> DashboardMode:
        """``"live"`` or ``"demo"``."""
        ...

    @property
    def name(self) -> str | None:
        """Instance name in live mode, None in demo mode."""
        ...

    def tick(self) -> None:
        """Advance any internal clock-driven state (once per poll)."""
        ...

    def sessions(self) -> list[AgentSession]: ...

    def recent_messages(self, limit: int) -> list[MailMessage]:
        """The newest ``limit`` messages, oldest first."""
        ...

    def messages_since(self, since: str) -> list[MailMessage]:
        """Messages with ``created_at`` strictly after ``since``, oldest first."""
        ...

    def message_count(self) -> int: ...

    def merge_queue(self) -> list[MergeEntry]: ...

    def metrics_sessions(self) -> list[MetricsSession]: ...

    def token_snapshots(self) -> list[TokenSnapshot]: ...

    def recent_events(self, limit: int) -> list[SwarmEvent]:
        """The newest ``limit`` events, oldest first."""
        ...

    def events_after(self, after_id: int) -> list[SwarmEvent]:
        """Events with ``id > after_id`` ascending. Does not move any cursor."""
        ...

    def max_event_id(self) -> int: ...

    def store_status(self) -> dict[str, bool]:
        """Availability per underlying store, for the health endpoint."""
        ...

    def active_agent_count(self) -> int: ...

    def close(self) -> None:
        """Release every resource held by the provider."""
        ...
