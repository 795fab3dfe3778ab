"""Per-client delta computation.

Each connected client has a ``ClientTracker`` recording what it has already
seen. On every tick the engine compares the current source state against the
tracker, emits updates for what changed, then replaces the tracker wholesale
with the current values.

Updates for one client within one tick are always ordered: agents, messages,
merge queue, events, metrics.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Protocol

from swarmviz.logging import TRACE, get_logger
from swarmviz.mapping import (
    compute_metrics,
    to_agent,
    to_agent_message,
    to_merge_entry,
    to_tool_event,
)
from swarmviz.protocol import StateSnapshot, StateUpdate, SwarmMetrics
from swarmviz.records import (
    AgentSession,
    MailMessage,
    MergeEntry,
    MetricsSession,
    SwarmEvent,
)

log = get_logger("delta")

# Metrics fields that trigger a metrics update. Agent and message counts move
# with their own updates and are left out. The rate is rounded, so its decay
# settles after a few dozen ticks.
_METRICS_PRINT_FIELDS = {
    "total_cost",
    "cost_per_minute",
    "total_input_tokens",
    "total_output_tokens",
    "total_cache_read_tokens",
    "agent_costs",
}


class QuerySource(Protocol):
    """The subset of the provider surface the engine reads."""

    def sessions(self) -> list[AgentSession]: ...

    def recent_messages(self, limit: int) -> list[MailMessage]: ...

    def messages_since(self, since: str) -> list[MailMessage]: ...

    def message_count(self) -> int: ...

    def merge_queue(self) -> list[MergeEntry]: ...

    def metrics_sessions(self) -> list[MetricsSession]: ...

    def events_after(self, after_id: int) -> list[SwarmEvent]: ...

    def max_event_id(self) -> int: ...


def agent_fingerprint(session: AgentSession) -> str:
    """Change fingerprint of an agent: state, last activity, escalation."""
    return f"{session.state}|{session.last_activity}|{session.escalation_level}"


def metrics_fingerprint(metrics: SwarmMetrics) -> str:
    return json.dumps(
        metrics.model_dump(include=_METRICS_PRINT_FIELDS, mode="json"),
        sort_keys=True,
    )


@dataclass
class SourceFrame:
    """Source state shared by every client for one tick."""

    sessions: list[AgentSession]
    merge_queue: list[MergeEntry]
    metrics: SwarmMetrics


def capture_frame(source: QuerySource, cost_per_minute: float = 0.0) -> SourceFrame:
    """Query the shared parts of the source once for the whole tick."""
    sessions = source.sessions()
    metrics = compute_metrics(
        sessions, source.message_count(), source.metrics_sessions(), cost_per_minute
    )
    return SourceFrame(sessions=sessions, merge_queue=source.merge_queue(), metrics=metrics)


@dataclass
class ClientTracker:
    """What one client has seen so far."""

    agent_prints: dict[str, str] = field(default_factory=dict)  # agent name -> fingerprint
    last_message_at: str = ""
    merge_statuses: dict[str, str] = field(default_factory=dict)  # branch -> status
    metrics_print: str = ""
    last_event_id: int = 0


class DeltaEngine:
    """Builds snapshots and per-client update batches against one source.

    Trackers are keyed by connection id and owned by the engine.
    """

    def __init__(self, source: QuerySource, recent_messages: int = 50) -> None:
        self._source = source
        self._recent_messages = recent_messages
        self._trackers: dict[str, ClientTracker] = {}

    @property
    def tracked(self) -> list[str]:
        return list(self._trackers)

    def tracker(self, conn_id: str) -> ClientTracker | None:
        return self._trackers.get(conn_id)

    def _capture(self, cost_per_minute: float) -> tuple[StateSnapshot, ClientTracker]:
        frame = capture_frame(self._source, cost_per_minute)
        messages = self._source.recent_messages(self._recent_messages)
        snapshot = StateSnapshot(
            agents=[to_agent(s) for s in frame.sessions],
            messages=[to_agent_message(m) for m in messages],
            merge_queue=[to_merge_entry(e) for e in frame.merge_queue],
            metrics=frame.metrics,
        )
        tracker = ClientTracker(
            agent_prints={s.agent_name: agent_fingerprint(s) for s in frame.sessions},
            last_message_at=messages[-1].created_at if messages else "",
            merge_statuses={e.branch_name: e.status for e in frame.merge_queue},
            metrics_print=metrics_fingerprint(frame.metrics),
            last_event_id=self._source.max_event_id(),
        )
        return snapshot, tracker

    def build_snapshot(self, cost_per_minute: float = 0.0) -> StateSnapshot:
        """A full snapshot without registering a tracker."""
        snapshot, _ = self._capture(cost_per_minute)
        return snapshot

    def track(self, conn_id: str, cost_per_minute: float = 0.0) -> StateSnapshot:
        """Build a fresh snapshot and (re)initialize the client's tracker from it."""
        snapshot, tracker = self._capture(cost_per_minute)
        self._trackers[conn_id] = tracker
        return snapshot

    def forget(self, conn_id: str) -> None:
        self._trackers.pop(conn_id, None)

    def compute(self, conn_id: str, frame: SourceFrame) -> list[StateUpdate]:
        """Updates for one client since its last tick, then advance its tracker."""
        tracker = self._trackers.get(conn_id)
        if tracker is None:
            return []

        updates: list[StateUpdate] = []

        agent_prints: dict[str, str] = {}
        for session in frame.sessions:
            fingerprint = agent_fingerprint(session)
            agent_prints[session.agent_name] = fingerprint
            if tracker.agent_prints.get(session.agent_name) != fingerprint:
                updates.append(StateUpdate(type="agent_update", data=to_agent(session)))

        messages = self._source.messages_since(tracker.last_message_at)
        for message in messages:
            updates.append(StateUpdate(type="message_event", data=to_agent_message(message)))
        last_message_at = messages[-1].created_at if messages else tracker.last_message_at

        merge_statuses: dict[str, str] = {}
        for entry in frame.merge_queue:
            merge_statuses[entry.branch_name] = entry.status
            if tracker.merge_statuses.get(entry.branch_name) != entry.status:
                updates.append(StateUpdate(type="merge_update", data=to_merge_entry(entry)))

        events = self._source.events_after(tracker.last_event_id)
        for event in events:
            updates.append(StateUpdate(type="tool_event", data=to_tool_event(event)))
        last_event_id = max((e.id for e in events), default=tracker.last_event_id)

        metrics_print = metrics_fingerprint(frame.metrics)
        if metrics_print != tracker.metrics_print:
            updates.append(StateUpdate(type="metrics_update", data=frame.metrics))

        self._trackers[conn_id] = ClientTracker(
            agent_prints=agent_prints,
            last_message_at=last_message_at,
            merge_statuses=merge_statuses,
            metrics_print=metrics_print,
            last_event_id=last_event_id,
        )
        if updates:
            log.log(TRACE, "Client %s: %d update(s)", conn_id, len(updates))
        return updates
