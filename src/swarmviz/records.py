"""Internal domain records.

These are the shapes produced by the row mapper (from the observed stores)
and by the simulator. They never go over the wire directly; see
``swarmviz.protocol`` for the client-facing shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

AgentState = Literal["booting", "working", "completed", "stalled", "zombie"]

MessageType = Literal[
    "status",
    "question",
    "result",
    "error",
    "worker_done",
    "merge_ready",
    "merged",
    "merge_failed",
    "escalation",
    "health_check",
    "dispatch",
    "assign",
]

MessagePriority = Literal["low", "normal", "high", "urgent"]

MergeStatus = Literal["pending", "merging", "merged", "conflict", "failed"]
MergeTier = Literal["clean-merge", "auto-resolve", "ai-resolve", "reimagine"]

EventLevel = Literal["debug", "info", "warn", "error"]

# States counted as "active" for aggregates and liveness probes
ACTIVE_STATES: frozenset[str] = frozenset({"working", "booting"})


@dataclass
class AgentSession:
    """One agent's lifecycle record.

    ``depth == 0`` iff ``parent_agent is None``; the tree is formed by
    parent references.
    """

    id: str
    agent_name: str
    capability: str
    worktree_path: str
    branch_name: str
    bead_id: str
    tmux_session: str
    state: AgentState
    pid: int | None
    parent_agent: str | None
    depth: int
    run_id: str | None
    started_at: str
    last_activity: str
    escalation_level: int
    stalled_since: str | None


@dataclass
class MailMessage:
    """One inter-agent mail record. Immutable once written upstream."""

    id: str
    from_agent: str
    to_agent: str
    subject: str
    body: str
    type: MessageType
    priority: MessagePriority
    thread_id: str | None
    read: bool
    created_at: str


@dataclass
class MergeEntry:
    """A pending integration unit as stored in the merge queue."""

    id: int
    branch_name: str
    bead_id: str
    agent_name: str
    files_modified: list[str] = field(default_factory=list)
    enqueued_at: str = ""
    status: MergeStatus = "pending"
    resolved_tier: MergeTier | None = None


@dataclass
class SwarmEvent:
    """One observability record. Ids are monotonic."""

    id: int
    run_id: str | None
    agent_name: str
    session_id: str | None
    event_type: str
    tool_name: str | None
    tool_args: str | None
    tool_duration_ms: int | None
    level: EventLevel
    data: str | None
    created_at: str


@dataclass
class MetricsSession:
    """Cost/usage record for one agent run.

    A null ``estimated_cost_usd`` counts as zero in aggregates.
    """

    agent_name: str
    bead_id: str
    capability: str
    started_at: str
    completed_at: str | None
    duration_ms: int
    exit_code: int | None
    merge_result: str | None
    parent_agent: str | None
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_creation_tokens: int
    estimated_cost_usd: float | None
    model_used: str | None


@dataclass
class TokenSnapshot:
    """Point-in-time token usage sample for a running agent."""

    id: int
    agent_name: str
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_creation_tokens: int
    estimated_cost_usd: float | None
    model_used: str | None
    created_at: str


@dataclass
class DiscoveredInstance:
    """A directory recognized as a valid source root.

    ``active`` is not tracked here; the source manager computes it when
    building dashboard state.
    """

    name: str
    path: str
    state_dir: str
    live_agents: int = 0
