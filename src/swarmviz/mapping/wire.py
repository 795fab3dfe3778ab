"""Translate internal records into wire models, and compute aggregates."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from swarmviz.protocol import (
    Agent,
    AgentCostEntry,
    AgentMessage,
    MergeQueueEntry,
    SwarmMetrics,
    TokenUsage,
    ToolEventData,
)
from swarmviz.records import (
    ACTIVE_STATES,
    AgentSession,
    MailMessage,
    MergeEntry,
    MetricsSession,
    SwarmEvent,
    TokenSnapshot,
)

KNOWN_CAPABILITIES: frozenset[str] = frozenset(
    {"coordinator", "lead", "scout", "builder", "reviewer", "merger"}
)
FALLBACK_CAPABILITY = "builder"

# Checked in order; first substring hit wins
_MODEL_FAMILIES = ("opus", "sonnet", "haiku", "gpt-4", "gpt-3")


def to_epoch_ms(timestamp: str | None) -> int:
    """Convert a stored ISO-8601 timestamp to epoch milliseconds.

    Naive timestamps are read as UTC. Unparseable input yields 0.
    """
    if not timestamp:
        return 0
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def to_agent(session: AgentSession) -> Agent:
    """Map a session record to the wire ``Agent``.

    Unknown capabilities (written by a newer upstream) become ``builder``,
    and an empty task id becomes ``None``.
    """
    capability = (
        session.capability
        if session.capability in KNOWN_CAPABILITIES
        else FALLBACK_CAPABILITY
    )
    return Agent(
        name=session.agent_name,
        capability=capability,
        state=session.state,
        parent_agent=session.parent_agent,
        depth=session.depth,
        bead_id=session.bead_id or None,
        last_activity=to_epoch_ms(session.last_activity),
    )


def to_agent_message(message: MailMessage) -> AgentMessage:
    return AgentMessage(
        id=message.id,
        from_agent=message.from_agent,
        to_agent=message.to_agent,
        type=message.type,
        priority=message.priority,
        subject=message.subject,
        created_at=to_epoch_ms(message.created_at),
    )


def to_merge_entry(entry: MergeEntry) -> MergeQueueEntry:
    return MergeQueueEntry(
        branch_name=entry.branch_name,
        agent_name=entry.agent_name,
        status=entry.status,
        files_modified=list(entry.files_modified),
    )


def to_tool_event(event: SwarmEvent) -> ToolEventData:
    return ToolEventData(
        agent_name=event.agent_name,
        tool_name=event.tool_name,
        event_type=event.event_type,
        created_at=event.created_at,
    )


def to_token_usage(snapshot: TokenSnapshot) -> TokenUsage:
    return TokenUsage(
        id=snapshot.id,
        agent_name=snapshot.agent_name,
        input_tokens=snapshot.input_tokens,
        output_tokens=snapshot.output_tokens,
        cache_read_tokens=snapshot.cache_read_tokens,
        cache_creation_tokens=snapshot.cache_creation_tokens,
        estimated_cost_usd=snapshot.estimated_cost_usd,
        model_used=snapshot.model_used,
        created_at=snapshot.created_at,
    )


def model_shorthand(model: str | None) -> str:
    """Reduce a model identifier to a short family name for the leaderboard."""
    if not model:
        return ""
    lowered = model.lower()
    for family in _MODEL_FAMILIES:
        if family in lowered:
            return family
    return model[:8]


def compute_metrics(
    sessions: Iterable[AgentSession],
    total_messages: int,
    metrics_sessions: Iterable[MetricsSession],
    cost_per_minute: float = 0.0,
) -> SwarmMetrics:
    """Aggregate the HUD metrics from the current source state.

    Costs and tokens are summed per agent across all metrics records; a null
    cost counts as zero. The most recent non-null model per agent is kept.
    ``cost_per_minute`` is computed elsewhere and passed straight through.
    """
    sessions = list(sessions)
    active = sum(1 for s in sessions if s.state in ACTIVE_STATES)

    ledger: dict[str, AgentCostEntry] = {}
    for record in metrics_sessions:
        entry = ledger.get(record.agent_name)
        if entry is None:
            entry = AgentCostEntry(
                agent_name=record.agent_name,
                capability=record.capability,
            )
            ledger[record.agent_name] = entry
        entry.capability = record.capability
        entry.cost_usd += record.estimated_cost_usd or 0.0
        entry.input_tokens += record.input_tokens
        entry.output_tokens += record.output_tokens
        entry.cache_read_tokens += record.cache_read_tokens
        if record.model_used:
            entry.model_used = model_shorthand(record.model_used)

    agent_costs = sorted(ledger.values(), key=lambda e: e.cost_usd, reverse=True)

    return SwarmMetrics(
        total_agents=len(sessions),
        active_agents=active,
        total_messages=total_messages,
        total_cost=sum(e.cost_usd for e in agent_costs),
        total_input_tokens=sum(e.input_tokens for e in agent_costs),
        total_output_tokens=sum(e.output_tokens for e in agent_costs),
        total_cache_read_tokens=sum(e.cache_read_tokens for e in agent_costs),
        cost_per_minute=cost_per_minute,
        agent_costs=agent_costs,
    )
