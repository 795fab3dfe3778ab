"""Wire protocol models (server -> client, JSON over websocket).

Field names are snake_case in Python and camelCase on the wire. Always
serialize with ``to_wire()`` so aliases are applied.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

AgentCapability = Literal["coordinator", "lead", "scout", "builder", "reviewer", "merger"]
DashboardMode = Literal["live", "demo"]


class WireModel(BaseModel):
    """Base model for wire types with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase aliases, ready for ``send_json``."""
        return self.model_dump(by_alias=True, mode="json")


class Agent(WireModel):
    """Visualization-layer agent."""

    name: str
    capability: AgentCapability
    state: str
    parent_agent: str | None = Field(default=None, alias="parentAgent")
    depth: int = 0
    bead_id: str | None = Field(default=None, alias="beadId")
    last_activity: int = Field(alias="lastActivity")  # epoch ms


class AgentMessage(WireModel):
    """Visualization-layer message."""

    id: str
    from_agent: str = Field(alias="from")
    to_agent: str = Field(alias="to")
    type: str
    priority: str
    subject: str
    created_at: int = Field(alias="createdAt")  # epoch ms


class MergeQueueEntry(WireModel):
    """Visualization-layer merge queue entry (no id or timestamps)."""

    branch_name: str = Field(alias="branchName")
    agent_name: str = Field(alias="agentName")
    status: str
    files_modified: list[str] = Field(default_factory=list, alias="filesModified")


class AgentCostEntry(WireModel):
    """Per-agent row of the cost leaderboard."""

    agent_name: str = Field(alias="agentName")
    capability: str
    model_used: str = Field(default="", alias="modelUsed")
    cost_usd: float = Field(default=0.0, alias="costUsd")
    input_tokens: int = Field(default=0, alias="inputTokens")
    output_tokens: int = Field(default=0, alias="outputTokens")
    cache_read_tokens: int = Field(default=0, alias="cacheReadTokens")


class SwarmMetrics(WireModel):
    """Aggregated swarm metrics displayed in the HUD."""

    total_agents: int = Field(default=0, alias="totalAgents")
    active_agents: int = Field(default=0, alias="activeAgents")
    total_messages: int = Field(default=0, alias="totalMessages")
    total_cost: float = Field(default=0.0, alias="totalCost")
    total_input_tokens: int = Field(default=0, alias="totalInputTokens")
    total_output_tokens: int = Field(default=0, alias="totalOutputTokens")
    total_cache_read_tokens: int = Field(default=0, alias="totalCacheReadTokens")
    cost_per_minute: float = Field(default=0.0, alias="costPerMinute")
    agent_costs: list[AgentCostEntry] = Field(default_factory=list, alias="agentCosts")


class ToolEventData(WireModel):
    """An observability event relayed as it happens."""

    agent_name: str = Field(alias="agentName")
    tool_name: str | None = Field(default=None, alias="toolName")
    event_type: str = Field(alias="eventType")
    created_at: str = Field(alias="createdAt")


class TokenUsage(WireModel):
    """A token usage sample, as served by the tokens endpoint."""

    id: int
    agent_name: str = Field(alias="agentName")
    input_tokens: int = Field(default=0, alias="inputTokens")
    output_tokens: int = Field(default=0, alias="outputTokens")
    cache_read_tokens: int = Field(default=0, alias="cacheReadTokens")
    cache_creation_tokens: int = Field(default=0, alias="cacheCreationTokens")
    estimated_cost_usd: float | None = Field(default=None, alias="estimatedCostUsd")
    model_used: str | None = Field(default=None, alias="modelUsed")
    created_at: str = Field(alias="createdAt")


class StateSnapshot(WireModel):
    """Full state sent once at connect time."""

    agents: list[Agent] = Field(default_factory=list)
    messages: list[AgentMessage] = Field(default_factory=list)
    merge_queue: list[MergeQueueEntry] = Field(default_factory=list, alias="mergeQueue")
    metrics: SwarmMetrics = Field(default_factory=SwarmMetrics)


class DiscoveredProject(WireModel):
    """A discovered source instance as shown in the project picker."""

    name: str
    path: str
    overstory_dir: str = Field(alias="overstoryDir")
    active: bool = False
    active_agents: int = Field(default=0, alias="activeAgents")


class DashboardState(WireModel):
    """Current mode plus the discovered instance list."""

    mode: DashboardMode
    active_project: str | None = Field(default=None, alias="activeProject")
    projects: list[DiscoveredProject] = Field(default_factory=list)


UpdateKind = Literal[
    "agent_update", "message_event", "merge_update", "metrics_update", "tool_event"
]


class StateUpdate(WireModel):
    """One incremental update inside an ``update`` envelope."""

    type: UpdateKind
    data: Agent | AgentMessage | MergeQueueEntry | SwarmMetrics | ToolEventData


def snapshot_message(snapshot: StateSnapshot) -> dict[str, Any]:
    """Envelope for the connect-time snapshot."""
    return {"type": "snapshot", "data": snapshot.to_wire()}


def update_message(update: StateUpdate) -> dict[str, Any]:
    """Envelope for one incremental update."""
    return {"type": "update", "data": update.to_wire()}


def dashboard_state_message(state: DashboardState) -> dict[str, Any]:
    """Envelope for the dashboard mode/projects state."""
    return {"type": "dashboard_state", "data": state.to_wire()}
