"""Scripted demo swarm.

Replays a fixed timeline of agent lifecycle events on a repeating cycle and
produces the same internal records as the row mapper, so the rest of the
pipeline cannot tell it apart from a live source.

Time comes from an injected clock (epoch seconds) so tests can step the
timeline without sleeping.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from swarmviz.records import (
    AgentSession,
    AgentState,
    MailMessage,
    MergeEntry,
    MergeStatus,
    MessageType,
    MetricsSession,
)

CYCLE_DURATION_MS = 115_000
MESSAGE_HISTORY = 100
RECENT_MESSAGES = 50
SIM_MODEL = "claude-sonnet-4-5-20250929"

TASK_POOL = (
    "auth-refactor",
    "api-gateway",
    "db-migration",
    "ui-overhaul",
    "perf-tuning",
    "test-infra",
    "cache-layer",
    "deploy-pipeline",
)


# Timeline actions


@dataclass(frozen=True, slots=True)
class SpawnAgent:
    offset_ms: int
    name: str
    capability: str
    parent: str | None
    depth: int
    bead_id: str
    state: AgentState = "booting"


@dataclass(frozen=True, slots=True)
class ChangeState:
    offset_ms: int
    name: str
    state: AgentState


@dataclass(frozen=True, slots=True)
class AddMessage:
    offset_ms: int
    sender: str
    recipient: str
    type: MessageType
    subject: str


@dataclass(frozen=True, slots=True)
class EnqueueMerge:
    offset_ms: int
    agent_name: str
    branch_name: str
    bead_id: str


@dataclass(frozen=True, slots=True)
class UpdateMerge:
    offset_ms: int
    branch_name: str
    status: MergeStatus


@dataclass(frozen=True, slots=True)
class RemoveMerge:
    offset_ms: int
    branch_name: str


TimelineEvent = SpawnAgent | ChangeState | AddMessage | EnqueueMerge | UpdateMerge | RemoveMerge


def iso_timestamp(epoch_s: float) -> str:
    """Format epoch seconds like the observed stores do (ms precision, Z)."""
    moment = datetime.fromtimestamp(epoch_s, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def task_names(cycle: int) -> tuple[str, str]:
    """Server/client task names for a cycle, drawn round-robin from the pool."""
    size = len(TASK_POOL)
    return TASK_POOL[cycle % size], TASK_POOL[(cycle + 1) % size]


def build_timeline(srv: str, cli: str) -> list[TimelineEvent]:
    """The scripted cycle for one server task and one client task.

    Offsets are non-decreasing; events fire in list order.
    """
    b = "overstory"
    events: list[TimelineEvent] = [
        # Coordinator boots and dispatches to two leads
        SpawnAgent(0, "coordinator", "coordinator", None, 0, srv),
        ChangeState(2_000, "coordinator", "working"),
        AddMessage(3_000, "coordinator", "server-lead", "dispatch", f"Dispatch: {srv}"),
        AddMessage(4_000, "coordinator", "client-lead", "dispatch", f"Dispatch: {cli}"),
        SpawnAgent(5_000, "server-lead", "lead", "coordinator", 1, srv),
        SpawnAgent(7_000, "client-lead", "lead", "coordinator", 1, cli),
        ChangeState(8_000, "server-lead", "working"),
        ChangeState(8_500, "client-lead", "working"),
        # Scouts explore and report back
        SpawnAgent(10_000, "scout-srv", "scout", "server-lead", 2, srv),
        AddMessage(11_000, "server-lead", "scout-srv", "dispatch", "Scout: explore server codebase"),
        SpawnAgent(12_000, "scout-cli", "scout", "client-lead", 2, cli),
        AddMessage(13_000, "client-lead", "scout-cli", "dispatch", "Scout: explore client codebase"),
        ChangeState(14_000, "scout-srv", "working"),
        ChangeState(15_000, "scout-cli", "working"),
        AddMessage(18_000, "scout-srv", "server-lead", "result", "Scout report: server patterns found"),
        AddMessage(20_000, "scout-cli", "client-lead", "result", "Scout report: client patterns found"),
        ChangeState(22_000, "scout-srv", "completed"),
        ChangeState(24_000, "scout-cli", "completed"),
    ]

    # Four builders, two per lead
    builders = [
        ("srv-builder-1", "server-lead", srv, "server module A"),
        ("srv-builder-2", "server-lead", srv, "server module B"),
        ("cli-builder-1", "client-lead", cli, "client module A"),
        ("cli-builder-2", "client-lead", cli, "client module B"),
    ]
    for i, (name, lead, bead, _) in enumerate(builders):
        events.append(SpawnAgent(28_000 + i * 1_000, name, "builder", lead, 2, bead))
    for i, (name, lead, _, module) in enumerate(builders):
        events.append(AddMessage(32_000 + i * 500, lead, name, "dispatch", f"Build: {module}"))
    for i, (name, _, _, _) in enumerate(builders):
        events.append(ChangeState(34_000 + i * 500, name, "working"))

    # Status chatter
    events += [
        AddMessage(40_000, "srv-builder-1", "server-lead", "status", "Progress: 30% complete"),
        AddMessage(45_000, "cli-builder-1", "client-lead", "question",
                   "Question: type definition ambiguity in shared module"),
        AddMessage(48_000, "client-lead", "cli-builder-1", "result",
                   "Answer: use the shared interface from types.ts"),
        AddMessage(52_000, "srv-builder-2", "server-lead", "status",
                   "Progress: core logic implemented, writing tests"),
        AddMessage(55_000, "cli-builder-2", "client-lead", "status", "Progress: 60% complete"),
        AddMessage(60_000, "srv-builder-1", "server-lead", "status", "Progress: tests passing, lint clean"),
        AddMessage(63_000, "cli-builder-1", "client-lead", "status", "Progress: integration complete"),
        AddMessage(66_000, "srv-builder-2", "server-lead", "status", "Progress: ready to finalize"),
    ]

    # Builders finish and enqueue merges
    finish_at = (72_000, 75_000, 78_000, 82_000)
    for at, (name, lead, bead, module) in zip(finish_at, builders):
        suffix = "mod-a" if module.endswith("A") else "mod-b"
        events += [
            AddMessage(at, name, lead, "worker_done", f"Worker done: {bead}-{suffix}"),
            ChangeState(at + 500, name, "completed"),
            EnqueueMerge(at + 1_000, name, f"{b}/{name}/{bead}", bead),
        ]

    # Merge queue drains: merging, then removed
    merge_at = ((88_000, 90_000), (91_000, 92_500), (93_000, 94_500), (95_000, 96_500))
    for (start, done), (name, _, bead, _) in zip(merge_at, builders):
        branch = f"{b}/{name}/{bead}"
        events += [UpdateMerge(start, branch, "merging"), RemoveMerge(done, branch)]

    # Leads report, everyone completes; the rest of the cycle is idle
    events += [
        AddMessage(98_000, "server-lead", "coordinator", "merge_ready", f"Merge ready: {srv}"),
        AddMessage(100_000, "client-lead", "coordinator", "merge_ready", f"Merge ready: {cli}"),
        ChangeState(102_000, "server-lead", "completed"),
        ChangeState(104_000, "client-lead", "completed"),
        ChangeState(106_000, "coordinator", "completed"),
    ]
    return events


class SwarmSimulator:
    """Deterministic, self-contained demo swarm.

    Call ``tick()`` on every poll. Each tick fires every scripted event whose
    offset has elapsed in the current cycle, in order and at most once. When
    the cycle duration is exceeded, in-flight agents are archived into
    completed metrics records and a new cycle starts with fresh task names.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        cycle_duration_ms: int = CYCLE_DURATION_MS,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._cycle_duration_ms = cycle_duration_ms

        self._agents: dict[str, AgentSession] = {}
        self._messages: list[MailMessage] = []
        self._merge_queue: dict[str, MergeEntry] = {}
        self._completed: list[MetricsSession] = []

        self._cycle = 0
        self._cycle_start = clock()
        self._cursor = 0
        self._timeline = build_timeline(*task_names(0))

        self._session_seq = 0
        self._message_seq = 0
        self._merge_seq = 0

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def cursor(self) -> int:
        """Index of the next unfired timeline event."""
        return self._cursor

    @property
    def timeline(self) -> list[TimelineEvent]:
        return self._timeline

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._cycle_start) * 1000)

    def tick(self) -> None:
        elapsed = self.elapsed_ms()
        if elapsed >= self._cycle_duration_ms:
            self._reset_cycle()
            return

        while self._cursor < len(self._timeline):
            event = self._timeline[self._cursor]
            if event.offset_ms > elapsed:
                break
            self._fire(event)
            self._cursor += 1

    def _reset_cycle(self) -> None:
        now = self._clock()
        for session in self._agents.values():
            self._completed.append(self._archive(session, now))
        self._messages = self._messages[-MESSAGE_HISTORY:]
        self._agents.clear()
        self._merge_queue.clear()

        self._cycle += 1
        self._cursor = 0
        self._cycle_start = now
        self._timeline = build_timeline(*task_names(self._cycle))

    def _archive(self, session: AgentSession, now: float) -> MetricsSession:
        started = datetime.fromisoformat(session.started_at.replace("Z", "+00:00"))
        duration_ms = max(1_000, int((now - started.timestamp()) * 1000))
        rng = self._rng
        return MetricsSession(
            agent_name=session.agent_name,
            bead_id=session.bead_id,
            capability=session.capability,
            started_at=session.started_at,
            completed_at=iso_timestamp(now),
            duration_ms=duration_ms,
            exit_code=0,
            merge_result="merged",
            parent_agent=session.parent_agent,
            input_tokens=rng.randrange(50_000) + 10_000,
            output_tokens=rng.randrange(20_000) + 5_000,
            cache_read_tokens=rng.randrange(30_000),
            cache_creation_tokens=rng.randrange(10_000),
            estimated_cost_usd=rng.random() * 0.4 + 0.05,
            model_used=SIM_MODEL,
        )

    def _fire(self, event: TimelineEvent) -> None:
        now = iso_timestamp(self._clock())

        match event:
            case SpawnAgent():
                self._session_seq += 1
                self._agents[event.name] = AgentSession(
                    id=f"sim-session-{self._session_seq}",
                    agent_name=event.name,
                    capability=event.capability,
                    worktree_path=f"/sim/worktrees/{event.name}",
                    branch_name=f"overstory/{event.name}/{event.bead_id}",
                    bead_id=event.bead_id,
                    tmux_session=f"sim:{event.name}",
                    state=event.state,
                    pid=10_000 + self._session_seq,
                    parent_agent=event.parent,
                    depth=event.depth,
                    run_id=None,
                    started_at=now,
                    last_activity=now,
                    escalation_level=0,
                    stalled_since=None,
                )
            case ChangeState():
                session = self._agents.get(event.name)
                if session:
                    session.state = event.state
                    session.last_activity = now
            case AddMessage():
                self._message_seq += 1
                self._messages.append(
                    MailMessage(
                        id=f"sim-msg-{self._message_seq}",
                        from_agent=event.sender,
                        to_agent=event.recipient,
                        subject=event.subject,
                        body=f"Simulated {event.type} message from {event.sender} to {event.recipient}.",
                        type=event.type,
                        priority="normal",
                        thread_id=None,
                        read=False,
                        created_at=now,
                    )
                )
                sender = self._agents.get(event.sender)
                if sender:
                    sender.last_activity = now
            case EnqueueMerge():
                self._merge_seq += 1
                self._merge_queue[event.branch_name] = MergeEntry(
                    id=self._merge_seq,
                    branch_name=event.branch_name,
                    bead_id=event.bead_id,
                    agent_name=event.agent_name,
                    files_modified=[
                        f"server/{event.agent_name}.ts",
                        f"tests/{event.agent_name}.test.ts",
                    ],
                    enqueued_at=now,
                    status="pending",
                    resolved_tier=None,
                )
            case UpdateMerge():
                entry = self._merge_queue.get(event.branch_name)
                if entry:
                    entry.status = event.status
            case RemoveMerge():
                self._merge_queue.pop(event.branch_name, None)

    # Query surface (mirrors the live provider)

    def sessions(self) -> list[AgentSession]:
        return list(self._agents.values())

    def recent_messages(self, limit: int = RECENT_MESSAGES) -> list[MailMessage]:
        return self._messages[-limit:] if limit > 0 else []

    def messages_since(self, since: str) -> list[MailMessage]:
        return [m for m in self._messages if m.created_at > since]

    def message_count(self) -> int:
        return len(self._messages)

    def merge_queue(self) -> list[MergeEntry]:
        return [e for e in self._merge_queue.values() if e.status in ("pending", "merging")]

    def metrics_sessions(self) -> list[MetricsSession]:
        return list(self._completed)
