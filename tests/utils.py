"""Shared test utilities for swarm-viz tests.

Builders for real on-disk SQLite stores laid out the way the orchestration
framework writes them, plus record factories with sensible defaults.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from swarmviz.records import AgentSession, MailMessage, MergeEntry, MetricsSession

SESSIONS_SCHEMA = """
CREATE TABLE sessions (
    id TEXT PRIMARY KEY,
    agent_name TEXT NOT NULL,
    capability TEXT NOT NULL,
    worktree_path TEXT NOT NULL,
    branch_name TEXT NOT NULL,
    bead_id TEXT NOT NULL,
    tmux_session TEXT NOT NULL,
    state TEXT NOT NULL,
    pid INTEGER,
    parent_agent TEXT,
    depth INTEGER NOT NULL DEFAULT 0,
    run_id TEXT,
    started_at TEXT NOT NULL,
    last_activity TEXT NOT NULL,
    escalation_level INTEGER NOT NULL DEFAULT 0,
    stalled_since TEXT
)
"""

MAIL_SCHEMA = """
CREATE TABLE messages (
    id TEXT PRIMARY KEY,
    from_agent TEXT NOT NULL,
    to_agent TEXT NOT NULL,
    subject TEXT NOT NULL,
    body TEXT NOT NULL,
    type TEXT NOT NULL,
    priority TEXT NOT NULL,
    thread_id TEXT,
    read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
)
"""

MERGE_QUEUE_SCHEMA = """
CREATE TABLE merge_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    branch_name TEXT NOT NULL,
    bead_id TEXT NOT NULL,
    agent_name TEXT NOT NULL,
    files_modified TEXT NOT NULL,
    enqueued_at TEXT NOT NULL,
    status TEXT NOT NULL,
    resolved_tier TEXT
)
"""

METRICS_SCHEMA = """
CREATE TABLE sessions (
    agent_name TEXT NOT NULL,
    bead_id TEXT NOT NULL,
    capability TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    exit_code INTEGER,
    merge_result TEXT,
    parent_agent TEXT,
    input_tokens INTEGER NOT NULL DEFAULT 0,
    output_tokens INTEGER NOT NULL DEFAULT 0,
    cache_read_tokens INTEGER NOT NULL DEFAULT 0,
    cache_creation_tokens INTEGER NOT NULL DEFAULT 0,
    estimated_cost_usd REAL,
    model_used TEXT
);
CREATE TABLE token_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_name TEXT NOT NULL,
    input_tokens INTEGER NOT NULL DEFAULT 0,
    output_tokens INTEGER NOT NULL DEFAULT 0,
    cache_read_tokens INTEGER NOT NULL DEFAULT 0,
    cache_creation_tokens INTEGER NOT NULL DEFAULT 0,
    estimated_cost_usd REAL,
    model_used TEXT,
    created_at TEXT NOT NULL
);
"""

EVENTS_SCHEMA = """
CREATE TABLE events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT,
    agent_name TEXT NOT NULL,
    session_id TEXT,
    event_type TEXT NOT NULL,
    tool_name TEXT,
    tool_args TEXT,
    tool_duration_ms INTEGER,
    level TEXT NOT NULL DEFAULT 'info',
    data TEXT,
    created_at TEXT NOT NULL
)
"""


def session_row(name: str, **overrides: Any) -> dict[str, Any]:
    """A raw ``sessions`` row for agent ``name``."""
    row: dict[str, Any] = {
        "id": f"session-{name}",
        "agent_name": name,
        "capability": "builder",
        "worktree_path": f"/tmp/worktrees/{name}",
        "branch_name": f"overstory/{name}/task-1",
        "bead_id": "task-1",
        "tmux_session": f"overstory-{name}",
        "state": "working",
        "pid": 1234,
        "parent_agent": None,
        "depth": 0,
        "run_id": "run-1",
        "started_at": "2026-01-01T00:00:00.000Z",
        "last_activity": "2026-01-01T00:00:00.000Z",
        "escalation_level": 0,
        "stalled_since": None,
    }
    row.update(overrides)
    return row


def message_row(msg_id: str, created_at: str, **overrides: Any) -> dict[str, Any]:
    """A raw ``messages`` row."""
    row: dict[str, Any] = {
        "id": msg_id,
        "from_agent": "lead-1",
        "to_agent": "builder-1",
        "subject": f"Subject {msg_id}",
        "body": "body",
        "type": "status",
        "priority": "normal",
        "thread_id": None,
        "read": 0,
        "created_at": created_at,
    }
    row.update(overrides)
    return row


def merge_row(branch: str, status: str = "pending", **overrides: Any) -> dict[str, Any]:
    """A raw ``merge_queue`` row (without id)."""
    row: dict[str, Any] = {
        "branch_name": branch,
        "bead_id": "task-1",
        "agent_name": "builder-1",
        "files_modified": json.dumps(["src/app.py"]),
        "enqueued_at": "2026-01-01T00:00:00.000Z",
        "status": status,
        "resolved_tier": None,
    }
    row.update(overrides)
    return row


def metrics_row(agent: str, cost: float | None = 0.1, **overrides: Any) -> dict[str, Any]:
    """A raw metrics ``sessions`` row."""
    row: dict[str, Any] = {
        "agent_name": agent,
        "bead_id": "task-1",
        "capability": "builder",
        "started_at": "2026-01-01T00:00:00.000Z",
        "completed_at": "2026-01-01T00:05:00.000Z",
        "duration_ms": 300_000,
        "exit_code": 0,
        "merge_result": "merged",
        "parent_agent": None,
        "input_tokens": 1000,
        "output_tokens": 500,
        "cache_read_tokens": 100,
        "cache_creation_tokens": 0,
        "estimated_cost_usd": cost,
        "model_used": "claude-sonnet-4-5-20250929",
    }
    row.update(overrides)
    return row


def event_row(agent: str, created_at: str, **overrides: Any) -> dict[str, Any]:
    """A raw ``events`` row (without id)."""
    row: dict[str, Any] = {
        "run_id": "run-1",
        "agent_name": agent,
        "session_id": None,
        "event_type": "tool_start",
        "tool_name": "Read",
        "tool_args": None,
        "tool_duration_ms": None,
        "level": "info",
        "data": None,
        "created_at": created_at,
    }
    row.update(overrides)
    return row


def insert_rows(db_path: Path, table: str, rows: list[dict[str, Any]]) -> None:
    """Insert rows into an existing table (as the writer process would)."""
    if not rows:
        return
    columns = list(rows[0])
    sql = (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})"
    )
    conn = sqlite3.connect(db_path)
    try:
        conn.executemany(sql, [tuple(r[c] for c in columns) for r in rows])
        conn.commit()
    finally:
        conn.close()


def create_store(db_path: Path, schema: str, table: str, rows: list[dict[str, Any]]) -> Path:
    """Create a store file with ``schema`` and insert ``rows`` into ``table``."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(schema)
        conn.commit()
    finally:
        conn.close()
    insert_rows(db_path, table, rows)
    return db_path


def create_sessions_db(state_dir: Path, rows: list[dict[str, Any]] | None = None) -> Path:
    return create_store(state_dir / "sessions.db", SESSIONS_SCHEMA, "sessions", rows or [])


def create_mail_db(state_dir: Path, rows: list[dict[str, Any]] | None = None) -> Path:
    return create_store(state_dir / "mail.db", MAIL_SCHEMA, "messages", rows or [])


def create_merge_queue_db(state_dir: Path, rows: list[dict[str, Any]] | None = None) -> Path:
    return create_store(state_dir / "merge-queue.db", MERGE_QUEUE_SCHEMA, "merge_queue", rows or [])


def create_metrics_db(state_dir: Path, rows: list[dict[str, Any]] | None = None) -> Path:
    return create_store(state_dir / "metrics.db", METRICS_SCHEMA, "sessions", rows or [])


def create_events_db(state_dir: Path, rows: list[dict[str, Any]] | None = None) -> Path:
    return create_store(state_dir / "events.db", EVENTS_SCHEMA, "events", rows or [])


def make_session(name: str = "builder-1", **overrides: Any) -> AgentSession:
    """An ``AgentSession`` record with defaults."""
    return AgentSession(**session_row(name, **overrides))


def make_message(msg_id: str = "msg-1", created_at: str = "2026-01-01T00:00:00.000Z",
                 **overrides: Any) -> MailMessage:
    """A ``MailMessage`` record with defaults."""
    row = message_row(msg_id, created_at, **overrides)
    row["read"] = bool(row["read"])
    return MailMessage(**row)


def make_merge_entry(branch: str = "overstory/builder-1/task-1", status: str = "pending",
                     **overrides: Any) -> MergeEntry:
    """A ``MergeEntry`` record with defaults."""
    row = merge_row(branch, status, **overrides)
    row["files_modified"] = json.loads(row["files_modified"])
    return MergeEntry(id=overrides.get("id", 1), **{k: v for k, v in row.items() if k != "id"})


def make_metrics_session(agent: str = "builder-1", cost: float | None = 0.1,
                         **overrides: Any) -> MetricsSession:
    """A ``MetricsSession`` record with defaults."""
    return MetricsSession(**metrics_row(agent, cost, **overrides))
