"""Pure functions mapping raw store rows to internal records.

Rows are anything indexable by column name: ``sqlite3.Row`` in production,
plain dicts in tests. No I/O happens here.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from swarmviz.records import (
    AgentSession,
    MailMessage,
    MergeEntry,
    MetricsSession,
    SwarmEvent,
    TokenSnapshot,
)

Row = Mapping[str, Any]


def parse_file_list(raw: Any) -> list[str]:
    """Decode the embedded JSON file list of a merge queue row.

    Anything that is not a JSON array of strings degrades to ``[]``.
    """
    if not isinstance(raw, (str, bytes, bytearray)):
        return []
    try:
        decoded = json.loads(raw)
    except (ValueError, TypeError):
        return []
    if not isinstance(decoded, list):
        return []
    return [item for item in decoded if isinstance(item, str)]


def map_session(row: Row) -> AgentSession:
    return AgentSession(
        id=row["id"],
        agent_name=row["agent_name"],
        capability=row["capability"],
        worktree_path=row["worktree_path"],
        branch_name=row["branch_name"],
        bead_id=row["bead_id"],
        tmux_session=row["tmux_session"],
        state=row["state"],
        pid=row["pid"],
        parent_agent=row["parent_agent"],
        depth=row["depth"],
        run_id=row["run_id"],
        started_at=row["started_at"],
        last_activity=row["last_activity"],
        escalation_level=row["escalation_level"],
        stalled_since=row["stalled_since"],
    )


def map_message(row: Row) -> MailMessage:
    return MailMessage(
        id=row["id"],
        from_agent=row["from_agent"],
        to_agent=row["to_agent"],
        subject=row["subject"],
        body=row["body"],
        type=row["type"],
        priority=row["priority"],
        thread_id=row["thread_id"],
        read=row["read"] == 1,
        created_at=row["created_at"],
    )


def map_merge_entry(row: Row) -> MergeEntry:
    return MergeEntry(
        id=row["id"],
        branch_name=row["branch_name"],
        bead_id=row["bead_id"],
        agent_name=row["agent_name"],
        files_modified=parse_file_list(row["files_modified"]),
        enqueued_at=row["enqueued_at"],
        status=row["status"],
        resolved_tier=row["resolved_tier"],
    )


def map_event(row: Row) -> SwarmEvent:
    return SwarmEvent(
        id=row["id"],
        run_id=row["run_id"],
        agent_name=row["agent_name"],
        session_id=row["session_id"],
        event_type=row["event_type"],
        tool_name=row["tool_name"],
        tool_args=row["tool_args"],
        tool_duration_ms=row["tool_duration_ms"],
        level=row["level"],
        data=row["data"],
        created_at=row["created_at"],
    )


def map_metrics_session(row: Row) -> MetricsSession:
    return MetricsSession(
        agent_name=row["agent_name"],
        bead_id=row["bead_id"],
        capability=row["capability"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        duration_ms=row["duration_ms"],
        exit_code=row["exit_code"],
        merge_result=row["merge_result"],
        parent_agent=row["parent_agent"],
        input_tokens=row["input_tokens"],
        output_tokens=row["output_tokens"],
        cache_read_tokens=row["cache_read_tokens"],
        cache_creation_tokens=row["cache_creation_tokens"],
        estimated_cost_usd=row["estimated_cost_usd"],
        model_used=row["model_used"],
    )


def map_token_snapshot(row: Row) -> TokenSnapshot:
    return TokenSnapshot(
        id=row["id"],
        agent_name=row["agent_name"],
        input_tokens=row["input_tokens"],
        output_tokens=row["output_tokens"],
        cache_read_tokens=row["cache_read_tokens"],
        cache_creation_tokens=row["cache_creation_tokens"],
        estimated_cost_usd=row["estimated_cost_usd"],
        model_used=row["model_used"],
        created_at=row["created_at"],
    )
