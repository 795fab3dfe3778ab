"""Live provider: read-only queries over one instance's state directory."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from swarmviz.errors import SourceUnavailableError
from swarmviz.logging import get_logger
from swarmviz.mapping import (
    map_event,
    map_merge_entry,
    map_message,
    map_metrics_session,
    map_session,
    map_token_snapshot,
)
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
from swarmviz.sources.stores import SqliteStore, open_readonly

log = get_logger("sources.live")

SESSIONS_DB = "sessions.db"
MAIL_DB = "mail.db"
MERGE_QUEUE_DB = "merge-queue.db"
METRICS_DB = "metrics.db"
EVENTS_DB = "events.db"

_SQL_CHECK_SESSIONS = "SELECT 1 FROM sessions LIMIT 1"
_SQL_SESSIONS = "SELECT * FROM sessions ORDER BY depth ASC, started_at ASC"
_SQL_ACTIVE_COUNT = "SELECT COUNT(*) FROM sessions WHERE state IN ({})".format(
    ", ".join("?" for _ in ACTIVE_STATES)
)

_SQL_RECENT_MESSAGES = "SELECT * FROM messages ORDER BY created_at DESC LIMIT ?"
_SQL_MESSAGES_SINCE = "SELECT * FROM messages WHERE created_at > ? ORDER BY created_at ASC"
_SQL_MESSAGE_COUNT = "SELECT COUNT(*) FROM messages"

_SQL_MERGE_QUEUE = "SELECT * FROM merge_queue ORDER BY enqueued_at DESC"

_SQL_METRICS_SESSIONS = "SELECT * FROM sessions ORDER BY started_at DESC"
_SQL_TOKEN_SNAPSHOTS = "SELECT * FROM token_snapshots ORDER BY created_at ASC"

_SQL_RECENT_EVENTS = "SELECT * FROM events ORDER BY id DESC LIMIT ?"
_SQL_EVENTS_AFTER = "SELECT * FROM events WHERE id > ? ORDER BY id ASC"
_SQL_MAX_EVENT_ID = "SELECT COALESCE(MAX(id), 0) FROM events"


def count_active_agents(state_dir: Path | str) -> int:
    """Short read-only probe of an instance's session store.

    Returns the number of working/booting sessions, or 0 if the store can't
    be read for any reason.
    """
    path = Path(state_dir) / SESSIONS_DB
    try:
        conn = open_readonly(path)
    except sqlite3.Error:
        return 0
    try:
        row = conn.execute(_SQL_ACTIVE_COUNT, tuple(sorted(ACTIVE_STATES))).fetchone()
        return int(row[0]) if row else 0
    except sqlite3.Error as e:
        log.debug("Live-count probe failed for %s: %s", path, e)
        return 0
    finally:
        conn.close()


class LiveProvider:
    """Queries the five stores of one instance.

    The session store is required and validated by ``open()``. Mail, merge
    queue, metrics and events are optional: while missing or failing they
    read as empty and are re-probed on the next query.
    """

    def __init__(self, name: str, state_dir: Path | str) -> None:
        self._name = name
        self._state_dir = Path(state_dir)
        self._sessions = SqliteStore(self._state_dir / SESSIONS_DB, "sessions")
        self._mail = SqliteStore(self._state_dir / MAIL_DB, "mail")
        self._merge_queue = SqliteStore(self._state_dir / MERGE_QUEUE_DB, "merge queue")
        self._metrics = SqliteStore(self._state_dir / METRICS_DB, "metrics")
        self._events = SqliteStore(self._state_dir / EVENTS_DB, "events")

    @classmethod
    def open(cls, name: str, state_dir: Path | str) -> LiveProvider:
        """Open a provider, failing if the session store is unusable.

        Raises:
            SourceUnavailableError: If sessions.db is missing, empty, or has
                no ``sessions`` table.
        """
        provider = cls(name, state_dir)
        try:
            provider._sessions.require(_SQL_CHECK_SESSIONS)
        except (OSError, sqlite3.Error) as e:
            provider.close()
            raise SourceUnavailableError(provider._state_dir / SESSIONS_DB, str(e)) from e
        log.info("Opened live source %s at %s", name, provider._state_dir)
        return provider

    @property
    def mode(self) -> DashboardMode:
        return "live"

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    def tick(self) -> None:
        pass

    def sessions(self) -> list[AgentSession]:
        return self._sessions.query(
            lambda c: [map_session(r) for r in c.execute(_SQL_SESSIONS)], []
        )

    def active_agent_count(self) -> int:
        return self._sessions.query(
            lambda c: int(c.execute(_SQL_ACTIVE_COUNT, tuple(sorted(ACTIVE_STATES))).fetchone()[0]),
            0,
        )

    def recent_messages(self, limit: int) -> list[MailMessage]:
        rows = self._mail.query(
            lambda c: [map_message(r) for r in c.execute(_SQL_RECENT_MESSAGES, (limit,))], []
        )
        rows.reverse()
        return rows

    def messages_since(self, since: str) -> list[MailMessage]:
        return self._mail.query(
            lambda c: [map_message(r) for r in c.execute(_SQL_MESSAGES_SINCE, (since,))], []
        )

    def message_count(self) -> int:
        return self._mail.query(lambda c: int(c.execute(_SQL_MESSAGE_COUNT).fetchone()[0]), 0)

    def merge_queue(self) -> list[MergeEntry]:
        return self._merge_queue.query(
            lambda c: [map_merge_entry(r) for r in c.execute(_SQL_MERGE_QUEUE)], []
        )

    def metrics_sessions(self) -> list[MetricsSession]:
        return self._metrics.query(
            lambda c: [map_metrics_session(r) for r in c.execute(_SQL_METRICS_SESSIONS)], []
        )

    def token_snapshots(self) -> list[TokenSnapshot]:
        return self._metrics.query(
            lambda c: [map_token_snapshot(r) for r in c.execute(_SQL_TOKEN_SNAPSHOTS)], []
        )

    def recent_events(self, limit: int) -> list[SwarmEvent]:
        rows = self._events.query(
            lambda c: [map_event(r) for r in c.execute(_SQL_RECENT_EVENTS, (limit,))], []
        )
        rows.reverse()
        return rows

    def events_after(self, after_id: int) -> list[SwarmEvent]:
        return self._events.query(
            lambda c: [map_event(r) for r in c.execute(_SQL_EVENTS_AFTER, (after_id,))], []
        )

    def max_event_id(self) -> int:
        return self._events.query(lambda c: int(c.execute(_SQL_MAX_EVENT_ID).fetchone()[0]), 0)

    def store_status(self) -> dict[str, bool]:
        return {
            "sessions": self._sessions.available,
            "mail": self._mail.available,
            "mergeQueue": self._merge_queue.available,
            "metrics": self._metrics.available,
            "events": self._events.available,
        }

    def close(self) -> None:
        for store in (self._sessions, self._mail, self._merge_queue, self._metrics, self._events):
            store.close()
        log.debug("Closed live source %s", self._name)
