"""Read-only SQLite access with explicit availability tracking.

The observed stores are written by another process. We open them with
``mode=ro`` URIs, tolerate locks and half-written files, and never create or
modify anything.

Each store moves between three states, and only on a query attempt:

    UNAVAILABLE --open ok--> AVAILABLE --query error--> FAULTED
         ^                                                  |
         +--------------open fails on next attempt----------+
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TypeVar

from swarmviz.logging import get_logger

log = get_logger("stores")

T = TypeVar("T")

BUSY_TIMEOUT_S = 2.0

Opener = Callable[[Path], sqlite3.Connection]

# Query failures, including rows that don't match the expected columns or types
QUERY_ERRORS = (sqlite3.Error, LookupError, TypeError, ValueError)


class StoreState(Enum):
    """Availability of one store."""

    UNAVAILABLE = "unavailable"  # Never opened, or the last open failed
    AVAILABLE = "available"  # Open connection, last query succeeded
    FAULTED = "faulted"  # Last query failed; connection dropped


def open_readonly(path: Path) -> sqlite3.Connection:
    """Open an existing database read-only.

    Raises:
        sqlite3.Error: If the file is missing or can't be opened.
    """
    uri = f"{Path(path).resolve().as_uri()}?mode=ro"
    conn = sqlite3.connect(
        uri,
        uri=True,
        timeout=BUSY_TIMEOUT_S,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    return conn


class SqliteStore:
    """One read-only store, opened lazily and re-probed after failures.

    ``query`` never raises: a missing store or failed query returns the
    caller's default. Failures are logged once per outage, not per attempt.
    """

    def __init__(self, path: Path | str, label: str, opener: Opener = open_readonly) -> None:
        self._path = Path(path)
        self._label = label
        self._opener = opener
        self._conn: sqlite3.Connection | None = None
        self._state = StoreState.UNAVAILABLE
        self._outage_logged = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def label(self) -> str:
        return self._label

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def available(self) -> bool:
        return self._state is StoreState.AVAILABLE

    def require(self, check_sql: str) -> None:
        """Open the store and run ``check_sql``, raising on any failure.

        Used for the primary store, whose absence is not degradable.

        Raises:
            sqlite3.Error: If the store can't be opened or the check fails.
            FileNotFoundError: If the file is missing or empty.
        """
        if not self._path.is_file() or self._path.stat().st_size == 0:
            raise FileNotFoundError(f"{self._label} missing or empty: {self._path}")
        conn = self._opener(self._path)
        try:
            conn.execute(check_sql).fetchone()
        except sqlite3.Error:
            conn.close()
            raise
        self.close()
        self._conn = conn
        self._enter(StoreState.AVAILABLE)

    def query(self, fn: Callable[[sqlite3.Connection], T], default: T) -> T:
        """Run ``fn`` against the open connection, degrading to ``default``."""
        conn = self._ensure_open()
        if conn is None:
            return default
        try:
            result = fn(conn)
        except QUERY_ERRORS as e:
            self._report(f"Error querying {self._label}: {e}")
            self._drop_connection()
            self._state = StoreState.FAULTED
            return default
        self._outage_logged = False
        return result

    def _ensure_open(self) -> sqlite3.Connection | None:
        if self._state is StoreState.AVAILABLE and self._conn is not None:
            return self._conn
        try:
            conn = self._opener(self._path)
        except sqlite3.Error:
            self._report(f"Optional store {self._label} not available: {self._path}")
            self._state = StoreState.UNAVAILABLE
            return None
        self._conn = conn
        self._enter(StoreState.AVAILABLE)
        return conn

    def _enter(self, state: StoreState) -> None:
        if state is StoreState.AVAILABLE and self._state is not StoreState.AVAILABLE:
            log.debug("Store %s opened: %s", self._label, self._path)
        self._state = state

    def _report(self, message: str) -> None:
        if not self._outage_logged:
            log.warning(message)
            self._outage_logged = True

    def _drop_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                log.debug("Ignoring close error on %s", self._label)
            self._conn = None

    def close(self) -> None:
        """Close the connection and return to UNAVAILABLE."""
        self._drop_connection()
        self._state = StoreState.UNAVAILABLE
