"""WebSocket connection gateway and the broadcast tick."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
from typing import TYPE_CHECKING

from swarmviz.delta import DeltaEngine, SourceFrame, capture_frame
from swarmviz.logging import get_logger
from swarmviz.protocol import dashboard_state_message, snapshot_message, update_message

if TYPE_CHECKING:
    from fastapi import WebSocket

    from swarmviz.rate import CostRateTracker
    from swarmviz.sources.base import DataProvider
    from swarmviz.sources.manager import SourceManager

log = get_logger("gateway")


async def broadcast_tick(
    connections: dict[str, WebSocket],
    engine: DeltaEngine,
    frame: SourceFrame,
) -> list[str]:
    """Send each connection its own update batch for this tick.

    A failure while computing or sending only affects that connection.

    Returns:
        Ids of connections that failed.
    """
    failed: list[str] = []
    for conn_id, websocket in connections.items():
        try:
            updates = engine.compute(conn_id, frame)
            for update in updates:
                await websocket.send_json(update_message(update))
        except Exception as e:
            log.warning("Update for client %s failed: %s", conn_id, e)
            failed.append(conn_id)
    return failed


class ConnectionGateway:
    """Owns the open websocket connections and drives the poll/broadcast tick.

    Each connection gets a snapshot on connect and then only deltas. After a
    source switch every connection is resynced with a fresh snapshot; after a
    discovery change every connection gets a fresh dashboard state.
    """

    def __init__(
        self,
        manager: SourceManager,
        engine: DeltaEngine,
        rate: CostRateTracker,
    ) -> None:
        self._manager = manager
        self._engine = engine
        self._rate = rate
        self._connections: dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

        self._resync_pending = False
        self._state_pending = False

        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connection_ids(self) -> list[str]:
        return list(self._connections)

    # Change signals (called synchronously from discovery and the manager)

    def mark_dashboard_changed(self) -> None:
        self._state_pending = True

    def mark_source_switched(self, provider: DataProvider | None = None) -> None:
        self._resync_pending = True
        self._state_pending = True

    # Connection lifecycle

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a connection and send its snapshot and dashboard state.

        Returns:
            The connection id.
        """
        await websocket.accept()
        conn_id = f"ws-{next(self._ids)}"
        snapshot = self._engine.track(conn_id, self._rate.current)
        async with self._lock:
            self._connections[conn_id] = websocket
        try:
            await websocket.send_json(snapshot_message(snapshot))
            await websocket.send_json(
                dashboard_state_message(self._manager.build_dashboard_state())
            )
        except Exception:
            await self.disconnect(conn_id)
            raise
        log.debug("Client %s connected (%d open)", conn_id, len(self._connections))
        return conn_id

    async def disconnect(self, conn_id: str) -> None:
        async with self._lock:
            self._connections.pop(conn_id, None)
        self._engine.forget(conn_id)
        log.debug("Client %s disconnected (%d open)", conn_id, len(self._connections))

    # Tick

    async def tick(self) -> None:
        """One poll: advance the source, then deliver per-client changes."""
        self._manager.tick()

        frame = capture_frame(self._manager)
        rate = self._rate.sample(frame.metrics.total_cost)
        frame.metrics = frame.metrics.model_copy(update={"cost_per_minute": rate})

        async with self._lock:
            connections = dict(self._connections)

        failed: list[str] = []
        if self._resync_pending:
            self._resync_pending = False
            failed += await self._resync(connections)
        else:
            failed += await broadcast_tick(connections, self._engine, frame)

        if self._state_pending:
            self._state_pending = False
            message = dashboard_state_message(self._manager.build_dashboard_state())
            for conn_id, websocket in connections.items():
                if conn_id in failed:
                    continue
                try:
                    await websocket.send_json(message)
                except Exception as e:
                    log.warning("Send to client %s failed: %s", conn_id, e)
                    failed.append(conn_id)

        for conn_id in failed:
            await self.disconnect(conn_id)

    async def _resync(self, connections: dict[str, WebSocket]) -> list[str]:
        """Send every connection a fresh snapshot and restart its tracking."""
        failed: list[str] = []
        for conn_id, websocket in connections.items():
            try:
                snapshot = self._engine.track(conn_id, self._rate.current)
                await websocket.send_json(snapshot_message(snapshot))
            except Exception as e:
                log.warning("Resync of client %s failed: %s", conn_id, e)
                failed.append(conn_id)
        log.info("Resynced %d client(s) after source switch", len(connections) - len(failed))
        return failed

    async def _tick_loop(self, interval_s: float) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception:
                log.exception("Broadcast tick failed")
            await asyncio.sleep(interval_s)

    def start(self, interval_s: float) -> None:
        """Start the periodic tick. Must be called from within a running event loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._tick_loop(interval_s))
        log.debug("Broadcast tick started (interval=%.3fs)", interval_s)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def close_all(self, reason: str = "Server shutting down") -> None:
        """Close every connection."""
        async with self._lock:
            connections = list(self._connections.items())
            self._connections.clear()

        for conn_id, websocket in connections:
            self._engine.forget(conn_id)
            try:
                await websocket.close(code=1001, reason=reason)
            except Exception as e:
                log.debug("Close of client %s failed: %s", conn_id, e)
        log.info("Closed %d dashboard connection(s)", len(connections))
