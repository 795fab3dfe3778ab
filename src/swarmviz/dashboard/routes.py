"""FastAPI routes: websocket stream, REST reads, and static assets."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse

from swarmviz import __version__
from swarmviz.logging import get_logger
from swarmviz.mapping import to_token_usage, to_tool_event

if TYPE_CHECKING:
    from swarmviz.dashboard.server import DashboardRuntime

log = get_logger("routes")

INDEX_FILE = "index.html"


def resolve_static(static_dir: Path, request_path: str) -> Path:
    """Map a request path to a file under ``static_dir``.

    Unknown paths fall back to ``index.html`` so client-side routes work.

    Raises:
        HTTPException: 403 for paths containing ``..``, 404 when neither the
            file nor the index exists.
    """
    rel = request_path.lstrip("/") or INDEX_FILE
    if ".." in rel:
        raise HTTPException(status_code=403, detail="Forbidden")

    candidate = static_dir / rel
    if candidate.is_file():
        return candidate

    index = static_dir / INDEX_FILE
    if index.is_file():
        return index
    raise HTTPException(status_code=404, detail="Not Found")


def create_app(runtime: DashboardRuntime) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="swarm-viz",
        description="Live visualization of agent swarm state",
        version=__version__,
    )
    app.state.runtime = runtime
    _register_routes(app, runtime)
    return app


def _register_routes(app: FastAPI, runtime: DashboardRuntime) -> None:
    """Register all routes. The static catch-all must stay last."""

    manager = runtime.manager
    gateway = runtime.gateway

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """Server-to-client state stream. Inbound messages are ignored."""
        conn_id = await gateway.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await gateway.disconnect(conn_id)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Current mode and per-store availability."""
        return {
            "status": "ok",
            "mode": manager.mode,
            "activeProject": manager.active_name if manager.mode == "live" else None,
            "databases": manager.store_status(),
        }

    @app.get("/api/state")
    async def api_state() -> dict[str, Any]:
        return manager.build_dashboard_state().to_wire()

    @app.get("/api/snapshot")
    async def api_snapshot() -> dict[str, Any]:
        """What a newly connected websocket client would receive."""
        return runtime.engine.build_snapshot(runtime.rate.current).to_wire()

    @app.get("/api/events/recent")
    async def api_recent_events(
        limit: int | None = Query(default=None, ge=1, le=1000),
    ) -> list[dict[str, Any]]:
        count = limit or runtime.config.polling.recent_events
        return [to_tool_event(e).to_wire() for e in manager.recent_events(count)]

    @app.get("/api/tokens")
    async def api_tokens() -> list[dict[str, Any]]:
        return [to_token_usage(s).to_wire() for s in manager.token_snapshots()]

    @app.get("/", include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(resolve_static(runtime.static_dir, ""))

    @app.get("/{path:path}", include_in_schema=False)
    async def static_asset(path: str) -> FileResponse:
        return FileResponse(resolve_static(runtime.static_dir, path))
