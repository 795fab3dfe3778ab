"""Tests for the HTTP and websocket routes."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from swarmviz.config.schema import Config
from swarmviz.dashboard.routes import create_app, resolve_static
from swarmviz.dashboard.server import DashboardRuntime
from tests.utils import (
    create_events_db,
    create_metrics_db,
    create_sessions_db,
    event_row,
    insert_rows,
    session_row,
)


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    path = tmp_path / "dist"
    path.mkdir()
    (path / "index.html").write_text("<html>swarm</html>")
    (path / "app.js").write_text("console.log('hi')")
    return path


def make_config(tmp_path: Path, static_dir: Path, **source: object) -> Config:
    config = Config()
    config.discovery.roots = [str(tmp_path / "projects")]
    config.server.static_dir = str(static_dir)
    for key, value in source.items():
        setattr(config.source, key, value)
    return config


@pytest.fixture
def demo_runtime(tmp_path: Path, static_dir: Path) -> DashboardRuntime:
    runtime = DashboardRuntime(make_config(tmp_path, static_dir))
    runtime.open()
    return runtime


@pytest.fixture
def live_runtime(tmp_path: Path, static_dir: Path, state_dir: Path) -> DashboardRuntime:
    create_sessions_db(state_dir, [session_row("builder-1")])
    create_events_db(state_dir, [
        event_row("builder-1", f"2026-01-01T00:00:0{i}Z") for i in range(5)
    ])
    runtime = DashboardRuntime(make_config(tmp_path, static_dir, overstory_dir=str(state_dir)))
    runtime.open()
    yield runtime
    runtime.manager.close()


class TestResolveStatic:
    """Tests for static path resolution."""

    def test_root_serves_index(self, static_dir: Path) -> None:
        assert resolve_static(static_dir, "") == static_dir / "index.html"

    def test_existing_file(self, static_dir: Path) -> None:
        assert resolve_static(static_dir, "app.js") == static_dir / "app.js"

    def test_unknown_path_falls_back_to_index(self, static_dir: Path) -> None:
        assert resolve_static(static_dir, "projects/alpha") == static_dir / "index.html"

    def test_traversal_forbidden(self, static_dir: Path) -> None:
        with pytest.raises(HTTPException) as exc_info:
            resolve_static(static_dir, "../secret.txt")
        assert exc_info.value.status_code == 403

    def test_no_index(self, tmp_path: Path) -> None:
        with pytest.raises(HTTPException) as exc_info:
            resolve_static(tmp_path, "anything")
        assert exc_info.value.status_code == 404


class TestHttpRoutes:
    """Tests for the REST endpoints."""

    def test_health_demo(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["mode"] == "demo"
        assert body["activeProject"] is None
        assert body["databases"] == {
            "sessions": False,
            "mail": False,
            "mergeQueue": False,
            "metrics": False,
            "events": False,
        }

    def test_health_live(self, live_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(live_runtime))
        body = client.get("/health").json()
        assert body["mode"] == "live"
        assert body["activeProject"] == "alpha"
        assert body["databases"]["sessions"] is True

    def test_state(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        body = client.get("/api/state").json()
        assert body == {"mode": "demo", "activeProject": None, "projects": []}

    def test_snapshot(self, live_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(live_runtime))
        body = client.get("/api/snapshot").json()
        assert [a["name"] for a in body["agents"]] == ["builder-1"]
        assert body["metrics"]["totalAgents"] == 1

    def test_recent_events(self, live_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(live_runtime))
        events = client.get("/api/events/recent", params={"limit": 2}).json()
        assert [e["createdAt"] for e in events] == [
            "2026-01-01T00:00:03Z",
            "2026-01-01T00:00:04Z",
        ]

    def test_recent_events_limit_validated(self, live_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(live_runtime))
        assert client.get("/api/events/recent", params={"limit": 0}).status_code == 422

    def test_tokens(self, live_runtime: DashboardRuntime, state_dir: Path) -> None:
        create_metrics_db(state_dir)
        insert_rows(state_dir / "metrics.db", "token_snapshots", [{
            "agent_name": "builder-1",
            "input_tokens": 10,
            "output_tokens": 5,
            "cache_read_tokens": 0,
            "cache_creation_tokens": 0,
            "estimated_cost_usd": 0.01,
            "model_used": "claude-sonnet-4-5",
            "created_at": "2026-01-01T00:00:00Z",
        }])
        client = TestClient(create_app(live_runtime))
        tokens = client.get("/api/tokens").json()
        assert tokens[0]["agentName"] == "builder-1"
        assert tokens[0]["inputTokens"] == 10

    def test_tokens_demo_empty(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        assert client.get("/api/tokens").json() == []

    def test_index(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        response = client.get("/")
        assert response.status_code == 200
        assert "swarm" in response.text
        assert response.headers["content-type"].startswith("text/html")

    def test_spa_fallback(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        response = client.get("/projects/alpha")
        assert response.status_code == 200
        assert "swarm" in response.text

    def test_asset(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        assert "console.log" in client.get("/app.js").text


class TestWebSocketRoute:
    """Tests for the /ws stream."""

    def test_connect_receives_snapshot_and_state(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        with client.websocket_connect("/ws") as ws:
            first = ws.receive_json()
            second = ws.receive_json()
            assert first["type"] == "snapshot"
            assert second["type"] == "dashboard_state"
            assert demo_runtime.gateway.connection_count == 1

    def test_inbound_messages_ignored(self, live_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(live_runtime))
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_text("hello?")
            snapshot = client.get("/api/snapshot").json()
            assert snapshot["agents"][0]["name"] == "builder-1"

    def test_disconnect_releases_connection(self, demo_runtime: DashboardRuntime) -> None:
        client = TestClient(create_app(demo_runtime))
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
        assert demo_runtime.engine.tracked == []
