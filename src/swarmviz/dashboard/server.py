"""Dashboard runtime wiring and web server lifecycle."""

from __future__ import annotations

import asyncio
from pathlib import Path

import uvicorn

from swarmviz.config.schema import Config
from swarmviz.dashboard.gateway import ConnectionGateway
from swarmviz.delta import DeltaEngine
from swarmviz.discovery import DiscoveryService
from swarmviz.logging import get_logger
from swarmviz.rate import CostRateTracker
from swarmviz.sources.base import DataProvider
from swarmviz.sources.manager import SourceManager

log = get_logger("server")

DEFAULT_STATIC_DIR = "dist"


class DashboardRuntime:
    """Every long-lived component of one server process, wired together.

    ``open()`` selects the initial source and connects the callbacks;
    ``start()`` launches the discovery and broadcast timers on the running
    loop; ``stop()`` tears everything down.
    """

    def __init__(
        self,
        config: Config,
        discovery: DiscoveryService | None = None,
        manager: SourceManager | None = None,
    ) -> None:
        self.config = config
        self.discovery = discovery or DiscoveryService(
            config.discovery.roots,
            marker_dir=config.discovery.marker_dir,
            required_files=config.discovery.required_files,
            interval_s=config.discovery.interval_s,
        )
        self.manager = manager or SourceManager(
            self.discovery,
            demo_forced=config.source.demo,
            override_dir=config.source.overstory_dir,
        )
        self.rate = CostRateTracker(window_s=config.polling.rate_window_s)
        self.engine = DeltaEngine(self.manager, recent_messages=config.polling.recent_messages)
        self.gateway = ConnectionGateway(self.manager, self.engine, self.rate)
        self.static_dir = Path(config.server.static_dir or DEFAULT_STATIC_DIR).expanduser()
        self._opened = False

    def open(self) -> None:
        """Select the initial source and wire change callbacks.

        Raises:
            FatalStartupError: If a pinned source can't be opened.
        """
        if self._opened:
            return
        self.manager.start()
        self.manager.on_switch(self._on_switch)
        self.discovery.set_probe(self.manager.probe_live_count)
        self.discovery.on_change(lambda _instances: self.gateway.mark_dashboard_changed())
        self._opened = True

    def _on_switch(self, provider: DataProvider) -> None:
        self.rate.reset()
        self.gateway.mark_source_switched(provider)

    def start(self) -> None:
        """Start discovery and the broadcast tick on the running event loop."""
        self.open()
        self.discovery.start()
        self.gateway.start(self.config.polling.interval_ms / 1000.0)

    async def stop(self) -> None:
        await self.gateway.stop()
        await self.gateway.close_all()
        await self.discovery.stop()
        self.manager.close()


async def serve(config: Config) -> None:
    """Run the dashboard until the server exits.

    Raises:
        FatalStartupError: If a pinned source can't be opened.
    """
    from swarmviz.dashboard.routes import create_app

    runtime = DashboardRuntime(config)
    runtime.open()
    app = create_app(runtime)

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level="warning",
            access_log=False,
        )
    )

    runtime.start()
    log.info(
        "swarm-viz listening on http://%s:%d (%s mode)",
        config.server.host,
        config.server.port,
        runtime.manager.mode,
    )
    try:
        await server.serve()
    except asyncio.CancelledError:
        log.debug("Server task cancelled")
        raise
    finally:
        await runtime.stop()
        log.info("swarm-viz stopped")
