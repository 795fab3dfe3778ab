"""Web-facing side of swarm-viz.

Serves the rendering client's static assets, a websocket stream at ``/ws``
(snapshot on connect, then deltas every poll), and a few read-only REST
endpoints (``/health``, ``/api/state``, ``/api/snapshot``,
``/api/events/recent``, ``/api/tokens``).
"""

from swarmviz.dashboard.gateway import ConnectionGateway, broadcast_tick
from swarmviz.dashboard.routes import create_app
from swarmviz.dashboard.server import DashboardRuntime, serve

__all__ = [
    "ConnectionGateway",
    "DashboardRuntime",
    "broadcast_tick",
    "create_app",
    "serve",
]
