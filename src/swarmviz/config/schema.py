"""Configuration schema dataclasses for swarm-viz.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_DISCOVERY_ROOTS = ["~/Dev/projects", "~/gt"]


@dataclass
class ServerConfig:
    """HTTP/websocket listener configuration."""

    host: str = "127.0.0.1"
    port: int = 3000
    static_dir: str | None = None  # Default: ./dist


@dataclass
class PollingConfig:
    """Broadcast tick configuration.

    Example config.yaml:
        polling:
          interval_ms: 500
          recent_messages: 50
    """

    interval_ms: int = 500
    recent_messages: int = 50  # Messages included in a snapshot
    recent_events: int = 100  # Events returned by /api/events/recent
    rate_window_s: float = 30.0  # Rolling window for cost-per-minute


@dataclass
class SourceConfig:
    """Data source selection.

    Setting ``overstory_dir`` pins the dashboard to one location and disables
    discovery-driven switching. ``demo`` forces the simulator.
    """

    overstory_dir: str | None = None
    demo: bool = False


@dataclass
class DiscoveryConfig:
    """Source instance discovery.

    Each root is scanned one level deep; a child directory qualifies when
    ``<child>/<marker_dir>/<required file>`` exists and is non-empty.
    """

    roots: list[str] = field(default_factory=lambda: list(DEFAULT_DISCOVERY_ROOTS))
    interval_s: float = 30.0
    marker_dir: str = ".overstory"
    required_files: list[str] = field(default_factory=lambda: ["sessions.db"])


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, takes precedence over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
