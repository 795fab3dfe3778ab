"""Configuration management for swarm-viz.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/swarmviz/ or %PROGRAMDATA%)
- User-level config (~/.config/swarmviz/ or %APPDATA%)
- Project-level config (<project_root>/.swarmviz/)
- Environment overrides, including an optional .env file (highest priority)

Example usage:
    from swarmviz.config import load_config

    config = load_config(project_root="/path/to/checkout")
    print(config.server.port)
    print(config.source.overstory_dir)
"""

from swarmviz.config.loader import (
    env_overrides,
    load_config,
)
from swarmviz.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from swarmviz.config.schema import (
    Config,
    DiscoveryConfig,
    LoggingConfig,
    PollingConfig,
    ServerConfig,
    SourceConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "env_overrides",
    # Schema types
    "ServerConfig",
    "PollingConfig",
    "SourceConfig",
    "DiscoveryConfig",
    "LoggingConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
