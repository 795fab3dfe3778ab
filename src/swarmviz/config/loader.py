"""Configuration file loading.

Handles:
- YAML file parsing
- Environment overrides (process environment and an optional .env file)
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from swarmviz.config.merge import merge_configs
from swarmviz.config.paths import get_config_paths, get_env_file_path
from swarmviz.config.schema import (
    DEFAULT_DISCOVERY_ROOTS,
    Config,
    DiscoveryConfig,
    LoggingConfig,
    PollingConfig,
    ServerConfig,
    SourceConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("swarmviz.config")

_TRUTHY = {"1", "true", "yes", "on"}

_KNOWN_SECTIONS = {"server", "polling", "source", "discovery", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def _env_int(env: Mapping[str, str | None], key: str) -> int | None:
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        _log.warning("Ignoring non-integer %s=%r", key, raw)
        return None


def read_environment(project_root: str | Path | None = None) -> dict[str, str | None]:
    """Collect env-style settings: ``.env`` values overlaid by ``os.environ``."""
    env: dict[str, str | None] = {}
    env_file = get_env_file_path(project_root)
    if env_file.is_file():
        env.update(dotenv_values(env_file))
    env.update(os.environ)
    return env


def env_overrides(env: Mapping[str, str | None]) -> dict[str, Any]:
    """Build a config layer from environment-style keys.

    Recognized: OVERSTORY_DIR, DEMO_MODE, HOST, PORT, STATIC_DIR,
    POLL_INTERVAL_MS, SWARMVIZ_LOG, SWARMVIZ_LOG_LEVEL.
    """
    overrides: dict[str, Any] = {}

    def put(section: str, key: str, value: Any) -> None:
        if value is not None and value != "":
            overrides.setdefault(section, {})[key] = value

    put("source", "overstory_dir", env.get("OVERSTORY_DIR"))
    demo = env.get("DEMO_MODE")
    if demo:
        put("source", "demo", demo.strip().lower() in _TRUTHY)

    put("server", "host", env.get("HOST"))
    put("server", "port", _env_int(env, "PORT"))
    put("server", "static_dir", env.get("STATIC_DIR"))

    put("polling", "interval_ms", _env_int(env, "POLL_INTERVAL_MS"))

    put("logging", "file", env.get("SWARMVIZ_LOG"))
    put("logging", "level", env.get("SWARMVIZ_LOG_LEVEL"))

    return overrides


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    server_data = data.get("server") or {}
    server = ServerConfig(
        host=str(server_data.get("host", "127.0.0.1")),
        port=int(server_data.get("port", 3000)),
        static_dir=server_data.get("static_dir"),
    )

    polling_data = data.get("polling") or {}
    polling = PollingConfig(
        interval_ms=int(polling_data.get("interval_ms", 500)),
        recent_messages=int(polling_data.get("recent_messages", 50)),
        recent_events=int(polling_data.get("recent_events", 100)),
        rate_window_s=float(polling_data.get("rate_window_s", 30.0)),
    )

    source_data = data.get("source") or {}
    source = SourceConfig(
        overstory_dir=source_data.get("overstory_dir"),
        demo=bool(source_data.get("demo", False)),
    )

    discovery_data = data.get("discovery") or {}
    roots = discovery_data.get("roots", DEFAULT_DISCOVERY_ROOTS)
    required = discovery_data.get("required_files", ["sessions.db"])
    discovery = DiscoveryConfig(
        roots=[r for r in roots if isinstance(r, str)],
        interval_s=float(discovery_data.get("interval_s", 30.0)),
        marker_dir=str(discovery_data.get("marker_dir", ".overstory")),
        required_files=[f for f in required if isinstance(f, str)],
    )

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    unknown = sorted(str(k) for k in data if k not in _KNOWN_SECTIONS)
    if unknown:
        _log.debug("Ignoring unknown config sections: %s", ", ".join(unknown))

    return Config(
        server=server,
        polling=polling,
        source=source,
        discovery=discovery,
        logging=logging_config,
    )


def load_config(
    project_root: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. ``overrides`` (CLI flags)
    2. Environment variables, then ``.env`` in the project root
    3. Project config (<project_root>/.swarmviz/config.yaml)
    4. User config
    5. System config

    Every call reads the files and environment again.
    """
    layers: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            layers.append(config_data)

    layers.append(env_overrides(read_environment(project_root)))
    if overrides:
        layers.append(overrides)

    return dict_to_config(merge_configs(*layers))
