"""swarm-viz: read-only live observer for an agent orchestration swarm."""

__version__ = "0.1.0"

# Public API
from swarmviz.config import Config, load_config
from swarmviz.delta import ClientTracker, DeltaEngine
from swarmviz.discovery import DiscoveryService
from swarmviz.errors import FatalStartupError, SourceUnavailableError, SwarmVizError
from swarmviz.simulator import SwarmSimulator
from swarmviz.sources import DataProvider, LiveProvider, SourceManager, SyntheticProvider

__all__ = [
    "__version__",
    # Config
    "Config",
    "load_config",
    # Sources
    "DataProvider",
    "LiveProvider",
    "SyntheticProvider",
    "SourceManager",
    "SwarmSimulator",
    "DiscoveryService",
    # Deltas
    "DeltaEngine",
    "ClientTracker",
    # Errors
    "SwarmVizError",
    "SourceUnavailableError",
    "FatalStartupError",
]
