"""Data sources: live instances and the demo simulator."""

from swarmviz.sources.base import DataProvider
from swarmviz.sources.live import LiveProvider, count_active_agents
from swarmviz.sources.manager import SourceManager, pick_candidate
from swarmviz.sources.stores import SqliteStore, StoreState, open_readonly
from swarmviz.sources.synthetic import SyntheticProvider

__all__ = [
    "DataProvider",
    "LiveProvider",
    "SyntheticProvider",
    "SourceManager",
    "SqliteStore",
    "StoreState",
    "count_active_agents",
    "open_readonly",
    "pick_candidate",
]
