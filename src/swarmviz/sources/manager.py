"""Source selection: owns the single active data provider.

Startup picks either a pinned live location (``overstory_dir``) or the demo
simulator. Afterwards, unless pinned or forced into demo mode, discovery
updates drive switching: the instance with the most live agents wins, and
when no instance has live agents the manager falls back to demo mode.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from swarmviz.discovery import DiscoveryService
from swarmviz.errors import FatalStartupError, SourceUnavailableError
from swarmviz.logging import get_logger
from swarmviz.protocol import DashboardMode, DashboardState, DiscoveredProject
from swarmviz.records import (
    AgentSession,
    DiscoveredInstance,
    MailMessage,
    MergeEntry,
    MetricsSession,
    SwarmEvent,
    TokenSnapshot,
)
from swarmviz.sources.base import DataProvider
from swarmviz.sources.live import LiveProvider, count_active_agents
from swarmviz.sources.synthetic import SyntheticProvider

log = get_logger("sources.manager")

Connector = Callable[[str, Path], DataProvider]
SwitchHandler = Callable[[DataProvider], None]

STATE_DIR_NAME = ".overstory"


def instance_name_for(state_dir: Path) -> str:
    """Display name for a pinned location: the project dir owning the state dir."""
    if state_dir.name == STATE_DIR_NAME and state_dir.parent.name:
        return state_dir.parent.name
    return state_dir.name


def pick_candidate(instances: list[DiscoveredInstance]) -> DiscoveredInstance | None:
    """The instance with the highest positive live-agent count, if any.

    Ties keep discovery order.
    """
    best: DiscoveredInstance | None = None
    for instance in instances:
        if instance.live_agents <= 0:
            continue
        if best is None or instance.live_agents > best.live_agents:
            best = instance
    return best


class SourceManager:
    """Owns the active ``DataProvider`` and forwards queries to it.

    Example:
        manager = SourceManager(discovery, demo_forced=False, override_dir=None)
        manager.start()
        sessions = manager.sessions()
    """

    def __init__(
        self,
        discovery: DiscoveryService | None = None,
        demo_forced: bool = False,
        override_dir: str | Path | None = None,
        connector: Connector = LiveProvider.open,
        synthetic_factory: Callable[[], DataProvider] = SyntheticProvider,
    ) -> None:
        self._discovery = discovery
        self._demo_forced = demo_forced
        self._override_dir = Path(override_dir).expanduser() if override_dir else None
        self._connect = connector
        self._synthetic_factory = synthetic_factory

        self._provider: DataProvider | None = None
        self._frozen = False
        self._switch_handlers: list[SwitchHandler] = []
        self._unsubscribe: Callable[[], None] | None = None

    # Lifecycle

    def start(self) -> None:
        """Select the initial provider and subscribe to discovery.

        Raises:
            FatalStartupError: If ``override_dir`` is set (and demo mode is
                not forced) but its session store can't be opened.
        """
        if self._override_dir is not None and not self._demo_forced:
            state_dir = self._override_dir.resolve()
            try:
                provider = self._connect(instance_name_for(state_dir), state_dir)
            except SourceUnavailableError as e:
                raise FatalStartupError(state_dir, e) from e
            self._provider = provider
            self._frozen = True
            log.info("Pinned to %s; auto-switching disabled", state_dir)
        else:
            self._provider = self._synthetic_factory()
            self._frozen = self._demo_forced
            log.info("Starting in demo mode%s", " (forced)" if self._demo_forced else "")

        if self._discovery is not None and not self._frozen:
            self._unsubscribe = self._discovery.on_change(self.handle_discovery)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._provider is not None:
            self._provider.close()
            self._provider = None

    # State

    @property
    def provider(self) -> DataProvider:
        if self._provider is None:
            raise RuntimeError("SourceManager.start() has not been called")
        return self._provider

    @property
    def mode(self) -> DashboardMode:
        return self.provider.mode

    @property
    def active_name(self) -> str | None:
        return self.provider.name

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_active(self, name: str) -> bool:
        return self.mode == "live" and self.active_name == name

    def on_switch(self, handler: SwitchHandler) -> Callable[[], None]:
        """Register a handler called with the new provider after each switch.

        Returns:
            A function that unregisters the handler.
        """
        self._switch_handlers.append(handler)

        def unregister() -> None:
            if handler in self._switch_handlers:
                self._switch_handlers.remove(handler)

        return unregister

    # Switching

    def handle_discovery(self, instances: list[DiscoveredInstance]) -> bool:
        """React to a discovery update.

        Returns:
            True if the active provider changed.
        """
        if self._frozen:
            return False

        candidate = pick_candidate(instances)
        if candidate is not None:
            if self.mode == "live" and self.active_name == candidate.name:
                return False
            try:
                provider = self._connect(candidate.name, Path(candidate.state_dir))
            except SourceUnavailableError as e:
                log.warning("Failed to switch to %s: %s", candidate.name, e)
                return False
            log.info(
                "Switching to live source %s (%d live agents)",
                candidate.name,
                candidate.live_agents,
            )
            self._replace(provider)
            return True

        if self.mode == "live":
            log.info("No live agents anywhere; switching to demo mode")
            self._replace(self._synthetic_factory())
            return True
        return False

    def _replace(self, provider: DataProvider) -> None:
        previous = self._provider
        if previous is not None:
            previous.close()
        self._provider = provider
        for handler in list(self._switch_handlers):
            try:
                handler(provider)
            except Exception:
                log.exception("Source switch handler failed")

    # Live-count feedback

    def poll_active_agent_count(self) -> int:
        """Working/booting sessions in the active provider."""
        return self.provider.active_agent_count()

    def probe_live_count(self, instance: DiscoveredInstance) -> int:
        """Live-agent count for any discovered instance.

        The active instance is asked through its open provider; others get a
        short read-only probe.
        """
        if self.is_active(instance.name):
            return self.poll_active_agent_count()
        return count_active_agents(instance.state_dir)

    def build_dashboard_state(self) -> DashboardState:
        instances = self._discovery.get_current() if self._discovery else []
        return DashboardState(
            mode=self.mode,
            active_project=self.active_name if self.mode == "live" else None,
            projects=[
                DiscoveredProject(
                    name=i.name,
                    path=i.path,
                    overstory_dir=i.state_dir,
                    active=self.is_active(i.name),
                    active_agents=i.live_agents,
                )
                for i in instances
            ],
        )

    # Forwarded queries

    def tick(self) -> None:
        self.provider.tick()

    def sessions(self) -> list[AgentSession]:
        return self.provider.sessions()

    def recent_messages(self, limit: int) -> list[MailMessage]:
        return self.provider.recent_messages(limit)

    def messages_since(self, since: str) -> list[MailMessage]:
        return self.provider.messages_since(since)

    def message_count(self) -> int:
        return self.provider.message_count()

    def merge_queue(self) -> list[MergeEntry]:
        return self.provider.merge_queue()

    def metrics_sessions(self) -> list[MetricsSession]:
        return self.provider.metrics_sessions()

    def token_snapshots(self) -> list[TokenSnapshot]:
        return self.provider.token_snapshots()

    def recent_events(self, limit: int) -> list[SwarmEvent]:
        return self.provider.recent_events(limit)

    def events_after(self, after_id: int) -> list[SwarmEvent]:
        return self.provider.events_after(after_id)

    def max_event_id(self) -> int:
        return self.provider.max_event_id()

    def store_status(self) -> dict[str, bool]:
        return self.provider.store_status()
