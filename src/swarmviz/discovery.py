"""Discovery of source instances on disk.

Scans configured root directories one level deep for projects that contain
a populated state directory (``.overstory/`` by default). Rescans on a fixed
interval and notifies handlers only when the set of instance paths changes
or when an instance's live-agent count changes.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from swarmviz.logging import get_logger
from swarmviz.records import DiscoveredInstance

log = get_logger("discovery")

DEFAULT_INTERVAL_S = 30.0
DEFAULT_MARKER_DIR = ".overstory"
DEFAULT_REQUIRED_FILES = ("sessions.db",)

DiscoveryHandler = Callable[[list[DiscoveredInstance]], None]
LiveCountProbe = Callable[[DiscoveredInstance], int | None]


def _has_content(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def scan_root(
    root: Path,
    marker_dir: str = DEFAULT_MARKER_DIR,
    required_files: Sequence[str] = DEFAULT_REQUIRED_FILES,
) -> list[DiscoveredInstance]:
    """Return every child of ``root`` holding a valid state directory.

    A missing or unreadable root contributes nothing.
    """
    try:
        entries = sorted(os.listdir(root))
    except OSError:
        return []

    found: list[DiscoveredInstance] = []
    for entry in entries:
        project = root / entry
        try:
            if not project.is_dir():
                continue
        except OSError:
            continue

        state_dir = project / marker_dir
        if not all(_has_content(state_dir / name) for name in required_files):
            continue

        found.append(
            DiscoveredInstance(
                name=project.name,
                path=str(project.resolve()),
                state_dir=str(state_dir.resolve()),
            )
        )
    return found


def discover_instances(
    roots: Iterable[Path],
    marker_dir: str = DEFAULT_MARKER_DIR,
    required_files: Sequence[str] = DEFAULT_REQUIRED_FILES,
) -> list[DiscoveredInstance]:
    """Scan all roots and return instances, de-duplicated by path."""
    seen: set[str] = set()
    result: list[DiscoveredInstance] = []
    for root in roots:
        for instance in scan_root(root, marker_dir, required_files):
            if instance.path in seen:
                continue
            seen.add(instance.path)
            result.append(instance)
    return result


def instances_key(instances: Iterable[DiscoveredInstance]) -> str:
    """Structural fingerprint of an instance list: its sorted paths."""
    return "|".join(sorted(i.path for i in instances))


class DiscoveryService:
    """Periodically rescans roots and reports discovered instances.

    Example:
        discovery = DiscoveryService([Path("~/Dev/projects").expanduser()])
        discovery.on_change(lambda instances: print(len(instances)))
        discovery.start()  # inside a running event loop
    """

    def __init__(
        self,
        roots: Iterable[str | Path],
        marker_dir: str = DEFAULT_MARKER_DIR,
        required_files: Sequence[str] = DEFAULT_REQUIRED_FILES,
        interval_s: float = DEFAULT_INTERVAL_S,
        probe: LiveCountProbe | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            roots: Directories whose immediate children are candidate projects
            marker_dir: State directory name inside each project
            required_files: Files that must exist (non-empty) in the state dir
            interval_s: Seconds between rescans once started
            probe: Optional callable returning the live-agent count for an
                instance; used by ``refresh_live_counts``
        """
        self._roots = [Path(r).expanduser() for r in roots]
        self._marker_dir = marker_dir
        self._required_files = tuple(required_files)
        self._interval_s = interval_s
        self._probe = probe

        self._instances: list[DiscoveredInstance] = []
        self._last_key: str | None = None
        self._handlers: list[DiscoveryHandler] = []

        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def set_probe(self, probe: LiveCountProbe | None) -> None:
        self._probe = probe

    def get_current(self) -> list[DiscoveredInstance]:
        """The instance list from the last scan that changed structure."""
        return self._instances

    def find(self, name: str) -> DiscoveredInstance | None:
        for instance in self._instances:
            if instance.name == name:
                return instance
        return None

    def on_change(self, handler: DiscoveryHandler) -> Callable[[], None]:
        """Register a change handler.

        Returns:
            A function that unregisters the handler.
        """
        self._handlers.append(handler)

        def unregister() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unregister

    def scan(self) -> bool:
        """Run one scan; notify handlers only if the path set changed.

        Live-agent counts carry over for instances whose path persists.

        Returns:
            True if handlers were notified.
        """
        discovered = discover_instances(
            self._roots, self._marker_dir, self._required_files
        )
        key = instances_key(discovered)
        if key == self._last_key:
            return False

        previous = {i.path: i.live_agents for i in self._instances}
        for instance in discovered:
            instance.live_agents = previous.get(instance.path, 0)

        self._instances = discovered
        self._last_key = key
        log.info(
            "Discovery scan: %d project(s) found: %s",
            len(discovered),
            ", ".join(i.name for i in discovered) or "(none)",
        )
        self._notify()
        return True

    def update_live_count(self, name: str, count: int) -> bool:
        """Set an instance's live-agent count, notifying only on change.

        Returns:
            True if the count changed and handlers were notified.
        """
        instance = self.find(name)
        if instance is None or instance.live_agents == count:
            return False
        instance.live_agents = count
        log.debug("Live agents for %s: %d", name, count)
        self._notify()
        return True

    def refresh_live_counts(self) -> None:
        """Ask the probe for every instance's count and apply changes."""
        if self._probe is None:
            return
        for instance in list(self._instances):
            count = self._probe(instance)
            if count is not None:
                self.update_live_count(instance.name, count)

    def _notify(self) -> None:
        for handler in list(self._handlers):
            try:
                handler(self._instances)
            except Exception:
                log.exception("Discovery change handler failed")

    def cycle(self) -> None:
        """One full discovery cycle: rescan, then refresh live counts."""
        self.scan()
        self.refresh_live_counts()

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval_s)
            if not self._running:
                break
            try:
                self.cycle()
            except Exception:
                log.exception("Discovery cycle failed")

    def start(self) -> None:
        """Run an initial cycle and start periodic rescans.

        Must be called from within a running event loop.
        """
        if self._running:
            return
        self._running = True
        self.cycle()
        self._task = asyncio.create_task(self._poll_loop())
        log.debug("Discovery started (interval=%.1fs)", self._interval_s)

    async def stop(self) -> None:
        """Stop periodic rescans."""
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        log.debug("Discovery stopped")

    async def __aenter__(self) -> DiscoveryService:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()
