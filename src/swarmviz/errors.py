"""Exception types for swarm-viz.

Only startup can fail loudly. Everything on the polling path degrades to
empty results instead of raising.
"""

from __future__ import annotations

from pathlib import Path


class SwarmVizError(Exception):
    """Base class for swarm-viz errors."""


class SourceUnavailableError(SwarmVizError):
    """A live source could not be opened (its session store is unusable)."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class FatalStartupError(SwarmVizError):
    """The explicitly configured source failed to open at startup."""

    def __init__(self, path: Path | str, cause: BaseException | None = None) -> None:
        self.path = Path(path)
        self.cause = cause
        detail = f" ({cause})" if cause else ""
        super().__init__(
            f"Failed to open required session store under {self.path}{detail}. "
            "Set OVERSTORY_DIR to the .overstory directory path."
        )
