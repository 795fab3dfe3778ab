"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    """A discovery root directory (initially empty)."""
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def state_dir(projects_root: Path) -> Path:
    """The (empty) ``.overstory`` directory of a project named ``alpha``."""
    path = projects_root / "alpha" / ".overstory"
    path.mkdir(parents=True)
    return path
