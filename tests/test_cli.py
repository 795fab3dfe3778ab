"""Tests for the command-line interface."""

from __future__ import annotations

from pathlib import Path

import pytest

from swarmviz import __version__
from swarmviz.cli import create_parser, overrides_from_args, run_cli
from swarmviz.config.schema import Config
from swarmviz.errors import FatalStartupError


class TestParser:
    """Tests for argument parsing."""

    def test_defaults_leave_config_alone(self) -> None:
        parsed = create_parser().parse_args([])
        assert overrides_from_args(parsed) == {}

    def test_all_flags(self) -> None:
        parsed = create_parser().parse_args([
            "--host", "0.0.0.0",
            "--port", "8080",
            "--demo",
            "--overstory-dir", "/work/.overstory",
            "--poll-ms", "250",
        ])
        assert overrides_from_args(parsed) == {
            "server": {"host": "0.0.0.0", "port": 8080},
            "source": {"demo": True, "overstory_dir": "/work/.overstory"},
            "polling": {"interval_ms": 250},
        }

    @pytest.mark.parametrize(("flags", "expected"), [(["-v"], 3), (["-vv"], 4), (["-vvv"], 4)])
    def test_verbosity(self, flags: list[str], expected: int) -> None:
        parsed = create_parser().parse_args(flags)
        assert overrides_from_args(parsed)["logging"]["verbose"] == expected

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestRunCli:
    """Tests for the top-level run loop."""

    @pytest.fixture(autouse=True)
    def quiet(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in ("OVERSTORY_DIR", "DEMO_MODE", "PORT", "HOST", "POLL_INTERVAL_MS"):
            monkeypatch.delenv(key, raising=False)
        monkeypatch.setattr("swarmviz.logging.setup_logging", lambda config=None: None)

    def test_serves_with_merged_config(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        seen: list[Config] = []

        async def fake_serve(config: Config) -> None:
            seen.append(config)

        monkeypatch.setattr("swarmviz.dashboard.server.serve", fake_serve)
        code = run_cli(["--project-root", str(tmp_path), "--port", "4321", "--demo"])
        assert code == 0
        assert seen[0].server.port == 4321
        assert seen[0].source.demo is True

    def test_fatal_startup_returns_one(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """A pinned source that can't be opened exits non-zero."""

        async def failing_serve(config: Config) -> None:
            raise FatalStartupError(tmp_path / ".overstory")

        monkeypatch.setattr("swarmviz.dashboard.server.serve", failing_serve)
        assert run_cli(["--project-root", str(tmp_path)]) == 1

    def test_interrupt_is_clean_exit(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        async def interrupted(config: Config) -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr("swarmviz.dashboard.server.serve", interrupted)
        assert run_cli(["--project-root", str(tmp_path)]) == 0

    def test_real_startup_failure(self, tmp_path: Path) -> None:
        """An empty pinned directory fails before the server binds."""
        empty = tmp_path / ".overstory"
        empty.mkdir()
        assert run_cli(["--project-root", str(tmp_path), "--overstory-dir", str(empty)]) == 1
