"""Tests for the reqlimit CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from request_limiter import __version__
from request_limiter.cli.app import app
from request_limiter.logging import reset_logging

if TYPE_CHECKING:
    from collections.abc import Generator

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging_state() -> Generator[None, None, None]:
    """The CLI callback configures loguru; undo it after each test."""
    yield
    reset_logging()


class TestVersion:
    """Tests for the --version flag."""

    def test_version(self) -> None:
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestPlanCommand:
    """Tests for `reqlimit plan`."""

    def test_progressive_schedule(self) -> None:
        """The documented 6-batch scenario pauses 900ms in total."""
        result = runner.invoke(
            app,
            [
                "plan",
                "--items", "6",
                "--max", "1",
                "--delay", "100",
                "--step", "100",
                "--cap", "200",
            ],
        )

        assert result.exit_code == 0
        assert "Batches: 6" in result.output
        assert "Minimum total pause: 900 ms" in result.output

    def test_partial_last_batch(self) -> None:
        """Seven items at max 3 make three batches."""
        result = runner.invoke(app, ["plan", "--items", "7", "--max", "3"])

        assert result.exit_code == 0
        assert "Batches: 3" in result.output
        assert "Minimum total pause: 0 ms" in result.output

    def test_invalid_max(self) -> None:
        """A max below one is rejected with exit code 2."""
        result = runner.invoke(app, ["plan", "--max", "0"])

        assert result.exit_code == 2
        assert "Invalid options" in result.output


class TestSimulateCommand:
    """Tests for `reqlimit simulate`."""

    def test_simulate_all_succeed(self) -> None:
        """A failure-free simulation reports every item as succeeded."""
        result = runner.invoke(
            app,
            ["simulate", "--items", "6", "--max", "2", "--latency-ms", "1", "--seed", "7"],
        )

        assert result.exit_code == 0
        assert "Run summary" in result.output
        assert "Succeeded" in result.output

    def test_simulate_all_fail(self) -> None:
        """fail-rate 1 makes every operation fail without failing the command."""
        result = runner.invoke(
            app,
            ["simulate", "--items", "3", "--latency-ms", "1", "--fail-rate", "1"],
        )

        assert result.exit_code == 0
        assert "Failed" in result.output

    def test_simulate_cancel_after(self) -> None:
        """--cancel-after stops the run early and reports cancellation."""
        result = runner.invoke(
            app,
            [
                "simulate",
                "--items", "20",
                "--max", "1",
                "--latency-ms", "50",
                "--cancel-after", "0.1",
            ],
        )

        assert result.exit_code == 0
        assert "yes" in result.output
