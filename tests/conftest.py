"""
Shared pytest fixtures for cargo-dockerize tests.

This module provides:
- A temporary Cargo project (manifest + Dockerfile)
- ``FakeRunner``: a ProcessRunner that records calls instead of spawning
- A fixed clock for deterministic ``created`` labels
- structlog reset between tests

Usage:
    def test_something(cargo_project, fake_runner):
        ...
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest
import structlog

from dockerize.core.protocols import CapturedOutput

FIXED_NOW = datetime(2024, 5, 17, 8, 30, 15, tzinfo=UTC)

MANIFEST = """\
[package]
name = "demo"
version = "0.1.0"
edition = "2021"

[dependencies]
serde = "1"
"""


# =============================================================================
# Fake process runner
# =============================================================================


@dataclass
class Call:
    """One recorded invocation."""

    command: str
    args: list[str]
    cwd: Path
    captured: bool = False

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


@dataclass
class FakeRunner:
    """ProcessRunner that records invocations.

    ``exit_codes`` maps a command name to the status ``run`` returns;
    ``launch_errors`` maps a command name to an exception to raise.
    ``capture`` answers ``git rev-parse HEAD`` with ``revision`` (or
    fails when it is ``None``).
    """

    exit_codes: dict[str, int] = field(default_factory=dict)
    launch_errors: dict[str, OSError] = field(default_factory=dict)
    revision: str | None = None
    calls: list[Call] = field(default_factory=list)

    def run(self, command: str, args: Sequence[str], cwd: Path) -> int:
        self.calls.append(Call(command, list(args), cwd))
        if command in self.launch_errors:
            raise self.launch_errors[command]
        return self.exit_codes.get(command, 0)

    def capture(self, command: str, args: Sequence[str], cwd: Path) -> CapturedOutput:
        self.calls.append(Call(command, list(args), cwd, captured=True))
        if command in self.launch_errors:
            raise self.launch_errors[command]
        if self.revision is None:
            return CapturedOutput(returncode=128, stderr="fatal: not a git repository")
        return CapturedOutput(returncode=0, stdout=f"{self.revision}\n")

    @property
    def spawned(self) -> list[Call]:
        """Streaming (non-capture) invocations."""
        return [call for call in self.calls if not call.captured]

    def commands(self) -> list[str]:
        return [call.command for call in self.spawned]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any ``configure_logging`` done by a test (e.g. via the CLI)."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def cargo_project(tmp_path: Path) -> Path:
    """A minimal Cargo project with a Dockerfile."""
    root = tmp_path / "demo"
    root.mkdir()
    (root / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")
    (root / "Dockerfile").write_text("FROM scratch\n", encoding="utf-8")
    (root / "src").mkdir()
    return root


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
