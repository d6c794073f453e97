"""
Protocol definitions for cargo-dockerize.

The pipeline never spawns processes directly. Every stage that needs an
external tool goes through a :class:`ProcessRunner`, so tests substitute a
fake that records invocations instead of running cargo or docker.

Architecture:
    ::

        ProcessRunner Protocol:
        ┌────────────────────────────────────────────────────────────┐
        │ run(command, args, cwd)     → exit status, output streamed │
        │ capture(command, args, cwd) → CapturedOutput               │
        └────────────────────────────────────────────────────────────┘

        Implementations:
        ┌────────────────────────────────────────────────────────────┐
        │ SubprocessRunner (dockerize.build.process) → real tools    │
        │ FakeRunner (tests/conftest.py)             → recorded calls│
        └────────────────────────────────────────────────────────────┘

Tags:
    protocol, subprocess, testing, dockerize
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class CapturedOutput:
    """Exit status and decoded output of a captured process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class ProcessRunner(Protocol):
    """Runs external commands on behalf of the pipeline stages.

    Both methods block until the process exits. Launch failures surface
    as ``OSError`` (``FileNotFoundError`` for a missing binary); stages
    translate them into their own error type.
    """

    def run(self, command: str, args: Sequence[str], cwd: Path) -> int:
        """Run ``command`` with ``args`` in ``cwd`` and return its exit status.

        The child inherits the caller's stdout/stderr.
        """
        ...

    def capture(self, command: str, args: Sequence[str], cwd: Path) -> CapturedOutput:
        """Run a short query command and capture its output."""
        ...


__all__ = ["CapturedOutput", "ProcessRunner"]
