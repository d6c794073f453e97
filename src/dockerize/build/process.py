"""Subprocess-backed :class:`~dockerize.core.protocols.ProcessRunner`.

``run`` lets the child inherit stdout/stderr so cargo and docker progress
output reaches the terminal unmodified. It blocks until the child exits
and applies no timeout. ``capture`` is for short queries (``git rev-parse``)
and does apply one.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

from dockerize.core.logging import get_logger
from dockerize.core.protocols import CapturedOutput

logger = get_logger(__name__)


class SubprocessRunner:
    """Runs commands with :func:`subprocess.run`.

    Parameters
    ----------
    capture_timeout
        Seconds allowed for ``capture`` queries.
    """

    def __init__(self, capture_timeout: int = 30) -> None:
        self.capture_timeout = capture_timeout

    def run(self, command: str, args: Sequence[str], cwd: Path) -> int:
        cmd = [command, *args]
        logger.debug("process.exec", cmd=" ".join(cmd), cwd=str(cwd))
        completed = subprocess.run(cmd, cwd=str(cwd), check=False)
        logger.debug("process.exit", cmd=command, returncode=completed.returncode)
        return completed.returncode

    def capture(self, command: str, args: Sequence[str], cwd: Path) -> CapturedOutput:
        cmd = [command, *args]
        logger.debug("process.capture", cmd=" ".join(cmd), cwd=str(cwd))
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self.capture_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return CapturedOutput(returncode=-1, stderr=f"timed out after {self.capture_timeout}s")
        return CapturedOutput(
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
