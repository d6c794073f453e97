"""Compile the project before it is packaged.

Runs the build toolchain (``cargo build --release`` by default) in the
project root and waits for it. The child's output goes straight to the
terminal; only the exit status is inspected.
"""

from __future__ import annotations

from collections.abc import Sequence

from dockerize.build.project import ProjectContext
from dockerize.core.errors import BuildFailedError
from dockerize.core.logging import get_logger
from dockerize.core.protocols import ProcessRunner

logger = get_logger(__name__)

DEFAULT_BUILD_COMMAND: tuple[str, ...] = ("cargo", "build", "--release")


class BuildOrchestrator:
    """Runs the release build of a project.

    Parameters
    ----------
    runner
        Process runner.
    command
        Build command and arguments.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        command: Sequence[str] = DEFAULT_BUILD_COMMAND,
    ) -> None:
        if not command:
            raise ValueError("build command must not be empty")
        self.runner = runner
        self.command = list(command)

    def build(self, project: ProjectContext) -> None:
        """Run the build in ``project.root``.

        Raises
        ------
        BuildFailedError
            If the build exits non-zero or cannot be launched.
        """
        program, *args = self.command
        display = " ".join(self.command)
        logger.info("build.started", command=display, cwd=str(project.root))

        try:
            returncode = self.runner.run(program, args, project.root)
        except OSError as exc:
            raise BuildFailedError(
                f"Failed to execute {display}: {exc}", cause=exc
            ).with_context(command=display) from exc

        if returncode != 0:
            raise BuildFailedError(
                f"{display} failed (exit {returncode})", returncode=returncode
            ).with_context(command=display)
        logger.info("build.finished", command=display)
