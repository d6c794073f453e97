"""Export a built image as a compressed archive.

Saves the image with ``docker save -o`` to an intermediate tar, then
compresses that tar with ``gzip`` into
``{project root}/{image name}-{primary tag}.tgz``. Both steps run in one
shell script from the project root; the compressor only runs when the save
succeeded, so the script's exit status reflects a failed save as well as a
failed compression. The intermediate tar is always removed. A failed export
never touches the image that was already built, but a partially written
archive is removed.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path

from dockerize.build.config import ResolvedConfig
from dockerize.build.project import ProjectContext
from dockerize.core.errors import ExportFailedError
from dockerize.core.logging import get_logger
from dockerize.core.protocols import ProcessRunner

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExportRequest:
    """Which image to export and where the archive goes."""

    image_ref: str
    archive_name: str
    archive_path: Path

    @classmethod
    def for_config(cls, project: ProjectContext, config: ResolvedConfig) -> ExportRequest:
        return cls(
            image_ref=config.image_ref,
            archive_name=config.archive_name,
            archive_path=project.root / config.archive_name,
        )

    @property
    def tar_name(self) -> str:
        """Intermediate, uncompressed ``save`` output beside the archive."""
        return self.archive_name.removesuffix(".tgz") + ".tar"

    @property
    def tar_path(self) -> Path:
        return self.archive_path.with_name(self.tar_name)


class Exporter:
    """Saves an image and compresses it into an archive.

    Parameters
    ----------
    runner
        Process runner.
    engine
        Container CLI providing ``save -o``.
    compressor
        Command reading the tar on stdin and writing to stdout.
    shell
        Shell executing the script.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        engine: str = "docker",
        compressor: str = "gzip",
        shell: str = "sh",
    ) -> None:
        self.runner = runner
        self.engine = engine
        self.compressor = compressor
        self.shell = shell

    def pipeline(self, request: ExportRequest) -> str:
        """Shell script for ``request``, with every operand quoted.

        Exits with the save's status when it fails, otherwise with the
        compressor's.
        """
        tar = shlex.quote(request.tar_name)
        return (
            f"{shlex.quote(self.engine)} save -o {tar} {shlex.quote(request.image_ref)}"
            f" && {self.compressor} < {tar} > {shlex.quote(request.archive_name)};"
            f" status=$?; rm -f {tar}; exit $status"
        )

    def export(self, project: ProjectContext, request: ExportRequest) -> Path:
        """Write the archive and return its path.

        Raises
        ------
        ExportFailedError
            If the script exits non-zero or the shell cannot be launched.
        """
        script = self.pipeline(request)
        logger.info("export.started", image=request.image_ref, archive=str(request.archive_path))

        try:
            returncode = self.runner.run(self.shell, ["-c", script], project.root)
        except OSError as exc:
            raise ExportFailedError(
                f"Failed to export {request.image_ref}: {exc}", cause=exc
            ).with_context(archive=str(request.archive_path)) from exc

        if returncode != 0:
            request.archive_path.unlink(missing_ok=True)
            request.tar_path.unlink(missing_ok=True)
            raise ExportFailedError(
                f"Docker export failed for {request.image_ref} (exit {returncode})",
                returncode=returncode,
            ).with_context(archive=str(request.archive_path))

        logger.info("export.finished", archive=str(request.archive_path))
        return request.archive_path
