"""Container image build.

Drives ``docker build`` (or any CLI with the same arguments, e.g.
``podman``) once per run. The invocation is assembled as::

    docker build -f <dockerfile> -t <name>:<tag> [-t <name>:<extra> ...]
                 [--label <key>=<value> ...] <project root>

Additional tags and labels keep the order they were given in. The
Dockerfile is checked before anything is spawned.
"""

from __future__ import annotations

from pathlib import Path

from dockerize.build.config import ResolvedConfig
from dockerize.build.descriptors import DescriptorSet
from dockerize.build.project import ProjectContext
from dockerize.core.errors import ImageBuildFailedError, MissingBuildFileError
from dockerize.core.logging import get_logger
from dockerize.core.protocols import ProcessRunner

logger = get_logger(__name__)


def dockerfile_path(project: ProjectContext, config: ResolvedConfig) -> Path:
    """Absolute path of the configured Dockerfile."""
    return project.resolve(config.dockerfile)


def check_build_file(project: ProjectContext, config: ResolvedConfig) -> Path:
    """Return the Dockerfile path, or raise if it does not exist.

    Raises
    ------
    MissingBuildFileError
        If the path is missing or is not a file.
    """
    path = dockerfile_path(project, config)
    if not path.is_file():
        raise MissingBuildFileError(f"Dockerfile not found at: {path}").with_context(
            path=str(path)
        )
    return path


def build_args(
    project: ProjectContext,
    config: ResolvedConfig,
    descriptors: DescriptorSet,
) -> list[str]:
    """Arguments for the container CLI ``build`` sub-command."""
    args = ["build", "-f", str(dockerfile_path(project, config)), "-t", config.image_ref]
    for ref in config.additional_refs:
        args.extend(["-t", ref])
    for label in descriptors.as_args():
        args.extend(["--label", label])
    args.append(str(project.root))
    return args


class ImageBuilder:
    """Builds and tags the container image.

    Parameters
    ----------
    runner
        Process runner.
    engine
        Container CLI (``docker`` by default).
    """

    def __init__(self, runner: ProcessRunner, engine: str = "docker") -> None:
        self.runner = runner
        self.engine = engine

    def build(
        self,
        project: ProjectContext,
        config: ResolvedConfig,
        descriptors: DescriptorSet,
    ) -> str:
        """Build the image and return its primary reference.

        Raises
        ------
        MissingBuildFileError
            If the Dockerfile does not exist (nothing is spawned).
        ImageBuildFailedError
            If the build exits non-zero or the engine cannot be launched.
        """
        check_build_file(project, config)
        args = build_args(project, config, descriptors)

        logger.info(
            "image.build.started",
            image=config.image_ref,
            additional=config.additional_refs,
            labels=len(descriptors),
        )
        try:
            returncode = self.runner.run(self.engine, args, project.root)
        except OSError as exc:
            raise ImageBuildFailedError(
                f"Failed to execute {self.engine} build: {exc}", cause=exc
            ).with_context(image=config.image_ref) from exc

        if returncode != 0:
            raise ImageBuildFailedError(
                f"{self.engine} build failed for {config.image_ref} (exit {returncode})",
                returncode=returncode,
            ).with_context(image=config.image_ref)

        logger.info("image.built", image=config.image_ref)
        return config.image_ref
