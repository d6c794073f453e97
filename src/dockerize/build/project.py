"""Project root discovery.

Walks from a starting directory up through its ancestors until one of them
holds the manifest (``Cargo.toml`` by default). The resulting
:class:`ProjectContext` is threaded through every later stage; nothing
after discovery reads the process's current directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dockerize.core.errors import ProjectNotFoundError
from dockerize.core.logging import get_logger
from dockerize.core.settings import DEFAULT_MANIFEST

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProjectContext:
    """Absolute project root plus the manifest that marks it."""

    root: Path
    """Absolute path of the directory holding the manifest."""

    manifest_name: str = DEFAULT_MANIFEST
    """File name of the manifest within ``root``."""

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest_name

    def resolve(self, relative: str | Path) -> Path:
        """Resolve a path against the project root (absolute paths pass through)."""
        return self.root / relative


def locate_project(
    start: Path | None = None,
    manifest_name: str = DEFAULT_MANIFEST,
) -> ProjectContext:
    """Find the closest ancestor of ``start`` (inclusive) holding ``manifest_name``.

    Parameters
    ----------
    start
        Directory to begin the search from. Defaults to the current
        working directory.
    manifest_name
        Manifest file to look for at each level.

    Raises
    ------
    ProjectNotFoundError
        If the filesystem root is reached without a match.
    """
    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        if (directory / manifest_name).is_file():
            logger.debug("project.located", root=str(directory), manifest=manifest_name)
            return ProjectContext(root=directory, manifest_name=manifest_name)

    raise ProjectNotFoundError(
        f"Could not find {manifest_name} in {origin} or any parent directory"
    ).with_context(start=str(origin), manifest=manifest_name)
