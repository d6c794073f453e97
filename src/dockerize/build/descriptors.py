"""Image descriptor labels.

Builds the ``--label`` set attached to the image from a
:class:`~dockerize.build.config.ResolvedConfig` plus two ambient values:
the creation time and the source-control revision. Keys follow the OCI
image annotation namespace (``org.opencontainers.image.*``).

``version`` and ``created`` are always present. Every other label is
emitted only when its field has a non-empty value; an absent field never
becomes an empty-string label.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from dockerize.build.config import ResolvedConfig
from dockerize.core.logging import get_logger
from dockerize.core.protocols import ProcessRunner

logger = get_logger(__name__)

LABEL_NAMESPACE = "org.opencontainers.image"

LABEL_TITLE = f"{LABEL_NAMESPACE}.title"
LABEL_DESCRIPTION = f"{LABEL_NAMESPACE}.description"
LABEL_VERSION = f"{LABEL_NAMESPACE}.version"
LABEL_CREATED = f"{LABEL_NAMESPACE}.created"
LABEL_AUTHORS = f"{LABEL_NAMESPACE}.authors"
LABEL_URL = f"{LABEL_NAMESPACE}.url"
LABEL_SOURCE = f"{LABEL_NAMESPACE}.source"
LABEL_REVISION = f"{LABEL_NAMESPACE}.revision"
LABEL_VENDOR = f"{LABEL_NAMESPACE}.vendor"
LABEL_LICENSES = f"{LABEL_NAMESPACE}.licenses"
LABEL_APPLICATION_NAME = f"{LABEL_NAMESPACE}.application_name"

# RFC 3339, UTC, second precision
CREATED_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Optional labels in emission order: (label key, ResolvedConfig attribute)
_OPTIONAL_LABELS: tuple[tuple[str, str], ...] = (
    (LABEL_TITLE, "title"),
    (LABEL_DESCRIPTION, "description"),
    (LABEL_AUTHORS, "authors"),
    (LABEL_URL, "url"),
    (LABEL_SOURCE, "source"),
    (LABEL_REVISION, "revision"),
    (LABEL_VENDOR, "vendor"),
    (LABEL_LICENSES, "licenses"),
    (LABEL_APPLICATION_NAME, "application_name"),
)


@dataclass(frozen=True)
class DescriptorSet(Mapping[str, str]):
    """Ordered, read-only mapping of label key to value."""

    entries: tuple[tuple[str, str], ...] = field(default=())

    def __getitem__(self, key: str) -> str:
        for label, value in self.entries:
            if label == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return (label for label, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def as_args(self) -> list[str]:
        """``key=value`` strings in emission order."""
        return [f"{label}={value}" for label, value in self.entries]


def format_created(now: datetime) -> str:
    """Format a timestamp as UTC RFC 3339 (naive datetimes are taken as UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC).strftime(CREATED_FORMAT)


def build_descriptors(
    config: ResolvedConfig,
    *,
    created: datetime,
    revision: str | None = None,
) -> DescriptorSet:
    """Derive the descriptor labels for an image.

    Parameters
    ----------
    config
        Resolved configuration.
    created
        Build timestamp.
    revision
        Source-control revision found in the working tree. Used only when
        the configuration does not set one.
    """
    values = {attr: getattr(config, attr) for _, attr in _OPTIONAL_LABELS}
    if not values["revision"]:
        values["revision"] = revision

    items: list[tuple[str, str]] = [
        (LABEL_VERSION, config.primary_tag),
        (LABEL_CREATED, format_created(created)),
    ]
    for label, attr in _OPTIONAL_LABELS:
        value = values[attr]
        if value and value.strip():
            items.append((label, value.strip()))
    return DescriptorSet(tuple(items))


def lookup_revision(runner: ProcessRunner, root: Path) -> str | None:
    """Best-effort ``git rev-parse HEAD`` in ``root``.

    Any failure (git missing, not a repository, no commits) returns ``None``.
    """
    try:
        result = runner.capture("git", ["rev-parse", "HEAD"], root)
    except OSError as exc:
        logger.debug("revision.unavailable", reason=str(exc))
        return None
    revision = result.stdout.strip()
    if result.returncode != 0 or not revision:
        logger.debug("revision.unavailable", returncode=result.returncode)
        return None
    return revision
