"""Metadata resolution for cargo-dockerize.

Merges three tiers of image metadata into one immutable
:class:`ResolvedConfig`. Precedence, highest first:

1. caller-supplied values (CLI flags) — :class:`CallerOverrides`
2. the project-local override file (``Dockerize.toml``, ``[dockerize]`` table)
3. the manifest (``name`` → image name, ``version`` → primary tag)
4. hardcoded defaults (``Dockerfile``; nothing for descriptor fields)

The override file is best-effort. A file that cannot be read or parsed, a
missing ``[dockerize]`` table, or a key with a value of the wrong type is
logged as a warning and simply contributes nothing, so resolution falls
through to the next tier.

Example override file::

    [dockerize]
    name = "my-service"
    tags = ["latest", "stable"]
    title = "My Service"
    authors = ["Jane Doe <jane@example.com>"]
    licenses = "MIT OR Apache-2.0"

Related Modules:
    - :mod:`dockerize.build.manifest` — manifest tier
    - :mod:`dockerize.build.descriptors` — consumes ResolvedConfig
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dockerize.build.manifest import read_manifest
from dockerize.build.project import ProjectContext
from dockerize.core.errors import ManifestParseError
from dockerize.core.logging import get_logger
from dockerize.core.settings import DEFAULT_OVERRIDE_FILE

logger = get_logger(__name__)

OVERRIDE_SECTION = "dockerize"
DEFAULT_DOCKERFILE = "Dockerfile"

DESCRIPTOR_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "authors",
    "url",
    "source",
    "revision",
    "vendor",
    "licenses",
    "application_name",
)
"""Configurable descriptor fields with no manifest fallback."""

SCALAR_FIELDS: tuple[str, ...] = ("name", "tag", "dockerfile", *DESCRIPTOR_FIELDS)
OVERRIDE_KEYS: frozenset[str] = frozenset((*SCALAR_FIELDS, "tags"))


def split_tags(value: str | Iterable[str]) -> list[str]:
    """Split a comma-separated tag list, keeping order and dropping blanks."""
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class CallerOverrides(BaseModel):
    """Values supplied by the caller; ``None`` means "not supplied".

    Blank strings are normalised to ``None`` so an empty flag never
    shadows a lower tier.
    """

    name: str | None = None
    tag: str | None = None
    tags: list[str] | None = None
    dockerfile: str | None = None
    title: str | None = None
    description: str | None = None
    authors: str | None = None
    url: str | None = None
    source: str | None = None
    revision: str | None = None
    vendor: str | None = None
    licenses: str | None = None
    application_name: str | None = None

    @field_validator(*SCALAR_FIELDS, mode="before")
    @classmethod
    def _blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        tags = [tag for item in value for tag in split_tags(item)]
        return tags or None


class ResolvedConfig(BaseModel):
    """The merged configuration used by every downstream stage.

    Immutable once built. ``image_name`` and ``primary_tag`` are never
    empty; descriptor fields are ``None`` when no tier supplied them.
    """

    model_config = ConfigDict(frozen=True)

    image_name: str = Field(min_length=1)
    primary_tag: str = Field(min_length=1)
    additional_tags: tuple[str, ...] = ()
    dockerfile: str = DEFAULT_DOCKERFILE

    title: str | None = None
    description: str | None = None
    authors: str | None = None
    url: str | None = None
    source: str | None = None
    revision: str | None = None
    vendor: str | None = None
    licenses: str | None = None
    application_name: str | None = None

    @property
    def image_ref(self) -> str:
        """Primary image reference, ``{image_name}:{primary_tag}``."""
        return f"{self.image_name}:{self.primary_tag}"

    @property
    def additional_refs(self) -> list[str]:
        """``{image_name}:{tag}`` for every additional tag, in order."""
        return [f"{self.image_name}:{tag}" for tag in self.additional_tags]

    @property
    def archive_name(self) -> str:
        """Export archive file name, ``{image_name}-{primary_tag}.tgz``."""
        return f"{self.image_name}-{self.primary_tag}.tgz"


# ---------------------------------------------------------------------------
# Override file
# ---------------------------------------------------------------------------


def load_override_file(path: Path) -> dict[str, Any]:
    """Read the ``[dockerize]`` table of an override file.

    Returns a dict holding only keys that can be used: strings for scalar
    fields (``authors`` arrays are joined with ``", "``) and a list for
    ``tags``. A missing file yields ``{}`` silently; every other problem
    yields ``{}`` or drops the offending key with a warning.
    """
    if not path.is_file():
        return {}

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.warning("override_file.invalid", path=str(path), error=str(exc))
        return {}

    section = data.get(OVERRIDE_SECTION)
    if section is None:
        logger.warning("override_file.no_section", path=str(path), section=OVERRIDE_SECTION)
        return {}
    if not isinstance(section, dict):
        logger.warning("override_file.invalid_section", path=str(path), section=OVERRIDE_SECTION)
        return {}

    values: dict[str, Any] = {}
    for key, raw in section.items():
        if key not in OVERRIDE_KEYS:
            logger.warning("override_file.unknown_key", path=str(path), key=key)
            continue
        value = _coerce_override_value(key, raw)
        if value is None:
            logger.warning(
                "override_file.invalid_value",
                path=str(path),
                key=key,
                type=type(raw).__name__,
            )
            continue
        if value:
            values[key] = value
    return values


def _coerce_override_value(key: str, raw: Any) -> Any:
    """Normalise one override value; ``None`` marks it unusable."""
    is_string_list = isinstance(raw, list) and all(isinstance(item, str) for item in raw)
    if key == "tags":
        if isinstance(raw, str) or is_string_list:
            return split_tags(raw)
        return None
    if key == "authors" and is_string_list:
        return ", ".join(item.strip() for item in raw if item.strip())
    if isinstance(raw, str):
        return raw.strip()
    return None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class MetadataResolver:
    """Resolve image metadata for a project.

    Parameters
    ----------
    project
        Located project.
    override_file
        Override file path, relative to the project root (or absolute).
        ``None`` disables the override tier.

    Example::

        resolver = MetadataResolver(project)
        config = resolver.resolve(CallerOverrides(tag="1.0.0"))
        config.image_ref
        # 'demo:1.0.0'
    """

    def __init__(
        self,
        project: ProjectContext,
        override_file: str | Path | None = DEFAULT_OVERRIDE_FILE,
    ) -> None:
        self.project = project
        self.override_path = project.resolve(override_file) if override_file else None

    def resolve(self, overrides: CallerOverrides | None = None) -> ResolvedConfig:
        """Merge caller values, override file, manifest and defaults.

        Raises
        ------
        ManifestParseError
            If the manifest lacks a name or version, or if the winning
            name/version is empty.
        """
        overrides = overrides or CallerOverrides()
        metadata = read_manifest(self.project.manifest_path)
        file_values = load_override_file(self.override_path) if self.override_path else {}

        def pick(key: str, fallback: str | None = None) -> str | None:
            caller_value = getattr(overrides, key)
            if caller_value is not None:
                return caller_value
            return file_values.get(key, fallback)

        image_name = pick("name", metadata.name)
        primary_tag = pick("tag", metadata.version)
        if not image_name:
            raise ManifestParseError("Package name in manifest is empty", field="name")
        if not primary_tag:
            raise ManifestParseError("Package version in manifest is empty", field="version")

        tags = overrides.tags if overrides.tags is not None else file_values.get("tags", [])

        config = ResolvedConfig(
            image_name=image_name,
            primary_tag=primary_tag,
            additional_tags=tuple(tags),
            dockerfile=pick("dockerfile", DEFAULT_DOCKERFILE) or DEFAULT_DOCKERFILE,
            **{key: pick(key) for key in DESCRIPTOR_FIELDS},
        )
        logger.info(
            "config.resolved",
            image=config.image_ref,
            additional_tags=list(config.additional_tags),
            dockerfile=config.dockerfile,
            override_file=bool(file_values),
        )
        return config


def resolve_config(
    project: ProjectContext,
    overrides: CallerOverrides | None = None,
    override_file: str | Path | None = DEFAULT_OVERRIDE_FILE,
) -> ResolvedConfig:
    """Convenience wrapper around :class:`MetadataResolver`."""
    return MetadataResolver(project, override_file=override_file).resolve(overrides)
