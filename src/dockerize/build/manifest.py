"""Package name and version from the project manifest.

The manifest is read line by line rather than as TOML: the first line whose
key is ``name`` (and the first whose key is ``version``) wins, wherever it
sits in the file. Surrounding whitespace is ignored and a single pair of
matching quotes around the value is removed::

    name = "demo"        ->  demo
      version='0.1.0'    ->  0.1.0
    name = demo          ->  demo
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from dockerize.core.errors import ManifestParseError

_KEY_LINE = re.compile(r"^\s*(?P<key>name|version)\s*=(?P<value>.*)$")


@dataclass(frozen=True)
class PackageMetadata:
    """Fallback name and version read from the manifest."""

    name: str
    version: str


def unquote(value: str) -> str:
    """Strip whitespace and one pair of matching surrounding quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1].strip()
    return value


def parse_manifest_text(text: str) -> PackageMetadata:
    """Extract ``name`` and ``version`` from manifest text.

    Raises
    ------
    ManifestParseError
        If either key never appears.
    """
    found: dict[str, str] = {}
    for line in text.splitlines():
        match = _KEY_LINE.match(line)
        if match and match.group("key") not in found:
            found[match.group("key")] = unquote(match.group("value"))
        if len(found) == 2:
            break

    for key in ("name", "version"):
        if key not in found:
            raise ManifestParseError(f"Could not find package {key} in manifest", field=key)
    return PackageMetadata(name=found["name"], version=found["version"])


def read_manifest(path: Path) -> PackageMetadata:
    """Read and parse the manifest at ``path``."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestParseError(f"Failed to read {path.name}", cause=exc).with_context(
            path=str(path)
        ) from exc
    try:
        return parse_manifest_text(text)
    except ManifestParseError as exc:
        raise exc.with_context(path=str(path))
