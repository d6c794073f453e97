"""Tool-level settings for cargo-dockerize.

Per-project metadata (image name, tags, descriptor labels) is resolved by
:mod:`dockerize.build.config`. This module holds the settings that describe
*how* the tool runs: which manifest marks a project root, which container
CLI to drive, how the project is compiled, and how logs are rendered.

Override precedence: kwargs > ``DOCKERIZE_*`` env vars > field defaults.

Related Modules:
    - :mod:`dockerize.build.workflow` — consumes these settings
    - :mod:`dockerize.cli.app` — builds settings from flags + env
"""

from __future__ import annotations

import os
import shlex
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_MANIFEST = "Cargo.toml"
DEFAULT_OVERRIDE_FILE = "Dockerize.toml"


class DockerizeSettings(BaseModel):
    """Settings controlling the external tools the pipeline drives.

    Example::

        settings = DockerizeSettings.from_env(engine="podman")
        settings.build_command
        # ['cargo', 'build', '--release']
    """

    manifest_name: str = Field(
        default=DEFAULT_MANIFEST,
        description="File whose presence marks the project root",
    )
    override_file: str = Field(
        default=DEFAULT_OVERRIDE_FILE,
        description="Project-local override file, relative to the project root",
    )
    engine: str = Field(
        default="docker",
        description="Container CLI used for build and save (docker, podman, ...)",
    )
    build_command: list[str] = Field(
        default_factory=lambda: ["cargo", "build", "--release"],
        description="Command compiling the project in release mode",
    )
    compressor: str = Field(
        default="gzip",
        description="Command the saved image is piped through when exporting",
    )
    shell: str = Field(default="sh", description="Shell used for the export pipeline")
    log_level: str = Field(default="WARNING", description="Log level")
    log_json: bool | None = Field(
        default=None,
        description="Render logs as JSON (None: auto-detect from the terminal)",
    )

    @field_validator("build_command", mode="before")
    @classmethod
    def _split_command(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("build_command")
    @classmethod
    def _require_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("build_command must not be empty")
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> DockerizeSettings:
        """Create settings from DOCKERIZE_* environment variables."""
        env_map = {
            "manifest_name": "DOCKERIZE_MANIFEST",
            "override_file": "DOCKERIZE_OVERRIDE_FILE",
            "engine": "DOCKERIZE_ENGINE",
            "build_command": "DOCKERIZE_BUILD_COMMAND",
            "compressor": "DOCKERIZE_COMPRESSOR",
            "shell": "DOCKERIZE_SHELL",
            "log_level": "DOCKERIZE_LOG_LEVEL",
            "log_json": "DOCKERIZE_LOG_JSON",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is not None:
                if field_name == "log_json":
                    values[field_name] = env_val.lower() in ("true", "1", "yes")
                else:
                    values[field_name] = env_val
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
