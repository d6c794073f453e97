"""Core primitives shared by the dockerize pipeline: errors, logging, settings, protocols."""

from dockerize.core.errors import (
    BuildFailedError,
    DockerizeError,
    ErrorCategory,
    ExportFailedError,
    ImageBuildFailedError,
    ManifestParseError,
    MissingBuildFileError,
    ProcessError,
    ProjectNotFoundError,
)
from dockerize.core.protocols import CapturedOutput, ProcessRunner
from dockerize.core.settings import DockerizeSettings

__all__ = [
    "BuildFailedError",
    "CapturedOutput",
    "DockerizeError",
    "DockerizeSettings",
    "ErrorCategory",
    "ExportFailedError",
    "ImageBuildFailedError",
    "ManifestParseError",
    "MissingBuildFileError",
    "ProcessError",
    "ProcessRunner",
    "ProjectNotFoundError",
]
