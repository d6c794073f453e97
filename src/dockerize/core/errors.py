"""
Structured error types for cargo-dockerize.

Every stage of the dockerize pipeline fails with a typed error that
carries a human-readable message, an error category, the exit status the
CLI should terminate with, and (for stages that run an external process)
the child's return code.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      DockerizeError                          │
        │  (message, category, exit_status, returncode, context, cause)│
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ProjectNotFoundError   ManifestParseError                   │
        │  (CONFIG, 10)           (PARSE, 11)                          │
        │                                                              │
        │  MissingBuildFileError  ProcessError (PROCESS)               │
        │  (CONFIG, 12)              │                                 │
        │                         BuildFailedError       (20)          │
        │                         ImageBuildFailedError  (21)          │
        │                         ExportFailedError      (22)          │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise bare ``RuntimeError`` from a stage - the CLI cannot map it
    ✅ DO: Raise the stage's ``DockerizeError`` subclass

    ❌ DON'T: Drop the ``OSError`` raised when a process cannot be launched
    ✅ DO: Pass it as ``cause=`` so the root cause survives

Tags:
    error-handling, exception-hierarchy, exit-codes, dockerize
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    CONFIG = "CONFIG"  # Project layout, missing files, bad settings
    PARSE = "PARSE"  # Manifest / override file parsing
    PROCESS = "PROCESS"  # External tool exited non-zero or failed to launch
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


class DockerizeError(Exception):
    """
    Base exception for all cargo-dockerize errors.

    Subclasses set ``default_category`` and ``exit_status`` class
    attributes. ``exit_status`` is what the CLI exits with; ``returncode``
    is the exit code of the failing child process, when there was one.

    Examples:
        >>> error = BuildFailedError("cargo build failed", returncode=101)
        >>> error.returncode
        101
        >>> error.exit_status
        20
        >>> error.to_dict()["category"]
        'PROCESS'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    exit_status: int = 1

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        returncode: int | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.returncode = returncode
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DockerizeError:
        """
        Add context to this error (fluent API).

        Usage:
            raise MissingBuildFileError("Dockerfile not found").with_context(
                path="/work/app/Dockerfile"
            )
        """
        self.context.update({k: v for k, v in kwargs.items() if v is not None})
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "exit_status": self.exit_status,
        }
        if self.returncode is not None:
            result["returncode"] = self.returncode
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# Project discovery and configuration
# =============================================================================


class ProjectNotFoundError(DockerizeError):
    """No ancestor of the working directory contains a manifest."""

    default_category = ErrorCategory.CONFIG
    exit_status = 10


class ManifestParseError(DockerizeError):
    """The manifest could not be read, or lacks a name or version."""

    default_category = ErrorCategory.PARSE
    exit_status = 11

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field
        if field:
            self.context.setdefault("field", field)


class MissingBuildFileError(DockerizeError):
    """The Dockerfile (build-instruction file) does not exist."""

    default_category = ErrorCategory.CONFIG
    exit_status = 12


# =============================================================================
# External process failures
# =============================================================================


class ProcessError(DockerizeError):
    """An external tool exited non-zero or could not be started."""

    default_category = ErrorCategory.PROCESS

    @property
    def launched(self) -> bool:
        """False when the process never started (no return code)."""
        return self.returncode is not None


class BuildFailedError(ProcessError):
    """The compiler/build toolchain failed."""

    exit_status = 20


class ImageBuildFailedError(ProcessError):
    """The container image build failed."""

    exit_status = 21


class ExportFailedError(ProcessError):
    """Saving and compressing the image to an archive failed."""

    exit_status = 22


__all__ = [
    "BuildFailedError",
    "DockerizeError",
    "ErrorCategory",
    "ExportFailedError",
    "ImageBuildFailedError",
    "ManifestParseError",
    "MissingBuildFileError",
    "ProcessError",
    "ProjectNotFoundError",
]
