"""Result model for a dockerize pipeline run.

One :class:`PipelineResult` is produced per run. It records every state
the pipeline reached, the image references and labels it produced, and,
when a stage failed, which one and why.

State machine::

    PENDING → LOCATED → RESOLVED → DESCRIPTORS_BUILT → BUILT → IMAGE_BUILT
            → (EXPORTED | SKIPPED) → DONE

    Any transition may instead end in FAILED(stage, error).
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from dockerize.core.errors import DockerizeError


class PipelineState(str, Enum):
    """States of the dockerize pipeline."""

    PENDING = "PENDING"
    LOCATED = "LOCATED"
    RESOLVED = "RESOLVED"
    DESCRIPTORS_BUILT = "DESCRIPTORS_BUILT"
    BUILT = "BUILT"
    IMAGE_BUILT = "IMAGE_BUILT"
    EXPORTED = "EXPORTED"
    SKIPPED = "SKIPPED"
    DONE = "DONE"
    FAILED = "FAILED"


class PipelineResult(BaseModel):
    """Outcome of a single pipeline run."""

    state: PipelineState = PipelineState.PENDING
    history: list[PipelineState] = Field(default_factory=list)
    project_root: str | None = None
    image: str | None = None
    additional_images: list[str] = Field(default_factory=list)
    labels: dict[str, str] = Field(default_factory=dict)
    archive_path: str | None = None
    failed_stage: PipelineState | None = None
    """State the pipeline was trying to reach when it failed."""
    error: dict[str, Any] | None = None
    error_exit_status: int | None = Field(default=None, exclude=True)
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def exit_status(self) -> int:
        """Exit code for the CLI: 0 on success, the error's exit status otherwise."""
        if self.success:
            return 0
        return self.error_exit_status or 1

    def advance(self, state: PipelineState) -> None:
        """Record a successful transition."""
        self.state = state
        self.history.append(state)

    def fail(self, stage: PipelineState, error: DockerizeError) -> None:
        """Enter the FAILED terminal state."""
        self.failed_stage = stage
        self.error = error.to_dict()
        self.error_exit_status = error.exit_status
        self.advance(PipelineState.FAILED)

    def mark_complete(self) -> None:
        """Stamp completion time and duration."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()
