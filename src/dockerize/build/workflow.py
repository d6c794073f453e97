"""Dockerize pipeline — locate, resolve, label, build, package, export.

:class:`DockerizePipeline` is the high-level orchestrator: settings and
caller overrides in, :class:`~dockerize.build.results.PipelineResult` out.
Each state transition is its own method, run strictly in sequence; the
first failure ends the run in ``FAILED`` and nothing is retried.

Architecture::

    ┌──────────┐   ┌──────────┐   ┌───────────────────┐   ┌───────┐
    │ LOCATED  │ → │ RESOLVED │ → │ DESCRIPTORS_BUILT │ → │ BUILT │ → ...
    └──────────┘   └──────────┘   └───────────────────┘   └───────┘
      locate_      Metadata-        build_descriptors      BuildOrch-
      project      Resolver +       + lookup_revision      estrator
                   Dockerfile
                   preflight

    ... → IMAGE_BUILT → (EXPORTED | SKIPPED) → DONE
          ImageBuilder    Exporter

The Dockerfile is checked while entering ``RESOLVED`` so a bad path fails
before the compiler is ever started.

Example::

    from dockerize.build import CallerOverrides, DockerizePipeline

    pipeline = DockerizePipeline(overrides=CallerOverrides(tag="1.0.0"), export=True)
    result = pipeline.run()
    result.image
    # 'demo:1.0.0'

Related Modules:
    - :mod:`dockerize.build.results` — PipelineResult and PipelineState
    - :mod:`dockerize.cli.app` — CLI wrapper
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from dockerize.build.compiler import BuildOrchestrator
from dockerize.build.config import CallerOverrides, MetadataResolver, ResolvedConfig
from dockerize.build.descriptors import DescriptorSet, build_descriptors, lookup_revision
from dockerize.build.export import Exporter, ExportRequest
from dockerize.build.image import ImageBuilder, check_build_file
from dockerize.build.process import SubprocessRunner
from dockerize.build.project import ProjectContext, locate_project
from dockerize.build.results import PipelineResult, PipelineState
from dockerize.core.errors import DockerizeError
from dockerize.core.logging import LogContext, bind_context, get_logger, unbind_context
from dockerize.core.protocols import ProcessRunner
from dockerize.core.settings import DockerizeSettings

logger = get_logger(__name__)


@dataclass
class PipelineRun:
    """Values produced by the stages of one run, in the order they appear."""

    project: ProjectContext | None = None
    config: ResolvedConfig | None = None
    descriptors: DescriptorSet | None = None
    export_request: ExportRequest | None = None


class PipelineObserver:
    """Receives stage notifications. The default implementation ignores them."""

    def stage_started(self, state: PipelineState, run: PipelineRun) -> None:
        pass

    def stage_finished(self, state: PipelineState, run: PipelineRun) -> None:
        pass


class DockerizePipeline:
    """Runs the full dockerize pipeline once.

    Parameters
    ----------
    settings
        Tool settings (defaults to ``DockerizeSettings.from_env()``).
    overrides
        Caller-supplied metadata.
    export
        Run the export stage.
    runner
        Process runner (defaults to :class:`SubprocessRunner`).
    cwd
        Directory the project search starts from (defaults to the
        current working directory).
    clock
        Returns the creation timestamp for the ``created`` label.
    observer
        Stage notifications, used by the CLI for progress output.
    """

    def __init__(
        self,
        settings: DockerizeSettings | None = None,
        overrides: CallerOverrides | None = None,
        *,
        export: bool = False,
        runner: ProcessRunner | None = None,
        cwd: Path | None = None,
        clock: Callable[[], datetime] | None = None,
        observer: PipelineObserver | None = None,
    ) -> None:
        self.settings = settings or DockerizeSettings.from_env()
        self.overrides = overrides or CallerOverrides()
        self.export = export
        self.runner = runner or SubprocessRunner()
        self.cwd = cwd
        self.clock = clock or (lambda: datetime.now(UTC))
        self.observer = observer or PipelineObserver()

        self.compiler = BuildOrchestrator(self.runner, self.settings.build_command)
        self.image_builder = ImageBuilder(self.runner, engine=self.settings.engine)
        self.exporter = Exporter(
            self.runner,
            engine=self.settings.engine,
            compressor=self.settings.compressor,
            shell=self.settings.shell,
        )

    def run(self) -> PipelineResult:
        """Execute every stage in order, stopping at the first failure."""
        result = PipelineResult()
        run = PipelineRun()
        transitions: list[tuple[PipelineState, Callable[[PipelineRun, PipelineResult], PipelineState]]] = [
            (PipelineState.LOCATED, self._locate),
            (PipelineState.RESOLVED, self._resolve),
            (PipelineState.DESCRIPTORS_BUILT, self._describe),
            (PipelineState.BUILT, self._compile),
            (PipelineState.IMAGE_BUILT, self._build_image),
            (PipelineState.EXPORTED, self._export),
        ]

        with LogContext(pipeline="dockerize"):
            try:
                for target, step in transitions:
                    self.observer.stage_started(target, run)
                    try:
                        reached = step(run, result)
                    except DockerizeError as exc:
                        logger.error("pipeline.failed", stage=target.value, **exc.to_dict())
                        result.fail(target, exc)
                        break
                    result.advance(reached)
                    self.observer.stage_finished(reached, run)
                else:
                    result.advance(PipelineState.DONE)
                    logger.info("pipeline.done", image=result.image, archive=result.archive_path)
            finally:
                # bound by _locate and _resolve once known
                unbind_context("project", "image")

        result.mark_complete()
        return result

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _locate(self, run: PipelineRun, result: PipelineResult) -> PipelineState:
        run.project = locate_project(self.cwd, manifest_name=self.settings.manifest_name)
        result.project_root = str(run.project.root)
        bind_context(project=result.project_root)
        logger.info("project.located", root=result.project_root)
        return PipelineState.LOCATED

    def _resolve(self, run: PipelineRun, result: PipelineResult) -> PipelineState:
        resolver = MetadataResolver(run.project, override_file=self.settings.override_file)
        run.config = resolver.resolve(self.overrides)
        bind_context(image=run.config.image_ref)
        check_build_file(run.project, run.config)
        result.image = run.config.image_ref
        result.additional_images = run.config.additional_refs
        return PipelineState.RESOLVED

    def _describe(self, run: PipelineRun, result: PipelineResult) -> PipelineState:
        revision = None
        if not run.config.revision:
            revision = lookup_revision(self.runner, run.project.root)
        run.descriptors = build_descriptors(run.config, created=self.clock(), revision=revision)
        result.labels = dict(run.descriptors)
        logger.info("descriptors.built", labels=list(run.descriptors))
        return PipelineState.DESCRIPTORS_BUILT

    def _compile(self, run: PipelineRun, result: PipelineResult) -> PipelineState:
        self.compiler.build(run.project)
        return PipelineState.BUILT

    def _build_image(self, run: PipelineRun, result: PipelineResult) -> PipelineState:
        self.image_builder.build(run.project, run.config, run.descriptors)
        return PipelineState.IMAGE_BUILT

    def _export(self, run: PipelineRun, result: PipelineResult) -> PipelineState:
        if not self.export:
            return PipelineState.SKIPPED
        run.export_request = ExportRequest.for_config(run.project, run.config)
        archive = self.exporter.export(run.project, run.export_request)
        result.archive_path = str(archive)
        return PipelineState.EXPORTED
