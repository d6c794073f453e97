"""Tests for DockerizePipeline — the end-to-end state machine.

Every scenario runs against a temporary Cargo project with FakeRunner,
so the exact cargo/docker/sh invocations can be asserted.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import structlog

from dockerize.build.config import CallerOverrides
from dockerize.build.descriptors import LABEL_CREATED, LABEL_REVISION, LABEL_VERSION
from dockerize.build.results import PipelineState
from dockerize.build.workflow import DockerizePipeline, PipelineObserver
from dockerize.core.logging import configure_logging
from dockerize.core.settings import DockerizeSettings

HAPPY_PATH = [
    PipelineState.LOCATED,
    PipelineState.RESOLVED,
    PipelineState.DESCRIPTORS_BUILT,
    PipelineState.BUILT,
    PipelineState.IMAGE_BUILT,
]


def make_pipeline(cwd: Path, runner, clock, overrides=None, export=False, **settings) -> DockerizePipeline:
    return DockerizePipeline(
        DockerizeSettings(**settings),
        overrides or CallerOverrides(),
        export=export,
        runner=runner,
        cwd=cwd,
        clock=clock,
    )


class TestScenarios:
    def test_defaults_build_demo_without_export(self, cargo_project, fake_runner, fixed_clock):
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()

        assert result.success
        assert result.exit_status == 0
        assert result.image == "demo:0.1.0"
        assert result.additional_images == []
        assert result.archive_path is None
        assert set(result.labels) == {LABEL_VERSION, LABEL_CREATED}
        assert result.history == [*HAPPY_PATH, PipelineState.SKIPPED, PipelineState.DONE]

        assert fake_runner.commands() == ["cargo", "docker"]
        assert "-t" in fake_runner.spawned[1].args
        assert "demo:0.1.0" in fake_runner.spawned[1].args
        assert not (cargo_project / "demo-0.1.0.tgz").exists()

    def test_cli_overrides_with_export(self, cargo_project, fake_runner, fixed_clock):
        overrides = CallerOverrides(name="app", tag="1.0.0", tags="latest,stable")
        result = make_pipeline(
            cargo_project, fake_runner, fixed_clock, overrides=overrides, export=True
        ).run()

        assert result.success
        assert result.image == "app:1.0.0"
        assert result.additional_images == ["app:latest", "app:stable"]
        assert result.archive_path == str(cargo_project.resolve() / "app-1.0.0.tgz")
        assert result.history[-2:] == [PipelineState.EXPORTED, PipelineState.DONE]

        build, image, export = fake_runner.spawned
        assert build.argv == ["cargo", "build", "--release"]
        tags = [image.args[i + 1] for i, a in enumerate(image.args) if a == "-t"]
        assert tags == ["app:1.0.0", "app:latest", "app:stable"]
        assert export.args == [
            "-c",
            "docker save -o app-1.0.0.tar app:1.0.0 && gzip < app-1.0.0.tar > app-1.0.0.tgz;"
            " status=$?; rm -f app-1.0.0.tar; exit $status",
        ]

    def test_missing_dockerfile_spawns_nothing(self, cargo_project, fake_runner, fixed_clock):
        overrides = CallerOverrides(dockerfile="does/not/exist")
        result = make_pipeline(cargo_project, fake_runner, fixed_clock, overrides=overrides).run()

        assert not result.success
        assert result.state == PipelineState.FAILED
        assert result.failed_stage == PipelineState.RESOLVED
        assert result.error["error_type"] == "MissingBuildFileError"
        assert result.exit_status == 12
        assert fake_runner.spawned == []


class TestFailures:
    def test_project_not_found(self, tmp_path, fake_runner, fixed_clock):
        result = make_pipeline(
            tmp_path, fake_runner, fixed_clock, manifest_name="No-Such-Manifest.toml"
        ).run()
        assert result.failed_stage == PipelineState.LOCATED
        assert result.error["error_type"] == "ProjectNotFoundError"
        assert result.history == [PipelineState.FAILED]
        assert fake_runner.calls == []

    def test_manifest_without_version(self, cargo_project, fake_runner, fixed_clock):
        (cargo_project / "Cargo.toml").write_text('[package]\nname = "demo"\n')
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert result.failed_stage == PipelineState.RESOLVED
        assert result.exit_status == 11

    def test_build_failure_stops_before_image(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.exit_codes["cargo"] = 101
        result = make_pipeline(cargo_project, fake_runner, fixed_clock, export=True).run()

        assert result.failed_stage == PipelineState.BUILT
        assert result.error["returncode"] == 101
        assert result.exit_status == 20
        assert fake_runner.commands() == ["cargo"]

    def test_image_failure_stops_before_export(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.exit_codes["docker"] = 1
        result = make_pipeline(cargo_project, fake_runner, fixed_clock, export=True).run()

        assert result.failed_stage == PipelineState.IMAGE_BUILT
        assert result.exit_status == 21
        assert fake_runner.commands() == ["cargo", "docker"]

    def test_export_failure_keeps_built_state(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.exit_codes["sh"] = 2
        result = make_pipeline(cargo_project, fake_runner, fixed_clock, export=True).run()

        assert result.failed_stage == PipelineState.EXPORTED
        assert result.exit_status == 22
        assert PipelineState.IMAGE_BUILT in result.history
        assert result.history[-1] == PipelineState.FAILED
        assert result.image == "demo:0.1.0"


class TestAmbientContext:
    def test_revision_label_from_git(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.revision = "0123456789abcdef"
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert result.labels[LABEL_REVISION] == "0123456789abcdef"

    def test_git_lookup_skipped_when_revision_configured(self, cargo_project, fake_runner, fixed_clock):
        overrides = CallerOverrides(revision="pinned")
        result = make_pipeline(cargo_project, fake_runner, fixed_clock, overrides=overrides).run()
        assert result.labels[LABEL_REVISION] == "pinned"
        assert not any(call.command == "git" for call in fake_runner.calls)

    def test_created_label_uses_clock(self, cargo_project, fake_runner, fixed_clock):
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert result.labels[LABEL_CREATED] == "2024-05-17T08:30:15Z"

    def test_runs_from_subdirectory(self, cargo_project, fake_runner, fixed_clock):
        result = make_pipeline(cargo_project / "src", fake_runner, fixed_clock).run()
        assert result.project_root == str(cargo_project.resolve())
        assert all(call.cwd == cargo_project.resolve() for call in fake_runner.calls)

    def test_override_file_is_honoured(self, cargo_project, fake_runner, fixed_clock):
        (cargo_project / "Dockerize.toml").write_text(
            '[dockerize]\nname = "svc"\ntags = ["edge"]\nvendor = "ACME"\n'
        )
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert result.image == "svc:0.1.0"
        assert result.additional_images == ["svc:edge"]
        assert result.labels["org.opencontainers.image.vendor"] == "ACME"

    def test_settings_drive_commands(self, cargo_project, fake_runner, fixed_clock):
        result = make_pipeline(
            cargo_project,
            fake_runner,
            fixed_clock,
            export=True,
            engine="podman",
            build_command="cargo build --release --locked",
            compressor="pigz",
        ).run()
        assert result.success
        build, image, export = fake_runner.spawned
        assert build.argv == ["cargo", "build", "--release", "--locked"]
        assert image.command == "podman"
        assert export.args[1] == (
            "podman save -o demo-0.1.0.tar demo:0.1.0 && pigz < demo-0.1.0.tar > demo-0.1.0.tgz;"
            " status=$?; rm -f demo-0.1.0.tar; exit $status"
        )


class RecordingObserver(PipelineObserver):
    def __init__(self):
        self.events: list[tuple[str, PipelineState]] = []

    def stage_started(self, state, run):
        self.events.append(("start", state))

    def stage_finished(self, state, run):
        self.events.append(("end", state))


class TestObserver:
    def test_notified_per_stage(self, cargo_project, fake_runner, fixed_clock):
        observer = RecordingObserver()
        DockerizePipeline(
            DockerizeSettings(), runner=fake_runner, cwd=cargo_project, clock=fixed_clock, observer=observer
        ).run()
        assert observer.events[:2] == [("start", PipelineState.LOCATED), ("end", PipelineState.LOCATED)]
        assert observer.events[-1] == ("end", PipelineState.SKIPPED)

    def test_no_finish_for_failed_stage(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.exit_codes["cargo"] = 1
        observer = RecordingObserver()
        DockerizePipeline(
            DockerizeSettings(), runner=fake_runner, cwd=cargo_project, clock=fixed_clock, observer=observer
        ).run()
        assert observer.events[-1] == ("start", PipelineState.BUILT)


class TestResultModel:
    def test_completion_stamped(self, cargo_project, fake_runner, fixed_clock):
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert result.completed_at is not None
        assert result.duration_seconds >= 0

    def test_json_round_trip_fields(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.exit_codes["docker"] = 1
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        dumped = result.model_dump(mode="json")
        assert dumped["state"] == "FAILED"
        assert dumped["failed_stage"] == "IMAGE_BUILT"
        assert "error_exit_status" not in dumped


class TestLogContext:
    @staticmethod
    def records(stderr: str) -> dict[str, dict]:
        lines = [json.loads(line) for line in stderr.splitlines() if line.startswith("{")]
        return {record["event"]: record for record in lines}

    def test_project_and_image_bound_for_stages(self, cargo_project, fake_runner, fixed_clock, capsys):
        configure_logging(level="INFO", json_format=True)
        make_pipeline(cargo_project, fake_runner, fixed_clock).run()

        records = self.records(capsys.readouterr().err)
        build = records["build.started"]
        assert build["pipeline"] == "dockerize"
        assert build["project"] == str(cargo_project.resolve())
        assert build["image"] == "demo:0.1.0"
        assert records["image.built"]["project"] == str(cargo_project.resolve())

    def test_context_released_after_run(self, cargo_project, fake_runner, fixed_clock):
        make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert structlog.contextvars.get_contextvars() == {}

    def test_context_released_after_failure(self, cargo_project, fake_runner, fixed_clock):
        fake_runner.exit_codes["cargo"] = 101
        result = make_pipeline(cargo_project, fake_runner, fixed_clock).run()
        assert not result.success
        assert structlog.contextvars.get_contextvars() == {}
