"""
CLI: ``cargo dockerize`` — build the project and package it as an image.

Usage::

    cargo dockerize                                  # demo:0.1.0 from Cargo.toml
    cargo dockerize --export                         # ...and demo-0.1.0.tgz
    cargo dockerize -n app -t 1.0.0 --tags latest,stable
    cargo dockerize --dockerfile docker/Dockerfile.release --title "App"
    cargo-dockerize --json                           # PipelineResult as JSON

Exit codes: 0 on success, otherwise the failing error's ``exit_status``
(10 project not found, 11 manifest, 12 Dockerfile missing, 20 build,
21 image build, 22 export, 130 interrupted).
"""

from __future__ import annotations

import sys

import typer
from rich.console import Console

from dockerize.build.config import CallerOverrides
from dockerize.build.results import PipelineResult, PipelineState
from dockerize.build.workflow import DockerizePipeline, PipelineObserver, PipelineRun
from dockerize.core.logging import configure_logging
from dockerize.core.settings import DockerizeSettings

CARGO_SUBCOMMAND = "dockerize"

app = typer.Typer(
    name="cargo-dockerize",
    help="Build a Rust project and package it as a container image.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)


# ── Progress output ──────────────────────────────────────────────────────


class ConsoleProgress(PipelineObserver):
    """Prints stage progress to the terminal."""

    def __init__(self, out: Console, export: bool) -> None:
        self.out = out
        self.export = export

    def stage_started(self, state: PipelineState, run: PipelineRun) -> None:
        if state == PipelineState.BUILT:
            self.out.print("[bold]Building project...[/]")
        elif state == PipelineState.IMAGE_BUILT:
            self.out.print(f"[bold]Building Docker image:[/] {run.config.image_ref}...")
        elif state == PipelineState.EXPORTED and self.export:
            archive = run.project.root / run.config.archive_name
            self.out.print(f"[bold]Exporting Docker image to:[/] {archive}...")

    def stage_finished(self, state: PipelineState, run: PipelineRun) -> None:
        if state == PipelineState.LOCATED:
            self.out.print(f"Project root: {run.project.root}")
        elif state == PipelineState.EXPORTED:
            archive = run.export_request.archive_path
            self.out.print(f"[green]✓[/] Docker image exported successfully to: {archive}")


def _print_failure(result: PipelineResult) -> None:
    error = result.error or {}
    stage = result.failed_stage.value if result.failed_stage else "UNKNOWN"
    err_console.print(
        f"[bold red]Error[/bold red] ({error.get('error_type', 'DockerizeError')} "
        f"while entering {stage}): {error.get('message', 'unknown error')}"
    )
    if error.get("returncode") is not None:
        err_console.print(f"  [dim]process exit code: {error['returncode']}[/dim]")
    if error.get("cause"):
        err_console.print(f"  [dim]cause: {error['cause']}[/dim]")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from dockerize import __version__

        typer.echo(f"cargo-dockerize {__version__}")
        raise typer.Exit()


# ── Command ──────────────────────────────────────────────────────────────


@app.command()
def dockerize(
    export: bool = typer.Option(False, "--export", "-e", help="Export the Docker image as a TGZ archive."),
    name: str | None = typer.Option(None, "--name", "-n", help="Image name (defaults to the package name)."),
    tag: str | None = typer.Option(None, "--tag", "-t", help="Primary tag (defaults to the package version)."),
    tags: str | None = typer.Option(None, "--tags", help="Comma-separated additional tags."),
    dockerfile: str | None = typer.Option(
        None, "--dockerfile", help="Path to the Dockerfile, relative to the project root [default: Dockerfile]."
    ),
    title: str | None = typer.Option(None, "--title", help="Image title label."),
    description: str | None = typer.Option(None, "--description", help="Image description label."),
    authors: str | None = typer.Option(None, "--authors", help="Image authors label."),
    url: str | None = typer.Option(None, "--url", help="Project URL label."),
    source: str | None = typer.Option(None, "--source", help="Source repository URL label."),
    vendor: str | None = typer.Option(None, "--vendor", help="Vendor label."),
    licenses: str | None = typer.Option(None, "--licenses", help="SPDX license expression label."),
    application_name: str | None = typer.Option(
        None, "--application_name", "--application-name", help="Application name label."
    ),
    engine: str | None = typer.Option(None, "--engine", help="Container CLI to use [default: docker]."),
    json_out: bool = typer.Option(False, "--json", help="Print the pipeline result as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose (debug) logging."),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Build the project in release mode, then build (and optionally export) its image."""
    settings = DockerizeSettings.from_env(engine=engine, log_level="DEBUG" if verbose else None)
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    overrides = CallerOverrides(
        name=name,
        tag=tag,
        tags=tags,
        dockerfile=dockerfile,
        title=title,
        description=description,
        authors=authors,
        url=url,
        source=source,
        vendor=vendor,
        licenses=licenses,
        application_name=application_name,
    )

    # JSON mode keeps stdout for the result document only
    observer = None if json_out else ConsoleProgress(console, export)
    pipeline = DockerizePipeline(settings, overrides, export=export, observer=observer)

    try:
        result = pipeline.run()
    except KeyboardInterrupt:
        err_console.print("[red]Interrupted.[/]")
        raise typer.Exit(code=130)

    if json_out:
        typer.echo(result.model_dump_json(indent=2))
    elif result.success:
        console.print("[bold green]Dockerize completed successfully![/]")

    if not result.success:
        _print_failure(result)
        raise typer.Exit(code=result.exit_status)


def normalize_argv(argv: list[str]) -> list[str]:
    """Drop the sub-command name cargo inserts for ``cargo dockerize``."""
    if argv and argv[0] == CARGO_SUBCOMMAND:
        return argv[1:]
    return argv


def main() -> None:
    """Console-script entry point."""
    app(args=normalize_argv(sys.argv[1:]), prog_name="cargo-dockerize")
