"""Gatewright CLI application."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint

import gatewright as gatewright_pkg
from gatewright.coverage.models import ArtifactFormat


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    human = "human"
    json = "json"
    jsonl = "jsonl"


app = typer.Typer(
    name="gatewright",
    help="Quality gates and coverage-gap remediation for polyglot projects.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        rprint(f"gatewright {gatewright_pkg.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log diagnostics (DEBUG) to stderr."),
    ] = False,
) -> None:
    """Gatewright — quality gates and coverage-gap remediation."""
    from dotenv import load_dotenv

    from gatewright.logging_config import resolve_level, setup_logging

    load_dotenv()
    setup_logging(resolve_level(verbose))


def _root(project_root: str | None) -> Path:
    return Path(project_root) if project_root else Path.cwd()


@app.command("validate")
def validate(
    quick: Annotated[
        bool,
        typer.Option("--quick", help="Run only the fast gates (lint, format)"),
    ] = False,
    toolchain: Annotated[
        list[str] | None,
        typer.Option("--toolchain", "-t", help="Toolchain to validate (detected if not given)"),
    ] = None,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
    timeout: Annotated[
        int | None,
        typer.Option("--timeout", help="Per-gate timeout in seconds", min=1),
    ] = None,
    report_file: Annotated[
        Path | None,
        typer.Option("--report-file", help="Also write the JSON report to this path"),
    ] = None,
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
) -> None:
    """Run every applicable quality gate and report per-gate results."""
    from gatewright.validation.cli import validate_command

    exit_code = validate_command(
        project_root=_root(project_root),
        quick=quick,
        toolchains=toolchain,
        format=format.value,
        timeout_seconds=timeout,
        report_file=report_file,
    )
    raise typer.Exit(exit_code)


@app.command("coverage")
def coverage(
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", help="Minimum coverage percent per unit (0-100)"),
    ] = None,
    unit: Annotated[
        str | None,
        typer.Option("--unit", "-u", help="Restrict to one file or package"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the ranked plan without generating anything"),
    ] = False,
    no_commit: Annotated[
        bool,
        typer.Option("--no-commit", help="Leave generated tests uncommitted"),
    ] = False,
    artifact: Annotated[
        Path | None,
        typer.Option("--artifact", help="Read this coverage artifact instead of collecting"),
    ] = None,
    artifact_format: Annotated[
        ArtifactFormat | None,
        typer.Option("--artifact-format", help="Force the artifact format"),
    ] = None,
    toolchain: Annotated[
        list[str] | None,
        typer.Option("--toolchain", "-t", help="Toolchain to use (detected if not given)"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="AI model for test generation"),
    ] = None,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
    timeout: Annotated[
        int | None,
        typer.Option("--timeout", help="Per-invocation timeout in seconds", min=1),
    ] = None,
    report_file: Annotated[
        Path | None,
        typer.Option("--report-file", help="Also write the JSON report to this path"),
    ] = None,
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
) -> None:
    """Close coverage gaps unit by unit, committing each validated improvement."""
    from gatewright.coverage.cli import coverage_command

    exit_code = coverage_command(
        project_root=_root(project_root),
        threshold=threshold,
        unit=unit,
        dry_run=dry_run,
        no_commit=no_commit,
        artifact=artifact,
        artifact_format=artifact_format,
        toolchains=toolchain,
        model=model,
        format=format.value,
        timeout_seconds=timeout,
        report_file=report_file,
    )
    raise typer.Exit(exit_code)


@app.command("detect")
def detect(
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
) -> None:
    """Show detected toolchains and the tool each gate would run."""
    from gatewright.validation.cli import detect_command

    raise typer.Exit(detect_command(project_root=_root(project_root), format=format.value))


if __name__ == "__main__":
    app()
