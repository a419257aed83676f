"""CLI command for coverage-gap remediation."""

import logging
from pathlib import Path

from gatewright.config import load_config, validate_threshold
from gatewright.coverage.analyzer import CoverageCollector
from gatewright.coverage.generator import AgentTestGenerator, GapTestGenerator
from gatewright.coverage.loop import RemediationLoop, RemediationOptions
from gatewright.coverage.models import ArtifactFormat, RemediationReport
from gatewright.coverage.vcs import GitRepository
from gatewright.errors import ArtifactUnreadable, UsageError
from gatewright.providers.config import resolve_default_model
from gatewright.report import (
    coverage_exit_code,
    render_analysis,
    render_remediation_report,
    write_report_file,
)
from gatewright.validation.cli import USAGE_ERROR_EXIT, print_error, resolve_toolchains
from gatewright.validation.registry import CoverageProfile, GateRegistry, get_profile
from gatewright.validation.runner import GateRunner

logger = logging.getLogger(__name__)

ARTIFACT_UNREADABLE_EXIT = 1


def _coverage_profile(names: list[str]) -> tuple[str, CoverageProfile | None]:
    """First requested toolchain that knows how to collect coverage."""
    for name in names:
        profile = get_profile(name).coverage
        if profile is not None:
            return name, profile
    return (names[0] if names else ""), None


def coverage_command(
    project_root: Path,
    threshold: float | None = None,
    unit: str | None = None,
    dry_run: bool = False,
    no_commit: bool = False,
    artifact: Path | None = None,
    artifact_format: ArtifactFormat | None = None,
    toolchains: list[str] | None = None,
    model: str | None = None,
    format: str = "human",
    timeout_seconds: int | None = None,
    report_file: Path | None = None,
    generator: GapTestGenerator | None = None,
) -> int:
    """Raise coverage of below-threshold units, one unit at a time.

    Args:
        project_root: Root directory of the project
        threshold: Minimum acceptable percent (config default if None)
        unit: Restrict remediation to one file or package
        dry_run: Report the ranked plan and estimates only
        no_commit: Keep generated tests on disk without committing
        artifact: Existing coverage artifact to read instead of collecting
        artifact_format: Force the artifact format
        toolchains: Explicit toolchains (detected from marker files if None)
        model: Model for test generation (config/env default if None)
        format: Output format: "human", "json", or "jsonl"
        timeout_seconds: Per-invocation timeout override
        report_file: Optional path to also write the JSON report to
        generator: Test generator to use instead of the model-backed one

    Returns:
        Exit code (0 = threshold reached or nothing to do, 1 = units remain or
        artifact unreadable, 2 = usage error, 3 = only unfixable units remain)
    """
    if not project_root.is_dir():
        print_error(f"Project root does not exist: {project_root}", format)
        return USAGE_ERROR_EXIT

    try:
        if threshold is not None:
            validate_threshold(threshold)
        config = load_config(project_root)
        effective_threshold = threshold if threshold is not None else config.threshold
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise UsageError(f"timeout must be positive, got {timeout_seconds}")
        names = resolve_toolchains(project_root, toolchains, config.toolchains)
    except UsageError as e:
        print_error(str(e), format)
        return USAGE_ERROR_EXIT

    toolchain, profile = _coverage_profile(names)
    runner = GateRunner(
        project_root=project_root,
        timeout_seconds=timeout_seconds or config.timeout_seconds,
    )
    collector = CoverageCollector(runner, profile, artifact=artifact, fmt=artifact_format)

    if artifact is None and profile is None:
        print_error(
            "No coverage artifact given and no toolchain with a coverage collector detected "
            "(use --artifact or --toolchain)",
            format,
        )
        return USAGE_ERROR_EXIT

    # Dry-run reads whatever artifact is already there.
    collect_first = artifact is None and not dry_run
    try:
        analysis = collector.measure(effective_threshold, unit=unit, collect=collect_first)
    except UsageError as e:
        print_error(str(e), format)
        return USAGE_ERROR_EXIT
    except ArtifactUnreadable as e:
        print_error(str(e), format)
        return ARTIFACT_UNREADABLE_EXIT

    if format == "human":
        render_analysis(analysis)

    if analysis.nothing_to_improve:
        report = RemediationReport(
            threshold=effective_threshold,
            dry_run=dry_run,
            records=[],
            aggregate_before=analysis.aggregate_percent,
            aggregate_after=analysis.aggregate_percent,
            satisfied=[u.identifier for u in analysis.satisfied],
        )
        return _finish(report, format, report_file)

    if not dry_run and generator is None:
        try:
            generator = AgentTestGenerator.from_model(
                model or config.model or resolve_default_model(),
                request_timeout=timeout_seconds or config.timeout_seconds,
            )
        except RuntimeError as e:
            print_error(str(e), format)
            return USAGE_ERROR_EXIT

    vcs: GitRepository | None = None
    if not dry_run and not no_commit:
        vcs = GitRepository(project_root, timeout_seconds=timeout_seconds or config.timeout_seconds)
        if not vcs.is_repository():
            logger.warning(
                "%s is not a git repository, changes will be left uncommitted", project_root
            )
            vcs = None

    validation_gates = (
        GateRegistry.for_toolchains(names).subset(config.validation_capabilities).gates
    )
    options = RemediationOptions(
        threshold=effective_threshold,
        dry_run=dry_run,
        no_commit=no_commit,
        max_gaps_per_unit=config.max_gaps_per_unit,
        commit_prefix=config.commit_prefix,
        toolchain=toolchain,
        test_layout=profile.test_layout if profile else "",
        unit=unit,
    )
    loop = RemediationLoop(
        project_root=project_root,
        options=options,
        generator=generator,
        validator=runner,
        validation_gates=validation_gates,
        collector=collector,
        vcs=vcs,
    )
    report = loop.run(analysis)
    if isinstance(generator, AgentTestGenerator) and generator.usage.requests:
        logger.info(
            "test generation: %d requests, %d tokens",
            generator.usage.requests,
            generator.usage.total_tokens,
        )
    return _finish(report, format, report_file)


def _finish(report: RemediationReport, format: str, report_file: Path | None) -> int:
    render_remediation_report(report, format)
    if report_file is not None:
        write_report_file(report_file, report)
    return coverage_exit_code(report)
