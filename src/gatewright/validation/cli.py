"""CLI commands for validation."""

import json
import logging
from pathlib import Path

from rich.markup import escape

from gatewright.config import load_config
from gatewright.errors import UsageError
from gatewright.report import (
    console,
    gate_exit_code,
    render_detection,
    render_gate_report,
    write_report_file,
)
from gatewright.validation.detector import ToolDetector, detect_toolchains
from gatewright.validation.models import GateMode
from gatewright.validation.registry import GateRegistry, get_profile
from gatewright.validation.runner import GateRunner

logger = logging.getLogger(__name__)

USAGE_ERROR_EXIT = 2


def print_error(message: str, format: str) -> None:
    if format == "human":
        console.print(f"[red]Error:[/red] {escape(message)}")
    else:
        print(json.dumps({"error": message}))


def resolve_toolchains(
    project_root: Path, requested: list[str] | None, configured: list[str] | None
) -> list[str]:
    """Pick toolchains: CLI flag, then config, then marker-file detection.

    Raises:
        UsageError: If an explicitly requested toolchain is unknown
    """
    names = requested or configured
    if names:
        for name in names:
            get_profile(name)
        return list(dict.fromkeys(names))
    return detect_toolchains(project_root)


def validate_command(
    project_root: Path,
    quick: bool = False,
    toolchains: list[str] | None = None,
    format: str = "human",
    timeout_seconds: int | None = None,
    report_file: Path | None = None,
) -> int:
    """Run validation gates on a project.

    Args:
        project_root: Root directory of the project
        quick: Run only the quick subset of gates
        toolchains: Explicit toolchains (detected from marker files if None)
        format: Output format: "human", "json", or "jsonl"
        timeout_seconds: Per-gate timeout override
        report_file: Optional path to also write the JSON report to

    Returns:
        Exit code (0 = pass, 1 = a gate failed, 2 = usage error)
    """
    if not project_root.is_dir():
        print_error(f"Project root does not exist: {project_root}", format)
        return USAGE_ERROR_EXIT

    try:
        config = load_config(project_root)
        names = resolve_toolchains(project_root, toolchains, config.toolchains)
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise UsageError(f"timeout must be positive, got {timeout_seconds}")
    except UsageError as e:
        print_error(str(e), format)
        return USAGE_ERROR_EXIT

    logger.info("toolchains: %s", ", ".join(names) or "none")
    registry = GateRegistry.for_toolchains(names)
    mode = GateMode.QUICK if quick else GateMode.FULL

    runner = GateRunner(
        project_root=project_root,
        timeout_seconds=timeout_seconds or config.timeout_seconds,
    )
    report = runner.run(registry.gates, mode)

    render_gate_report(report, format)
    if report_file is not None:
        write_report_file(report_file, report)

    return gate_exit_code(report)


def detect_command(project_root: Path, format: str = "human") -> int:
    """Show detected toolchains and which tool each gate would use.

    Returns:
        Exit code (0 = success, 2 = usage error)
    """
    if not project_root.is_dir():
        print_error(f"Project root does not exist: {project_root}", format)
        return USAGE_ERROR_EXIT

    names = detect_toolchains(project_root)
    registry = GateRegistry.for_toolchains(names)
    detector = ToolDetector(project_root)
    verdicts = [
        (gate.name, detector.detect(gate.capability, gate.candidates)) for gate in registry.gates
    ]

    if format == "human":
        render_detection(names, verdicts)
    else:
        print(
            json.dumps(
                {
                    "toolchains": names,
                    "gates": [
                        {"gate": name, **verdict.model_dump(mode="json")}
                        for name, verdict in verdicts
                    ],
                },
                indent=2 if format == "json" else None,
            )
        )
    return 0
