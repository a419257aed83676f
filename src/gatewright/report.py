"""Report rendering for gate runs and remediation runs.

Human output goes through rich; ``json`` and ``jsonl`` print plain JSON to
stdout. Ordering always follows the report (registration order for gates,
ranked order for remediation records), so repeated runs diff cleanly.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gatewright.coverage.models import (
    CoverageAnalysis,
    RemediationOutcome,
    RemediationReport,
)
from gatewright.validation.models import GateReport, GateStatus, ToolAvailability

console = Console()

_STATUS_STYLE = {
    GateStatus.PASS: "[green]✓ PASS[/green]",
    GateStatus.FAIL: "[red]✗ FAIL[/red]",
    GateStatus.SKIP: "[yellow]· SKIP[/yellow]",
}

_OUTCOME_STYLE = {
    RemediationOutcome.COMMITTED: "green",
    RemediationOutcome.LEFT_UNCOMMITTED: "yellow",
    RemediationOutcome.SKIPPED_UNFIXABLE: "red",
    RemediationOutcome.SKIPPED_ALREADY_ABOVE_THRESHOLD: "dim",
    RemediationOutcome.PROJECTED: "cyan",
}


def gate_exit_code(report: GateReport) -> int:
    """0 when no gate failed (including all-SKIP runs), else 1."""
    return 0 if report.status == GateStatus.PASS else 1


def coverage_exit_code(report: RemediationReport) -> int:
    """0 = threshold reached or nothing left, 3 = only unfixable units left, 1 = otherwise."""
    return report.exit_code


def gate_report_payload(report: GateReport) -> dict[str, Any]:
    """JSON-ready dict for a gate report."""
    payload = report.model_dump(mode="json")
    payload["summary"] = {
        "total": len(report.outcomes),
        "passed": len(report.passed_gates),
        "failed": len(report.failed_gates),
        "skipped": len(report.skipped_gates),
    }
    return payload


def remediation_payload(report: RemediationReport) -> dict[str, Any]:
    """JSON-ready dict for a remediation report."""
    payload = report.model_dump(mode="json")
    payload["threshold_reached"] = report.threshold_reached
    payload["exit_code"] = report.exit_code
    return payload


def render_gate_report(
    report: GateReport, format: str = "human", out: Console | None = None
) -> None:
    """Output a gate report in the requested format.

    Args:
        report: GateReport to output
        format: Output format ("human", "json", or "jsonl")
        out: Console for human output (module console if None)
    """
    if format == "json":
        print(json.dumps(gate_report_payload(report), indent=2))
        return

    if format == "jsonl":
        for outcome in report.outcomes:
            print(json.dumps(outcome.model_dump(mode="json")))
        summary = gate_report_payload(report)["summary"]
        summary.update(
            {
                "mode": report.mode.value,
                "status": report.status.value,
                "nothing_to_validate": report.nothing_to_validate,
            }
        )
        print(json.dumps(summary))
        return

    out = out or console

    if report.nothing_to_validate:
        out.print(f"\n[yellow]Nothing to validate[/yellow] ({report.mode} mode)\n")
        return

    if report.passed:
        out.print(f"\n[green]✓ All validation checks passed[/green] ({report.mode} mode)\n")
    else:
        out.print(f"\n[red]✗ Validation checks failed[/red] ({report.mode} mode)\n")

    for outcome in report.outcomes:
        label = _STATUS_STYLE[outcome.status]
        command = f" [dim]({escape(outcome.command)})[/dim]" if outcome.command else ""
        out.print(f"{label} {escape(outcome.gate)}{command}")

        if outcome.status == GateStatus.FAIL:
            for line in outcome.detail.splitlines():
                out.print(f"    {escape(line)}")
        elif outcome.status == GateStatus.SKIP:
            out.print(f"    [dim]{escape(outcome.detail)}[/dim]")

    total_s = report.total_duration_ms / 1000
    out.print(
        f"\n[dim]Total: {len(report.outcomes)} gates, "
        f"{len(report.passed_gates)} passed, {len(report.failed_gates)} failed, "
        f"{len(report.skipped_gates)} skipped in {total_s:.2f}s[/dim]\n"
    )


def render_remediation_report(
    report: RemediationReport, format: str = "human", out: Console | None = None
) -> None:
    """Output a before/after remediation report in the requested format."""
    if format == "json":
        print(json.dumps(remediation_payload(report), indent=2))
        return

    if format == "jsonl":
        for record in report.records:
            print(json.dumps(record.model_dump(mode="json")))
        payload = remediation_payload(report)
        payload.pop("records")
        print(json.dumps(payload))
        return

    out = out or console
    title = "Coverage remediation (dry run)" if report.dry_run else "Coverage remediation"

    if not report.records:
        out.print(
            f"\n[green]✓ Nothing to improve[/green]: "
            f"all units at or above {report.threshold:g}%\n"
        )
    else:
        table = Table(title=title)
        table.add_column("Unit", style="cyan")
        table.add_column("Before", justify="right")
        table.add_column("After", justify="right")
        table.add_column("Tests", justify="right")
        table.add_column("Outcome")
        table.add_column("Commit")

        for record in report.records:
            after = f"{record.after_percent:.1f}%"
            if record.estimated:
                after = f"~{after}"
            style = _OUTCOME_STYLE[record.outcome]
            table.add_row(
                escape(record.unit),
                f"{record.before_percent:.1f}%",
                after,
                str(record.tests_added),
                f"[{style}]{record.outcome}[/{style}]",
                (record.commit_ref or "")[:12],
            )
        out.print()
        out.print(table)

        for record in report.records:
            if record.reason and record.outcome == RemediationOutcome.SKIPPED_UNFIXABLE:
                out.print(f"[red]✗[/red] {escape(record.unit)}: {escape(record.reason)}")

    verdict = "[green]reached[/green]" if report.threshold_reached else "[red]not reached[/red]"
    out.print(
        f"\nAggregate coverage: {report.aggregate_before:.1f}% → "
        f"{report.aggregate_after:.1f}% (threshold {report.threshold:g}% {verdict})"
    )
    if report.still_below:
        still_below = escape(", ".join(report.still_below))
        out.print(f"[yellow]Still below threshold:[/yellow] {still_below}")
    out.print(f"[dim]{len(report.satisfied)} units already satisfied[/dim]\n")


def render_analysis(analysis: CoverageAnalysis, out: Console | None = None) -> None:
    """Print the ranked units before remediation starts."""
    out = out or console
    if analysis.nothing_to_improve:
        return
    out.print(f"[bold]{len(analysis.ranked)} units below {analysis.threshold:g}%[/bold]")
    for unit in analysis.ranked:
        out.print(
            f"  {escape(unit.identifier)} {unit.percent:.1f}% "
            f"[dim](gap {unit.gap(analysis.threshold):.1f}, "
            f"{len(unit.missing_locations)} missing)[/dim]"
        )


def render_detection(
    toolchains: list[str],
    availability: list[tuple[str, ToolAvailability]],
    out: Console | None = None,
) -> None:
    """Print detected toolchains and the tool each gate resolved to."""
    out = out or console
    if not toolchains:
        out.print("No toolchains detected.")
        return

    out.print(f"[bold]Detection[/bold]  {escape(', '.join(toolchains))}")
    for gate_name, verdict in availability:
        if verdict.present:
            command = " ".join(verdict.invocation or [])
            out.print(f"  [green]✓[/green] {escape(gate_name):<24} [dim]{escape(command)}[/dim]")
        else:
            reason = escape(verdict.reason or "")
            out.print(f"  [yellow]·[/yellow] {escape(gate_name):<24} [dim]{reason}[/dim]")


def write_report_file(path: Path, report: BaseModel) -> None:
    """Dump a report as JSON for CI consumption."""
    if isinstance(report, GateReport):
        payload = gate_report_payload(report)
    elif isinstance(report, RemediationReport):
        payload = remediation_payload(report)
    else:
        payload = report.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
