"""GateRunner — executes gates in order and assembles a report."""

import logging
from pathlib import Path

from gatewright.validation.detector import ToolDetector
from gatewright.validation.gates import run_invocation
from gatewright.validation.models import (
    Gate,
    GateMode,
    GateOutcome,
    GateReport,
    GateStatus,
    ToolAvailability,
)

logger = logging.getLogger(__name__)


class GateRunner:
    """Orchestrates sequential gate execution.

    Every applicable gate runs, whatever happened to earlier gates, so the report
    always contains one outcome per gate. The runner itself never raises for
    tool absence or tool failure.
    """

    def __init__(
        self,
        project_root: Path,
        detector: ToolDetector | None = None,
        timeout_seconds: float = 300,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize gate runner.

        Args:
            project_root: Working directory for every gate invocation
            detector: Tool detector (a fresh one for project_root if None)
            timeout_seconds: Per-invocation timeout in seconds
            env: Optional environment variables for invocations
        """
        self.project_root = project_root
        self.detector = detector or ToolDetector(project_root)
        self.timeout_seconds = timeout_seconds
        self.env = env

    def run(self, gates: list[Gate], mode: GateMode = GateMode.FULL) -> GateReport:
        """Run every gate applicable in ``mode``.

        Args:
            gates: Gates in registration order
            mode: Full or quick mode

        Returns:
            GateReport with one outcome per applicable gate, in order
        """
        applicable = [gate for gate in gates if gate.applies_in.includes(mode)]

        if not applicable:
            return GateReport(
                mode=mode,
                outcomes=[],
                status=GateStatus.PASS,
                nothing_to_validate=True,
            )

        outcomes = [self.run_gate(gate) for gate in applicable]

        failed = any(o.status == GateStatus.FAIL for o in outcomes)
        return GateReport(
            mode=mode,
            outcomes=outcomes,
            status=GateStatus.FAIL if failed else GateStatus.PASS,
        )

    def run_gate(self, gate: Gate) -> GateOutcome:
        """Detect, execute and classify a single gate."""
        try:
            availability = self.detector.detect(gate.capability, gate.candidates)
        except Exception as e:
            # ToolDetector never raises; a custom detector might.
            availability = ToolAvailability(
                capability=gate.capability, present=False, reason=f"detection error: {e}"
            )

        if not availability.present:
            logger.info("%s skipped: %s", gate.name, availability.reason)
            return GateOutcome(
                gate=gate.name,
                capability=gate.capability,
                status=GateStatus.SKIP,
                detail=availability.reason or "tool unavailable",
            )

        argv = availability.invocation or []
        command = " ".join(argv)
        result = run_invocation(
            argv,
            cwd=self.project_root,
            timeout_seconds=self.timeout_seconds,
            env=self.env,
        )

        if result.succeeded:
            status = GateStatus.PASS
            detail = result.output or f"{gate.name} passed"
        else:
            status = GateStatus.FAIL
            if result.timed_out:
                detail = f"{gate.name} timeout after {self.timeout_seconds}s"
                if result.output:
                    detail += "\n" + result.output
            elif result.error:
                detail = f"{gate.name} error: {result.error}"
            else:
                detail = result.output or f"{gate.name} failed"

        logger.info("%s %s (%s)", gate.name, status, command)
        return GateOutcome(
            gate=gate.name,
            capability=gate.capability,
            status=status,
            detail=detail,
            command=command,
            exit_code=result.exit_code,
            duration_ms=result.duration_ms,
        )
