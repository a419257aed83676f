"""Validation data models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Capability(StrEnum):
    """Classes of external tools a gate can need."""

    LINTER = "linter"
    FORMATTER = "formatter"
    TYPE_CHECKER = "type-checker"
    TEST_RUNNER = "test-runner"
    COVERAGE_COLLECTOR = "coverage-collector"
    SECURITY_SCANNER = "security-scanner"
    VCS = "vcs"


class GateMode(StrEnum):
    """Run mode for a validation pass."""

    FULL = "full"
    QUICK = "quick"


class GateApplicability(StrEnum):
    """Modes in which a gate runs."""

    FULL = "full"
    QUICK = "quick"
    BOTH = "both"

    def includes(self, mode: GateMode) -> bool:
        """Return True if a gate with this applicability runs in ``mode``."""
        return self == GateApplicability.BOTH or self.value == mode.value


class GateStatus(StrEnum):
    """Three-valued gate outcome."""

    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"


class ToolCandidate(BaseModel):
    """One entry of a gate's ordered tool fallback chain.

    The first candidate whose marker files exist, whose binary is on PATH, and
    whose probe succeeds is the one the gate invokes.
    """

    binary: str
    invocation: list[str]
    probe_args: list[str] | None = ["--version"]
    requires_files: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def command(self) -> str:
        """Invocation rendered as a single display string."""
        return " ".join(self.invocation)


class Gate(BaseModel):
    """Immutable descriptor of a single quality check."""

    name: str
    capability: Capability
    candidates: list[ToolCandidate]
    applies_in: GateApplicability = GateApplicability.FULL
    toolchain: str = "custom"

    model_config = ConfigDict(frozen=True)


class ToolAvailability(BaseModel):
    """Verdict from the tool detector for one capability."""

    capability: Capability
    present: bool
    reason: str | None = None
    binary: str | None = None
    invocation: list[str] | None = None

    model_config = ConfigDict(frozen=True)


class GateOutcome(BaseModel):
    """Result from running (or skipping) a single gate.

    Records outcome, captured output or skip reason, and timing.
    """

    gate: str
    capability: Capability
    status: GateStatus
    detail: str = ""
    command: str | None = None
    exit_code: int | None = None
    duration_ms: int = 0

    model_config = ConfigDict(frozen=True)


class GateReport(BaseModel):
    """Ordered gate outcomes plus the overall verdict.

    SKIP outcomes never affect ``status``.
    """

    mode: GateMode
    outcomes: list[GateOutcome]
    status: GateStatus
    nothing_to_validate: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def passed(self) -> bool:
        """True when no gate failed."""
        return self.status == GateStatus.PASS

    @property
    def failed_gates(self) -> list[GateOutcome]:
        """Get list of gates that failed."""
        return [o for o in self.outcomes if o.status == GateStatus.FAIL]

    @property
    def passed_gates(self) -> list[GateOutcome]:
        """Get list of gates that passed."""
        return [o for o in self.outcomes if o.status == GateStatus.PASS]

    @property
    def skipped_gates(self) -> list[GateOutcome]:
        """Get list of gates that were skipped."""
        return [o for o in self.outcomes if o.status == GateStatus.SKIP]

    @property
    def executed_gates(self) -> list[GateOutcome]:
        """Gates whose tool actually ran."""
        return [o for o in self.outcomes if o.status != GateStatus.SKIP]

    @property
    def total_duration_ms(self) -> int:
        return sum(o.duration_ms for o in self.outcomes)
