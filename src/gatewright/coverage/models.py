"""Coverage data models — units, analyses, and remediation records."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ArtifactFormat(StrEnum):
    """Coverage artifact formats the reader understands."""

    COVERAGE_JSON = "coverage-json"
    COBERTURA = "cobertura"
    JACOCO = "jacoco"
    LCOV = "lcov"
    GO_COVER = "gocover"


class CoverageUnit(BaseModel):
    """Coverage of one file, package or class, as read from an artifact."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    percent: float
    total: int
    covered: int
    missing_locations: list[str] = Field(default_factory=list)

    def gap(self, threshold: float) -> float:
        """Percentage points short of the threshold (negative when above it)."""
        return threshold - self.percent


class CoverageAnalysis(BaseModel):
    """Units ranked by remediation priority, plus those already satisfied."""

    model_config = ConfigDict(frozen=True)

    threshold: float
    ranked: list[CoverageUnit]
    satisfied: list[CoverageUnit]
    aggregate_percent: float

    @property
    def nothing_to_improve(self) -> bool:
        return not self.ranked

    @property
    def threshold_reached(self) -> bool:
        return self.aggregate_percent >= self.threshold

    def find(self, identifier: str) -> CoverageUnit | None:
        """Look a unit up by identifier in either list."""
        for unit in (*self.ranked, *self.satisfied):
            if unit.identifier == identifier:
                return unit
        return None


class RemediationOutcome(StrEnum):
    """Final state of one unit's remediation pass."""

    COMMITTED = "COMMITTED"
    LEFT_UNCOMMITTED = "LEFT_UNCOMMITTED"
    SKIPPED_UNFIXABLE = "SKIPPED_UNFIXABLE"
    SKIPPED_ALREADY_ABOVE_THRESHOLD = "SKIPPED_ALREADY_ABOVE_THRESHOLD"
    PROJECTED = "PROJECTED"


class RemediationRecord(BaseModel):
    """What happened to one unit. Appended once, never mutated."""

    model_config = ConfigDict(frozen=True)

    unit: str
    before_percent: float
    after_percent: float
    tests_added: int = 0
    outcome: RemediationOutcome
    commit_ref: str | None = None
    attempts: int = 0
    estimated: bool = False
    reason: str | None = None
    files: list[str] = Field(default_factory=list)


class RemediationReport(BaseModel):
    """Before/after summary of a remediation run."""

    model_config = ConfigDict(frozen=True)

    threshold: float
    dry_run: bool = False
    records: list[RemediationRecord]
    aggregate_before: float
    aggregate_after: float
    satisfied: list[str] = Field(default_factory=list)
    still_below: list[str] = Field(default_factory=list)

    @property
    def threshold_reached(self) -> bool:
        return self.aggregate_after >= self.threshold

    @property
    def committed(self) -> list[RemediationRecord]:
        return [r for r in self.records if r.outcome == RemediationOutcome.COMMITTED]

    @property
    def unfixable(self) -> list[RemediationRecord]:
        return [r for r in self.records if r.outcome == RemediationOutcome.SKIPPED_UNFIXABLE]

    @property
    def exit_code(self) -> int:
        """Exit code: 0=threshold reached or nothing left, 3=only unfixable left, 1=otherwise."""
        if self.dry_run or self.threshold_reached or not self.still_below:
            return 0
        unfixable = {r.unit for r in self.unfixable}
        if all(unit in unfixable for unit in self.still_below):
            return 3
        return 1
