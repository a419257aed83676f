"""RemediationLoop — bounded improve → validate → commit cycle per coverage unit.

Per unit, in ranked order:

    MEASURE → IDENTIFY_GAPS → GENERATE → VALIDATE → (COMMIT | LEAVE_UNCOMMITTED) → RECORD

with a SKIP exit from IDENTIFY_GAPS or VALIDATE. Generation is attempted at most
twice per unit. The loop stops when aggregate coverage reaches the threshold or
the ranked list is exhausted.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from gatewright.coverage.analyzer import CoverageCollector, aggregate_percent, rank_units
from gatewright.coverage.generator import GapTestGenerator, GeneratedTests, GenerationRequest
from gatewright.coverage.models import (
    CoverageAnalysis,
    CoverageUnit,
    RemediationOutcome,
    RemediationRecord,
    RemediationReport,
)
from gatewright.coverage.prompts import load_source_excerpt
from gatewright.coverage.vcs import GitRepository
from gatewright.errors import ArtifactUnreadable, GenerationError, UsageError, VCSError
from gatewright.validation.models import Gate, GateMode, GateStatus
from gatewright.validation.runner import GateRunner

logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 2


class RemediationState(StrEnum):
    """States a unit passes through."""

    MEASURE = "MEASURE"
    IDENTIFY_GAPS = "IDENTIFY_GAPS"
    GENERATE = "GENERATE"
    VALIDATE = "VALIDATE"
    COMMIT = "COMMIT"
    LEAVE_UNCOMMITTED = "LEAVE_UNCOMMITTED"
    SKIP = "SKIP"
    RECORD = "RECORD"


class RemediationOptions(BaseModel):
    """Per-run settings for the loop."""

    model_config = ConfigDict(frozen=True)

    threshold: float
    dry_run: bool = False
    no_commit: bool = False
    max_gaps_per_unit: int = Field(default=25, gt=0)
    commit_prefix: str = "test(coverage)"
    toolchain: str = ""
    test_layout: str = ""
    unit: str | None = None


@dataclass
class _WrittenFiles:
    """Files written for one attempt, with what was there before."""

    paths: list[str] = field(default_factory=list)
    previous: dict[Path, bytes | None] = field(default_factory=dict)
    created_dirs: list[Path] = field(default_factory=list)


def count_gap_lines(gaps: list[str]) -> int:
    """Number of source lines covered by gap references ("12" or "12-15")."""
    total = 0
    for gap in gaps:
        start, _, end = gap.partition("-")
        try:
            total += int(end) - int(start) + 1 if end else 1
        except ValueError:
            total += 1
    return total


def estimate_after(unit: CoverageUnit, gaps: list[str]) -> CoverageUnit:
    """Projected unit if every targeted gap became covered."""
    covered = min(unit.total, unit.covered + count_gap_lines(gaps))
    percent = 100.0 if unit.total == 0 else round(covered / unit.total * 100, 2)
    remaining = unit.missing_locations[len(gaps) :]
    return unit.model_copy(
        update={"covered": covered, "percent": percent, "missing_locations": remaining}
    )


class RemediationLoop:
    """Drives remediation over a pre-ranked list of units.

    All state is scoped to one ``run`` call. Only the COMMIT step writes to VCS
    history, one unit at a time.
    """

    def __init__(
        self,
        project_root: Path,
        options: RemediationOptions,
        generator: GapTestGenerator | None = None,
        validator: GateRunner | None = None,
        validation_gates: list[Gate] | None = None,
        collector: CoverageCollector | None = None,
        vcs: GitRepository | None = None,
    ) -> None:
        """Initialize remediation loop.

        Args:
            project_root: Root directory generated paths are resolved against
            options: Threshold, dry-run/no-commit flags and generation hints
            generator: Test-generation collaborator (unused in dry-run)
            validator: Gate runner used for the VALIDATE step
            validation_gates: Gates to run in VALIDATE (at least the test runner)
            collector: Re-measures coverage after a successful validation
            vcs: Repository for the COMMIT step
        """
        self.project_root = project_root
        self.options = options
        self.generator = generator
        self.validator = validator or GateRunner(project_root)
        self.validation_gates = validation_gates or []
        self.collector = collector
        self.vcs = vcs

    def run(self, analysis: CoverageAnalysis) -> RemediationReport:
        """Process ranked units until the threshold is reached or the list runs out."""
        threshold = self.options.threshold
        view: dict[str, CoverageUnit] = {
            u.identifier: u for u in (*analysis.ranked, *analysis.satisfied)
        }
        records: list[RemediationRecord] = []

        for unit in analysis.ranked:
            if aggregate_percent(list(view.values())) >= threshold:
                logger.info("aggregate coverage reached %.1f%%, stopping", threshold)
                break

            record, updated = self._process(view.get(unit.identifier, unit))
            records.append(record)
            if updated is not None:
                view = updated
            logger.info(
                "%s: %s (%.1f%% → %.1f%%)",
                record.unit,
                record.outcome,
                record.before_percent,
                record.after_percent,
            )

        ranked, satisfied = rank_units(list(view.values()), threshold)
        return RemediationReport(
            threshold=threshold,
            dry_run=self.options.dry_run,
            records=records,
            aggregate_before=analysis.aggregate_percent,
            aggregate_after=aggregate_percent(list(view.values())),
            satisfied=[u.identifier for u in satisfied],
            still_below=[u.identifier for u in ranked],
        )

    def _process(
        self, unit: CoverageUnit
    ) -> tuple[RemediationRecord, dict[str, CoverageUnit] | None]:
        """Run one unit through the state machine.

        Returns:
            The unit's record, and a replacement coverage view if it changed
        """
        threshold = self.options.threshold
        before = unit.percent
        self._trace(unit, RemediationState.MEASURE)

        if unit.percent >= threshold:
            return self._skip(unit, RemediationOutcome.SKIPPED_ALREADY_ABOVE_THRESHOLD), None

        self._trace(unit, RemediationState.IDENTIFY_GAPS)
        gaps = unit.missing_locations[: self.options.max_gaps_per_unit]
        if not gaps:
            reason = "no missing locations reported"
            return self._skip(unit, RemediationOutcome.SKIPPED_UNFIXABLE, reason), None

        if self.options.dry_run:
            projected = estimate_after(unit, gaps)
            record = RemediationRecord(
                unit=unit.identifier,
                before_percent=before,
                after_percent=projected.percent,
                outcome=RemediationOutcome.PROJECTED,
                estimated=True,
                reason=f"{len(gaps)} gaps targeted",
            )
            return record, None

        if self.generator is None:
            reason = "no test generator configured"
            return self._skip(unit, RemediationOutcome.SKIPPED_UNFIXABLE, reason), None

        generated: GeneratedTests | None = None
        written: _WrittenFiles | None = None
        feedback: str | None = None
        attempts = 0

        while attempts < MAX_GENERATION_ATTEMPTS:
            attempts += 1
            self._trace(unit, RemediationState.GENERATE, attempt=attempts)
            try:
                generated = self.generator.generate(self._request(unit, gaps, attempts, feedback))
                written = self._write(unit, generated)
            except Exception as e:
                feedback = str(e)
                logger.warning("%s: generation attempt %d failed: %s", unit.identifier, attempts, e)
                continue

            self._trace(unit, RemediationState.VALIDATE, attempt=attempts)
            passed, detail = self._validate()
            if passed:
                break

            self._restore(written)
            written = None
            feedback = detail
            logger.warning("%s: validation attempt %d failed", unit.identifier, attempts)

        if written is None or generated is None:
            self._trace(unit, RemediationState.SKIP)
            record = RemediationRecord(
                unit=unit.identifier,
                before_percent=before,
                after_percent=before,
                outcome=RemediationOutcome.SKIPPED_UNFIXABLE,
                attempts=attempts,
                reason=_first_lines(feedback or "validation failed"),
            )
            return record, None

        after, view = self._remeasure(unit)
        outcome, commit_ref, reason = self._commit(unit, before, after, written.paths)
        self._trace(unit, RemediationState.RECORD)
        record = RemediationRecord(
            unit=unit.identifier,
            before_percent=before,
            after_percent=after,
            tests_added=generated.tests_added,
            outcome=outcome,
            commit_ref=commit_ref,
            attempts=attempts,
            reason=reason,
            files=written.paths,
        )
        return record, view

    def _trace(
        self, unit: CoverageUnit, state: RemediationState, attempt: int | None = None
    ) -> None:
        suffix = f" (attempt {attempt})" if attempt else ""
        logger.debug("%s → %s%s", unit.identifier, state, suffix)

    def _skip(
        self, unit: CoverageUnit, outcome: RemediationOutcome, reason: str | None = None
    ) -> RemediationRecord:
        self._trace(unit, RemediationState.SKIP)
        return RemediationRecord(
            unit=unit.identifier,
            before_percent=unit.percent,
            after_percent=unit.percent,
            outcome=outcome,
            reason=reason,
        )

    def _request(
        self, unit: CoverageUnit, gaps: list[str], attempt: int, feedback: str | None
    ) -> GenerationRequest:
        return GenerationRequest(
            unit=unit,
            gaps=gaps,
            threshold=self.options.threshold,
            toolchain=self.options.toolchain,
            test_layout=self.options.test_layout,
            source_excerpt=load_source_excerpt(self.project_root, unit.identifier),
            attempt=attempt,
            feedback=feedback,
        )

    def _write(self, unit: CoverageUnit, generated: GeneratedTests) -> _WrittenFiles:
        """Write generated files, remembering what they replaced.

        Raises:
            GenerationError: If a path escapes the project root or targets the unit's source
        """
        root = self.project_root.resolve()
        source = (root / unit.identifier).resolve()
        targets: list[tuple[Path, str]] = []
        for generated_file in generated.files:
            path = (root / generated_file.path).resolve()
            if not path.is_relative_to(root) or path == root:
                raise GenerationError(
                    f"generated path escapes project root: {generated_file.path}"
                )
            if path == source:
                raise GenerationError(
                    f"generated file would overwrite the source under test: {generated_file.path}"
                )
            targets.append((path, generated_file.content))

        written = _WrittenFiles()
        try:
            for path, content in targets:
                if path not in written.previous:
                    written.previous[path] = path.read_bytes() if path.exists() else None
                missing_dirs = [
                    p for p in reversed(path.parents) if p.is_relative_to(root) and not p.exists()
                ]
                path.parent.mkdir(parents=True, exist_ok=True)
                written.created_dirs.extend(missing_dirs)
                path.write_text(content, encoding="utf-8")
                relative = path.relative_to(root).as_posix()
                if relative not in written.paths:
                    written.paths.append(relative)
        except OSError as e:
            self._restore(written)
            raise GenerationError(f"could not write generated tests: {e}") from e
        return written

    def _restore(self, written: _WrittenFiles) -> None:
        """Put the working tree back the way it was before an attempt."""
        for path, previous in written.previous.items():
            if previous is None:
                path.unlink(missing_ok=True)
            else:
                path.write_bytes(previous)
        for directory in reversed(written.created_dirs):
            if directory.exists() and not any(directory.iterdir()):
                directory.rmdir()

    def _validate(self) -> tuple[bool, str]:
        """Run the validation gates; a run where nothing executed does not count as passing."""
        report = self.validator.run(self.validation_gates, GateMode.FULL)
        if not report.executed_gates:
            reasons = "; ".join(f"{o.gate}: {o.detail}" for o in report.skipped_gates)
            return False, f"no validation gate could run ({reasons or 'none configured'})"
        if report.status == GateStatus.PASS:
            return True, ""
        return False, "\n".join(f"{o.gate}: {o.detail}" for o in report.failed_gates)

    def _remeasure(self, unit: CoverageUnit) -> tuple[float, dict[str, CoverageUnit] | None]:
        """Collect coverage again and read this unit's new percent."""
        if self.collector is None or not self.collector.can_collect:
            logger.warning("%s: no coverage collector, after-percent not measured", unit.identifier)
            return unit.percent, None
        try:
            snapshot = self.collector.measure(self.options.threshold, unit=self.options.unit)
        except (ArtifactUnreadable, UsageError) as e:
            logger.warning("%s: re-measure failed: %s", unit.identifier, e)
            return unit.percent, None

        measured = snapshot.find(unit.identifier)
        after = measured.percent if measured is not None else unit.percent
        view = {u.identifier: u for u in (*snapshot.ranked, *snapshot.satisfied)}
        return after, view

    def _commit(
        self, unit: CoverageUnit, before: float, after: float, paths: list[str]
    ) -> tuple[RemediationOutcome, str | None, str | None]:
        if self.options.no_commit:
            self._trace(unit, RemediationState.LEAVE_UNCOMMITTED)
            return RemediationOutcome.LEFT_UNCOMMITTED, None, "--no-commit"
        if self.vcs is None:
            self._trace(unit, RemediationState.LEAVE_UNCOMMITTED)
            return RemediationOutcome.LEFT_UNCOMMITTED, None, "no repository"

        self._trace(unit, RemediationState.COMMIT)
        message = (
            f"{self.options.commit_prefix}: raise {unit.identifier} "
            f"from {before:.1f}% to {after:.1f}%"
        )
        try:
            self.vcs.stage(paths)
            ref = self.vcs.commit(message, paths)
        except VCSError as e:
            logger.warning("%s: commit failed, leaving changes on disk: %s", unit.identifier, e)
            try:
                self.vcs.unstage(paths)
            except VCSError as unstage_error:
                logger.warning("%s: could not unstage: %s", unit.identifier, unstage_error)
            self._trace(unit, RemediationState.LEAVE_UNCOMMITTED)
            reason = f"commit failed: {_first_lines(str(e))}"
            return RemediationOutcome.LEFT_UNCOMMITTED, None, reason
        return RemediationOutcome.COMMITTED, ref, None


def _first_lines(text: str, limit: int = 5) -> str:
    lines = text.strip().splitlines()
    if len(lines) <= limit:
        return "\n".join(lines)
    return "\n".join(lines[:limit]) + f"\n... ({len(lines) - limit} more lines)"
