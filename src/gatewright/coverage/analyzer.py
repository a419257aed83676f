"""CoverageAnalyzer — normalizes an artifact and ranks units by remediation priority."""

import logging
from pathlib import Path

from gatewright.coverage.models import ArtifactFormat, CoverageAnalysis, CoverageUnit
from gatewright.coverage.parser import parse_artifact
from gatewright.errors import ArtifactUnreadable, UnknownUnitError
from gatewright.validation.models import GateOutcome, GateStatus
from gatewright.validation.registry import CoverageProfile
from gatewright.validation.runner import GateRunner

logger = logging.getLogger(__name__)


def aggregate_percent(units: list[CoverageUnit]) -> float:
    """Σcovered / Σtotal across units; 100.0 when there is nothing to cover."""
    total = sum(u.total for u in units)
    if total == 0:
        return 100.0
    return round(sum(u.covered for u in units) / total * 100, 2)


def rank_units(
    units: list[CoverageUnit], threshold: float
) -> tuple[list[CoverageUnit], list[CoverageUnit]]:
    """Split units into (ranked below-threshold, satisfied).

    Ranked: largest gap first, ties broken by identifier ascending.
    Satisfied: identifier ascending.
    """
    below = [u for u in units if u.percent < threshold]
    satisfied = [u for u in units if u.percent >= threshold]
    below.sort(key=lambda u: (-(threshold - u.percent), u.identifier))
    satisfied.sort(key=lambda u: u.identifier)
    return below, satisfied


def select_units(units: list[CoverageUnit], selector: str) -> list[CoverageUnit]:
    """Restrict units to a file, package directory, or dotted package/class path.

    Raises:
        UnknownUnitError: If the selector matches nothing
    """
    candidates = [selector.strip().rstrip("/")]
    if "/" not in selector and "." in selector:
        candidates.append(selector.replace(".", "/"))

    for wanted in candidates:
        matched = [
            u
            for u in units
            if u.identifier == wanted
            or u.identifier.startswith(wanted + "/")
            or u.identifier.endswith("/" + wanted)
            or f"/{wanted}/" in u.identifier
            or u.identifier.startswith(wanted + ".")
        ]
        if matched:
            return matched

    raise UnknownUnitError(selector, sorted(u.identifier for u in units))


class CoverageAnalyzer:
    """Parses coverage artifacts into ranked CoverageAnalysis snapshots."""

    def analyze(
        self,
        artifact_path: Path,
        threshold: float,
        unit: str | None = None,
        fmt: ArtifactFormat | None = None,
    ) -> CoverageAnalysis:
        """Read and rank a coverage artifact.

        Args:
            artifact_path: Coverage artifact to read
            threshold: Minimum acceptable percent per unit
            unit: Optional selector restricting the scope
            fmt: Artifact format (auto-detected if None)

        Returns:
            CoverageAnalysis; an empty ``ranked`` list means nothing to improve

        Raises:
            ArtifactUnreadable: If the artifact is missing or malformed
            UnknownUnitError: If ``unit`` matches nothing
        """
        units = parse_artifact(artifact_path, fmt)
        if unit is not None:
            units = select_units(units, unit)

        ranked, satisfied = rank_units(units, threshold)
        logger.debug(
            "%s: %d units below %.1f%%, %d satisfied",
            artifact_path,
            len(ranked),
            threshold,
            len(satisfied),
        )
        return CoverageAnalysis(
            threshold=threshold,
            ranked=ranked,
            satisfied=satisfied,
            aggregate_percent=aggregate_percent(units),
        )


class CoverageCollector:
    """Runs the toolchain's coverage gate and analyzes the artifact it writes."""

    def __init__(
        self,
        runner: GateRunner,
        profile: CoverageProfile | None,
        artifact: Path | None = None,
        fmt: ArtifactFormat | None = None,
        analyzer: CoverageAnalyzer | None = None,
    ) -> None:
        """Initialize collector.

        Args:
            runner: Gate runner used to invoke the collector gate
            profile: Toolchain coverage profile (None = artifact only, no collection)
            artifact: Explicit artifact path (profile default if None)
            fmt: Explicit artifact format (profile default, then auto-detect)
            analyzer: Analyzer instance
        """
        self.runner = runner
        self.profile = profile
        self.explicit_artifact = artifact
        self.fmt = fmt or (profile.artifact_format if profile and artifact is None else None)
        self.analyzer = analyzer or CoverageAnalyzer()
        self.last_outcome: GateOutcome | None = None

    @property
    def can_collect(self) -> bool:
        return self.profile is not None

    def artifact_path(self) -> Path:
        """Explicit artifact, else the first profile artifact that exists."""
        root = self.runner.project_root
        if self.explicit_artifact is not None:
            path = self.explicit_artifact
            return path if path.is_absolute() else root / path
        if self.profile is None:
            raise ArtifactUnreadable(root, "no coverage artifact given and no coverage profile")
        candidates = [root / name for name in self.profile.artifacts]
        return next((p for p in candidates if p.exists()), candidates[0])

    def collect(self) -> GateOutcome | None:
        """Run the coverage-collector gate, if there is one."""
        if self.profile is None:
            return None
        self.last_outcome = self.runner.run_gate(self.profile.gate)
        logger.info("coverage collection %s", self.last_outcome.status)
        return self.last_outcome

    def measure(
        self, threshold: float, unit: str | None = None, collect: bool = True
    ) -> CoverageAnalysis:
        """Optionally collect, then analyze.

        After a collection that did not pass, the artifact is only trusted if the
        collector rewrote it; a leftover artifact from an earlier run is rejected.

        Raises:
            ArtifactUnreadable: If no fresh, readable artifact results
            UnknownUnitError: If ``unit`` matches nothing
        """
        previous_path = self.artifact_path() if collect and self.can_collect else None
        previous_stamp = _stamp(previous_path) if previous_path is not None else None

        outcome = self.collect() if collect else None
        path = self.artifact_path()

        if outcome is not None and outcome.status != GateStatus.PASS:
            first_line = outcome.detail.splitlines()[0] if outcome.detail else ""
            stamp = _stamp(path)
            if stamp is None:
                raise ArtifactUnreadable(
                    path, f"file not found; collector {outcome.status}: {first_line}"
                )
            if path == previous_path and stamp == previous_stamp:
                raise ArtifactUnreadable(
                    path, f"not refreshed by collector {outcome.status}: {first_line}"
                )
            logger.warning("coverage collector %s, reading the artifact it wrote", outcome.status)

        return self.analyzer.analyze(path, threshold, unit=unit, fmt=self.fmt)


def _stamp(path: Path) -> tuple[int, int] | None:
    """Modification time and size, or None if the file does not exist."""
    try:
        stat = path.stat()
    except OSError:
        return None
    return stat.st_mtime_ns, stat.st_size
