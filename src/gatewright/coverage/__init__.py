"""Gatewright coverage — artifact analysis and the remediation loop."""

from gatewright.coverage.models import (
    ArtifactFormat,
    CoverageAnalysis,
    CoverageUnit,
    RemediationOutcome,
    RemediationRecord,
    RemediationReport,
)

__all__ = [
    "ArtifactFormat",
    "CoverageAnalysis",
    "CoverageUnit",
    "RemediationOutcome",
    "RemediationRecord",
    "RemediationReport",
]
