"""Gatewright validation — tool detection, gate registry and gate runner.

Public API for validation module.
"""

from gatewright.validation.detector import ToolDetector, detect_toolchains
from gatewright.validation.gates import InvocationResult, run_invocation
from gatewright.validation.models import (
    Capability,
    Gate,
    GateApplicability,
    GateMode,
    GateOutcome,
    GateReport,
    GateStatus,
    ToolAvailability,
    ToolCandidate,
)
from gatewright.validation.registry import GateRegistry, get_profile
from gatewright.validation.runner import GateRunner

__all__ = [
    "Capability",
    "Gate",
    "GateApplicability",
    "GateMode",
    "GateOutcome",
    "GateRegistry",
    "GateReport",
    "GateRunner",
    "GateStatus",
    "InvocationResult",
    "ToolAvailability",
    "ToolCandidate",
    "ToolDetector",
    "detect_toolchains",
    "get_profile",
    "run_invocation",
]
