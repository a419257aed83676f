"""Gatewright — quality gate orchestration and coverage-gap remediation."""

__version__ = "0.1.0"
