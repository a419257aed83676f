"""Project configuration.

Read from ``[tool.gatewright]`` in pyproject.toml, then overridden by
GATEWRIGHT_* environment variables. CLI flags override both.
Uses BaseModel (not BaseSettings), matching the provider config layer.
"""

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gatewright.errors import UsageError
from gatewright.validation.models import Capability

DEFAULT_THRESHOLD = 90.0


def validate_threshold(value: float) -> float:
    """Reject thresholds outside [0, 100]. Never clamps."""
    if not 0.0 <= value <= 100.0:
        raise UsageError(f"threshold must be between 0 and 100, got {value:g}")
    return float(value)


class GatewrightConfig(BaseModel):
    """Settings shared by the validate and coverage commands."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    threshold: float = DEFAULT_THRESHOLD
    timeout_seconds: int = Field(default=300, gt=0)
    toolchains: list[str] | None = None
    model: str | None = None
    max_gaps_per_unit: int = Field(default=25, gt=0)
    validation_capabilities: list[Capability] = [Capability.TEST_RUNNER]
    commit_prefix: str = "test(coverage)"

    @field_validator("threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 100.0:
            raise ValueError(f"threshold must be between 0 and 100, got {value:g}")
        return value


def _read_pyproject_section(project_root: Path) -> dict[str, object]:
    pyproject_path = project_root / "pyproject.toml"
    if not pyproject_path.exists():
        return {}
    try:
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise UsageError(f"Malformed {pyproject_path}: {e}") from e

    section = pyproject.get("tool", {}).get("gatewright", {})
    if not isinstance(section, dict):
        raise UsageError("[tool.gatewright] must be a table")
    return {key.replace("-", "_"): value for key, value in section.items()}


def _env_overrides() -> dict[str, object]:
    overrides: dict[str, object] = {}
    if threshold := os.environ.get("GATEWRIGHT_THRESHOLD"):
        overrides["threshold"] = threshold
    if timeout := os.environ.get("GATEWRIGHT_TIMEOUT"):
        overrides["timeout_seconds"] = timeout
    if model := os.environ.get("GATEWRIGHT_MODEL"):
        overrides["model"] = model
    return overrides


def load_config(project_root: Path) -> GatewrightConfig:
    """Load configuration for a project.

    Args:
        project_root: Root directory of the project

    Returns:
        GatewrightConfig with file values and env overrides applied

    Raises:
        UsageError: If the configuration is malformed or out of range
    """
    values = _read_pyproject_section(project_root)
    values.update(_env_overrides())
    try:
        return GatewrightConfig.model_validate(values)
    except ValidationError as e:
        raise UsageError(f"Invalid gatewright configuration: {e}") from e
