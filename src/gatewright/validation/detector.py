"""Tool and toolchain detection for projects."""

import logging
import shutil
from pathlib import Path

from gatewright.validation.gates import run_invocation
from gatewright.validation.models import Capability, ToolAvailability, ToolCandidate

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 15

PYTHON_MARKERS = ("pyproject.toml", "setup.py", "setup.cfg", "requirements.txt", "Pipfile")
JAVA_MARKERS = ("pom.xml", "build.gradle", "build.gradle.kts")


class ToolDetector:
    """Resolves whether a capability is usable, walking an ordered candidate chain.

    Detection never raises: a missing tool is a normal verdict. Results are not
    cached, since tools can be installed or removed between runs.
    """

    def __init__(self, project_root: Path, probe_timeout: float = PROBE_TIMEOUT_SECONDS) -> None:
        self.project_root = project_root
        self.probe_timeout = probe_timeout

    def detect(
        self, capability: Capability, candidates: list[ToolCandidate]
    ) -> ToolAvailability:
        """Return the first usable candidate for a capability.

        Args:
            capability: Capability being resolved
            candidates: Ordered fallback chain ("prefer X, fall back to Y")

        Returns:
            ToolAvailability naming the selected binary and invocation, or
            present=False with the reasons every candidate was rejected
        """
        if not candidates:
            return ToolAvailability(
                capability=capability, present=False, reason="no candidates configured"
            )

        rejections: list[str] = []
        for candidate in candidates:
            problem = self._check_candidate(candidate)
            if problem is None:
                logger.debug("%s resolved to %s", capability, candidate.binary)
                return ToolAvailability(
                    capability=capability,
                    present=True,
                    binary=candidate.binary,
                    invocation=list(candidate.invocation),
                )
            rejections.append(f"{candidate.binary}: {problem}")

        reason = "; ".join(rejections)
        logger.debug("%s unavailable (%s)", capability, reason)
        return ToolAvailability(capability=capability, present=False, reason=reason)

    def _check_candidate(self, candidate: ToolCandidate) -> str | None:
        """Return why a candidate is unusable, or None if it is usable."""
        try:
            if candidate.requires_files and not any(
                (self.project_root / name).exists() for name in candidate.requires_files
            ):
                return f"requires {' or '.join(candidate.requires_files)}"

            resolved = shutil.which(candidate.binary)
            if resolved is None:
                return "not found on PATH"

            if candidate.probe_args is not None:
                probe = run_invocation(
                    [resolved, *candidate.probe_args],
                    cwd=self.project_root,
                    timeout_seconds=self.probe_timeout,
                )
                if not probe.succeeded:
                    return probe.error or f"probe exited {probe.exit_code}"
        except Exception as e:
            return f"detection error: {e}"
        return None


def _has_glob(root: Path, pattern: str, max_depth: int) -> bool:
    """Return True if any file matching pattern exists within max_depth levels."""
    for depth in range(max_depth):
        prefix = "*/" * depth
        try:
            if next(root.glob(prefix + pattern), None) is not None:
                return True
        except OSError:
            return False
    return False


def _is_typescript(project_root: Path) -> bool:
    if (project_root / "tsconfig.json").exists():
        return True
    try:
        return '"typescript"' in (project_root / "package.json").read_text(encoding="utf-8")
    except OSError:
        return False


def detect_toolchains(project_root: Path) -> list[str]:
    """Auto-detect project toolchains from marker files.

    Args:
        project_root: Root directory of the project

    Returns:
        Toolchain names in a fixed, deterministic order
    """
    if not project_root.is_dir():
        return []

    def has_file(*names: str) -> bool:
        return any((project_root / name).is_file() for name in names)

    detected: list[str] = []

    if has_file(*PYTHON_MARKERS):
        detected.append("python")

    if has_file("go.mod"):
        detected.append("golang")

    if has_file("package.json"):
        detected.append("typescript" if _is_typescript(project_root) else "javascript")

    if has_file(*JAVA_MARKERS):
        detected.append("java")

    if has_file("Cargo.toml"):
        detected.append("rust")

    if _has_glob(project_root, "*.csproj", 2) or _has_glob(project_root, "*.sln", 2):
        detected.append("csharp")

    if _has_glob(project_root, "*.sh", 1) or _has_glob(project_root / "scripts", "*.sh", 1):
        detected.append("shell")

    if has_file(".sqlfluff") or _has_glob(project_root, "*.sql", 2):
        detected.append("sql")

    return detected
