"""Gate registry and built-in toolchain profiles.

Every toolchain is described as data: an ordered list of gates, each carrying its
own tool fallback chain, plus an optional coverage profile. The runner stays
generic over these descriptors.
"""

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict

from gatewright.coverage.models import ArtifactFormat
from gatewright.errors import UsageError
from gatewright.validation.models import (
    Capability,
    Gate,
    GateApplicability,
    GateMode,
    ToolCandidate,
)

BOTH = GateApplicability.BOTH
FULL = GateApplicability.FULL


class CoverageProfile(BaseModel):
    """How a toolchain collects coverage and where the artifact lands."""

    model_config = ConfigDict(frozen=True)

    gate: Gate
    artifacts: list[str]
    artifact_format: ArtifactFormat
    test_layout: str


class ToolchainProfile(BaseModel):
    """Gates and coverage settings for one toolchain."""

    model_config = ConfigDict(frozen=True)

    name: str
    gates: list[Gate]
    coverage: CoverageProfile | None = None


class GateRegistry:
    """Ordered, immutable collection of gates."""

    def __init__(self, gates: Iterable[Gate]) -> None:
        self._gates: tuple[Gate, ...] = tuple(gates)

    def __len__(self) -> int:
        return len(self._gates)

    @property
    def gates(self) -> list[Gate]:
        """All gates in registration order."""
        return list(self._gates)

    def gates_for(self, mode: GateMode) -> list[Gate]:
        """Gates applicable in ``mode``, registration order preserved."""
        return [gate for gate in self._gates if gate.applies_in.includes(mode)]

    def subset(self, capabilities: Iterable[Capability]) -> "GateRegistry":
        """Registry restricted to the given capabilities."""
        wanted = set(capabilities)
        return GateRegistry(gate for gate in self._gates if gate.capability in wanted)

    @classmethod
    def for_toolchains(cls, names: Iterable[str]) -> "GateRegistry":
        """Concatenate the built-in gates of several toolchains, in order.

        Raises:
            UsageError: If a toolchain name is unknown
        """
        gates: list[Gate] = []
        for name in names:
            gates.extend(get_profile(name).gates)
        return cls(gates)


def get_profile(name: str) -> ToolchainProfile:
    """Look up a built-in toolchain profile.

    Raises:
        UsageError: If the toolchain is unknown
    """
    try:
        return TOOLCHAIN_PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(TOOLCHAIN_PROFILES))
        raise UsageError(f"Unknown toolchain: {name}. Known toolchains: {known}") from None


def _uv_or_direct(*argv: str) -> list[ToolCandidate]:
    """Prefer ``uv run <tool>`` in uv projects, else call the tool directly."""
    return [
        ToolCandidate(binary="uv", invocation=["uv", "run", *argv], requires_files=["uv.lock"]),
        ToolCandidate(binary=argv[0], invocation=list(argv)),
    ]


def _node_bin(tool: str, *args: str) -> ToolCandidate:
    """A locally installed node tool, run through npx."""
    return ToolCandidate(
        binary="npx",
        invocation=["npx", "--no-install", tool, *args],
        requires_files=[f"node_modules/.bin/{tool}"],
    )


def _cmd(*argv: str, **extra: Any) -> ToolCandidate:
    """A candidate whose binary is the first argv element."""
    return ToolCandidate(binary=argv[0], invocation=list(argv), **extra)


def _gate(
    toolchain: str,
    kind: str,
    capability: Capability,
    candidates: list[ToolCandidate],
    applies_in: GateApplicability = FULL,
) -> Gate:
    return Gate(
        name=f"{toolchain}:{kind}",
        capability=capability,
        candidates=candidates,
        applies_in=applies_in,
        toolchain=toolchain,
    )


def _python() -> ToolchainProfile:
    t = "python"
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [*_uv_or_direct("ruff", "check", "."), _cmd("flake8", ".")],
                BOTH,
            ),
            _gate(
                t,
                "format",
                Capability.FORMATTER,
                [
                    *_uv_or_direct("ruff", "format", "--check", "."),
                    _cmd("black", "--check", "."),
                ],
                BOTH,
            ),
            _gate(
                t,
                "type",
                Capability.TYPE_CHECKER,
                [*_uv_or_direct("mypy", "."), _cmd("pyright")],
            ),
            _gate(t, "test", Capability.TEST_RUNNER, _uv_or_direct("pytest", "-q")),
            _gate(
                t, "security", Capability.SECURITY_SCANNER, _uv_or_direct("bandit", "-r", ".", "-q")
            ),
        ],
        coverage=CoverageProfile(
            gate=_gate(
                t,
                "coverage",
                Capability.COVERAGE_COLLECTOR,
                _uv_or_direct("pytest", "-q", "--cov", "--cov-report=json:coverage.json"),
            ),
            artifacts=["coverage.json"],
            artifact_format=ArtifactFormat.COVERAGE_JSON,
            test_layout="tests/test_<module>.py using pytest",
        ),
    )


def _golang() -> ToolchainProfile:
    t = "golang"
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [
                    _cmd("golangci-lint", "run", "./..."),
                    _cmd("go", "vet", "./...", probe_args=["version"]),
                ],
                BOTH,
            ),
            _gate(
                t,
                "format",
                Capability.FORMATTER,
                [
                    ToolCandidate(
                        binary="gofmt",
                        invocation=["sh", "-c", 'test -z "$(gofmt -l .)"'],
                        probe_args=None,
                    )
                ],
                BOTH,
            ),
            _gate(
                t,
                "test",
                Capability.TEST_RUNNER,
                [_cmd("go", "test", "./...", probe_args=["version"])],
            ),
            _gate(
                t,
                "security",
                Capability.SECURITY_SCANNER,
                [_cmd("gosec", "./...", probe_args=["-version"])],
            ),
        ],
        coverage=CoverageProfile(
            gate=_gate(
                t,
                "coverage",
                Capability.COVERAGE_COLLECTOR,
                [
                    ToolCandidate(
                        binary="go",
                        invocation=["go", "test", "-coverprofile=coverage.out", "./..."],
                        probe_args=["version"],
                    )
                ],
            ),
            artifacts=["coverage.out"],
            artifact_format=ArtifactFormat.GO_COVER,
            test_layout="<file>_test.go in the same package using the testing package",
        ),
    )


def _rust() -> ToolchainProfile:
    t = "rust"
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [
                    ToolCandidate(
                        binary="cargo-clippy",
                        invocation=["cargo", "clippy", "--all-targets", "--", "-D", "warnings"],
                    )
                ],
                BOTH,
            ),
            _gate(
                t,
                "format",
                Capability.FORMATTER,
                [ToolCandidate(binary="cargo-fmt", invocation=["cargo", "fmt", "--check"])],
                BOTH,
            ),
            _gate(t, "test", Capability.TEST_RUNNER, [_cmd("cargo", "test")]),
            _gate(
                t,
                "security",
                Capability.SECURITY_SCANNER,
                [
                    ToolCandidate(
                        binary="cargo-audit",
                        invocation=["cargo", "audit"],
                        probe_args=["audit", "--version"],
                    )
                ],
            ),
        ],
        coverage=CoverageProfile(
            gate=_gate(
                t,
                "coverage",
                Capability.COVERAGE_COLLECTOR,
                [
                    ToolCandidate(
                        binary="cargo-llvm-cov",
                        invocation=["cargo", "llvm-cov", "--lcov", "--output-path", "lcov.info"],
                        probe_args=["llvm-cov", "--version"],
                    ),
                    ToolCandidate(
                        binary="cargo-tarpaulin",
                        invocation=["cargo", "tarpaulin", "--out", "Lcov"],
                        probe_args=["tarpaulin", "--version"],
                    ),
                ],
            ),
            artifacts=["lcov.info"],
            artifact_format=ArtifactFormat.LCOV,
            test_layout="#[cfg(test)] mod tests in the same file, or tests/<name>.rs",
        ),
    )


def _node(t: str, typed: bool) -> ToolchainProfile:
    gates = [
        _gate(
            t,
            "lint",
            Capability.LINTER,
            [_node_bin("eslint", "."), _node_bin("biome", "lint", ".")],
            BOTH,
        ),
        _gate(
            t,
            "format",
            Capability.FORMATTER,
            [_node_bin("prettier", "--check", "."), _node_bin("biome", "format", ".")],
            BOTH,
        ),
    ]
    if typed:
        gates.append(_gate(t, "type", Capability.TYPE_CHECKER, [_node_bin("tsc", "--noEmit")]))
    gates.append(
        _gate(
            t,
            "test",
            Capability.TEST_RUNNER,
            [_cmd("npm", "test", requires_files=["package.json"])],
        )
    )
    gates.append(
        _gate(
            t,
            "security",
            Capability.SECURITY_SCANNER,
            [
                ToolCandidate(
                    binary="npm",
                    invocation=["npm", "audit", "--audit-level=high"],
                    requires_files=["package-lock.json"],
                )
            ],
        )
    )
    return ToolchainProfile(
        name=t,
        gates=gates,
        coverage=CoverageProfile(
            gate=_gate(
                t,
                "coverage",
                Capability.COVERAGE_COLLECTOR,
                [
                    _node_bin("vitest", "run", "--coverage", "--coverage.reporter=lcov"),
                    _node_bin("jest", "--coverage", "--coverageReporters=lcov"),
                ],
            ),
            artifacts=["coverage/lcov.info"],
            artifact_format=ArtifactFormat.LCOV,
            test_layout=f"<name>.test.{'ts' if typed else 'js'} next to the source file",
        ),
    )


def _java() -> ToolchainProfile:
    t = "java"
    mvn = {"binary": "mvn", "requires_files": ["pom.xml"]}
    gradle = {"binary": "gradle", "requires_files": ["build.gradle", "build.gradle.kts"]}
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [
                    ToolCandidate(invocation=["mvn", "-q", "checkstyle:check"], **mvn),
                    ToolCandidate(invocation=["gradle", "-q", "checkstyleMain"], **gradle),
                ],
                BOTH,
            ),
            _gate(
                t,
                "format",
                Capability.FORMATTER,
                [
                    ToolCandidate(invocation=["mvn", "-q", "spotless:check"], **mvn),
                    ToolCandidate(invocation=["gradle", "-q", "spotlessCheck"], **gradle),
                ],
                BOTH,
            ),
            _gate(
                t,
                "test",
                Capability.TEST_RUNNER,
                [
                    ToolCandidate(invocation=["mvn", "-q", "test"], **mvn),
                    ToolCandidate(invocation=["gradle", "-q", "test"], **gradle),
                ],
            ),
        ],
        coverage=CoverageProfile(
            gate=_gate(
                t,
                "coverage",
                Capability.COVERAGE_COLLECTOR,
                [
                    ToolCandidate(invocation=["mvn", "-q", "test", "jacoco:report"], **mvn),
                    ToolCandidate(
                        invocation=["gradle", "-q", "test", "jacocoTestReport"], **gradle
                    ),
                ],
            ),
            artifacts=[
                "target/site/jacoco/jacoco.xml",
                "build/reports/jacoco/test/jacocoTestReport.xml",
            ],
            artifact_format=ArtifactFormat.JACOCO,
            test_layout="src/test/java/<package>/<Class>Test.java using JUnit 5",
        ),
    )


def _csharp() -> ToolchainProfile:
    t = "csharp"
    dotnet = "dotnet"
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [_cmd(dotnet, "format", "analyzers", "--verify-no-changes")],
                BOTH,
            ),
            _gate(
                t,
                "format",
                Capability.FORMATTER,
                [_cmd(dotnet, "format", "whitespace", "--verify-no-changes")],
                BOTH,
            ),
            _gate(t, "test", Capability.TEST_RUNNER, [_cmd(dotnet, "test")]),
        ],
        coverage=CoverageProfile(
            gate=_gate(
                t,
                "coverage",
                Capability.COVERAGE_COLLECTOR,
                [
                    ToolCandidate(
                        binary=dotnet,
                        invocation=[
                            dotnet,
                            "test",
                            "/p:CollectCoverage=true",
                            "/p:CoverletOutputFormat=cobertura",
                            "/p:CoverletOutput=./coverage.cobertura.xml",
                        ],
                    )
                ],
            ),
            artifacts=["coverage.cobertura.xml"],
            artifact_format=ArtifactFormat.COBERTURA,
            test_layout="<Project>.Tests/<Class>Tests.cs using xUnit",
        ),
    )


def _shell() -> ToolchainProfile:
    t = "shell"
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [
                    ToolCandidate(
                        binary="shellcheck",
                        invocation=[
                            "sh",
                            "-c",
                            "find . -name '*.sh' -not -path './node_modules/*' -print0 "
                            "| xargs -0 -r shellcheck",
                        ],
                    )
                ],
                BOTH,
            ),
            _gate(
                t,
                "format",
                Capability.FORMATTER,
                [ToolCandidate(binary="shfmt", invocation=["shfmt", "-d", "."])],
                BOTH,
            ),
            _gate(
                t,
                "test",
                Capability.TEST_RUNNER,
                [_cmd("bats", "-r", "tests", requires_files=["tests"])],
            ),
        ],
    )


def _sql() -> ToolchainProfile:
    t = "sql"
    return ToolchainProfile(
        name=t,
        gates=[
            _gate(
                t,
                "lint",
                Capability.LINTER,
                [ToolCandidate(binary="sqlfluff", invocation=["sqlfluff", "lint", "."])],
                BOTH,
            ),
        ],
    )


TOOLCHAIN_PROFILES: dict[str, ToolchainProfile] = {
    profile.name: profile
    for profile in (
        _python(),
        _golang(),
        _rust(),
        _node("typescript", typed=True),
        _node("javascript", typed=False),
        _java(),
        _csharp(),
        _shell(),
        _sql(),
    )
}
