"""Tests for the coverage CLI command."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gatewright.coverage.cli import coverage_command
from gatewright.coverage.generator import GeneratedFile, GeneratedTests, GenerationRequest
from gatewright.validation.models import Capability, GateMode, GateOutcome, GateReport, GateStatus


def _artifact(root: Path, units: dict[str, tuple[int, int]]) -> Path:
    files = {
        name: {
            "summary": {"num_statements": total, "covered_lines": covered},
            "missing_lines": list(range(1, total - covered + 1)),
        }
        for name, (total, covered) in units.items()
    }
    path = root / "coverage.json"
    path.write_text(json.dumps({"files": files}))
    return path


class FixedGenerator:
    """Generator that always proposes the same test file."""

    def __init__(self) -> None:
        self.requests: list[GenerationRequest] = []

    def generate(self, request: GenerationRequest) -> GeneratedTests:
        self.requests.append(request)
        name = Path(request.unit.identifier).stem
        return GeneratedTests(
            files=[GeneratedFile(path=f"tests/test_{name}.py", content="def test_x():\n    pass\n")]
        )


class TestCoverageCommandUsage:
    """Usage errors exit 2 before any processing."""

    @patch("gatewright.validation.runner.GateRunner.run_gate")
    def test_threshold_above_100(self, mock_run_gate: MagicMock, tmp_path: Path) -> None:
        """--threshold=150 is rejected, never clamped, and nothing runs."""
        (tmp_path / "pyproject.toml").write_text("")

        exit_code = coverage_command(project_root=tmp_path, threshold=150)

        assert exit_code == 2
        mock_run_gate.assert_not_called()

    def test_negative_threshold(self, tmp_path: Path) -> None:
        """Negative thresholds are rejected."""
        assert coverage_command(project_root=tmp_path, threshold=-1) == 2

    def test_threshold_from_config_validated(self, tmp_path: Path) -> None:
        """An out-of-range configured threshold is a usage error too."""
        (tmp_path / "pyproject.toml").write_text("[tool.gatewright]\nthreshold = 101\n")
        assert coverage_command(project_root=tmp_path, dry_run=True) == 2

    def test_unknown_unit(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A --unit that matches nothing is a usage error."""
        artifact = _artifact(tmp_path, {"src/a.py": (10, 5)})

        exit_code = coverage_command(
            project_root=tmp_path, unit="src/nope.py", artifact=artifact, format="json"
        )

        assert exit_code == 2
        assert "Unknown coverage unit" in json.loads(capsys.readouterr().out)["error"]

    def test_unknown_toolchain(self, tmp_path: Path) -> None:
        """An unknown toolchain is a usage error."""
        assert coverage_command(project_root=tmp_path, toolchains=["cobol"]) == 2

    def test_missing_root(self, tmp_path: Path) -> None:
        """A missing project root is a usage error."""
        assert coverage_command(project_root=tmp_path / "missing") == 2

    def test_no_artifact_no_collector(self, tmp_path: Path) -> None:
        """Without an artifact or a coverage-capable toolchain there is nothing to read."""
        assert coverage_command(project_root=tmp_path) == 2

    def test_no_model_configured(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Remediation without any model configuration is a usage error."""
        for var in ("GATEWRIGHT_MODEL", "ANTHROPIC_API_KEY", "OPENAI_API_KEY"):
            monkeypatch.delenv(var, raising=False)
        artifact = _artifact(tmp_path, {"src/a.py": (10, 5)})

        assert coverage_command(project_root=tmp_path, artifact=artifact) == 2


class TestCoverageCommand:
    """Test gatewright coverage end to end with fakes at the edges."""

    def test_missing_artifact(self, tmp_path: Path) -> None:
        """An unreadable artifact exits 1."""
        assert coverage_command(project_root=tmp_path, artifact=tmp_path / "coverage.json") == 1

    def test_nothing_to_improve(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """All units above threshold exits 0 with no records."""
        artifact = _artifact(tmp_path, {"src/a.py": (10, 10)})

        exit_code = coverage_command(
            project_root=tmp_path, threshold=80, artifact=artifact, format="json"
        )

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert data["records"] == []
        assert data["satisfied"] == ["src/a.py"]

    @patch("gatewright.coverage.cli.AgentTestGenerator.from_model")
    @patch("gatewright.coverage.cli.GitRepository")
    def test_dry_run(
        self,
        mock_repo: MagicMock,
        mock_from_model: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Dry-run projects every ranked unit without a model, VCS or file writes."""
        artifact = _artifact(tmp_path, {"src/a.py": (100, 56), "src/b.py": (100, 82)})
        before = sorted(p.name for p in tmp_path.iterdir())

        exit_code = coverage_command(
            project_root=tmp_path, threshold=90, artifact=artifact, dry_run=True, format="json"
        )

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert data["dry_run"] is True
        assert [r["unit"] for r in data["records"]] == ["src/a.py", "src/b.py"]
        assert {r["outcome"] for r in data["records"]} == {"PROJECTED"}
        mock_from_model.assert_not_called()
        mock_repo.assert_not_called()
        assert sorted(p.name for p in tmp_path.iterdir()) == before

    @patch("gatewright.validation.runner.GateRunner.run_gate")
    def test_dry_run_never_collects(self, mock_run_gate: MagicMock, tmp_path: Path) -> None:
        """Dry-run reads the existing artifact instead of running the collector."""
        (tmp_path / "pyproject.toml").write_text("")
        _artifact(tmp_path, {"src/a.py": (100, 56)})

        exit_code = coverage_command(project_root=tmp_path, threshold=90, dry_run=True)

        assert exit_code == 0
        mock_run_gate.assert_not_called()

    @patch("gatewright.validation.runner.GateRunner.run_gate")
    @patch("gatewright.validation.runner.GateRunner.run")
    def test_no_commit_run(
        self,
        mock_run: MagicMock,
        mock_run_gate: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A validated unit is left uncommitted under --no-commit."""
        artifact = _artifact(tmp_path, {"src/a.py": (100, 56)})
        mock_run.return_value = GateReport(
            mode=GateMode.FULL,
            outcomes=[
                GateOutcome(
                    gate="python:test", capability=Capability.TEST_RUNNER, status=GateStatus.PASS
                )
            ],
            status=GateStatus.PASS,
        )
        mock_run_gate.return_value = GateOutcome(
            gate="python:coverage",
            capability=Capability.COVERAGE_COLLECTOR,
            status=GateStatus.PASS,
        )
        generator = FixedGenerator()

        exit_code = coverage_command(
            project_root=tmp_path,
            threshold=90,
            artifact=artifact,
            no_commit=True,
            toolchains=["python"],
            format="json",
            generator=generator,
        )

        data = json.loads(capsys.readouterr().out)
        [record] = data["records"]
        assert record["outcome"] == "LEFT_UNCOMMITTED"
        assert record["files"] == ["tests/test_a.py"]
        assert (tmp_path / "tests" / "test_a.py").exists()
        assert generator.requests[0].toolchain == "python"
        gates = mock_run.call_args.args[0]
        assert {g.capability for g in gates} == {Capability.TEST_RUNNER}
        assert exit_code == 1

    def test_report_file(self, tmp_path: Path) -> None:
        """--report-file writes the remediation report as JSON."""
        artifact = _artifact(tmp_path, {"src/a.py": (100, 56)})
        report_path = tmp_path / "reports" / "coverage.json"

        coverage_command(
            project_root=tmp_path,
            threshold=90,
            artifact=artifact,
            dry_run=True,
            report_file=report_path,
        )

        data = json.loads(report_path.read_text())
        assert data["records"][0]["outcome"] == "PROJECTED"
        assert data["exit_code"] == 0

    @patch("gatewright.coverage.cli.GitRepository")
    @patch("gatewright.validation.runner.GateRunner.run_gate")
    @patch("gatewright.validation.runner.GateRunner.run")
    def test_timeout_reaches_git(
        self,
        mock_run: MagicMock,
        mock_run_gate: MagicMock,
        mock_repo: MagicMock,
        tmp_path: Path,
    ) -> None:
        """--timeout bounds git calls as well as gate invocations."""
        artifact = _artifact(tmp_path, {"src/a.py": (100, 56)})
        mock_run.return_value = GateReport(
            mode=GateMode.FULL,
            outcomes=[
                GateOutcome(
                    gate="python:test", capability=Capability.TEST_RUNNER, status=GateStatus.PASS
                )
            ],
            status=GateStatus.PASS,
        )
        mock_run_gate.return_value = GateOutcome(
            gate="python:coverage",
            capability=Capability.COVERAGE_COLLECTOR,
            status=GateStatus.PASS,
        )
        mock_repo.return_value.is_repository.return_value = True
        mock_repo.return_value.commit.return_value = "abc123"

        coverage_command(
            project_root=tmp_path,
            threshold=90,
            artifact=artifact,
            toolchains=["python"],
            timeout_seconds=42,
            format="json",
            generator=FixedGenerator(),
        )

        mock_repo.assert_called_once_with(tmp_path, timeout_seconds=42)
        mock_repo.return_value.commit.assert_called_once()
