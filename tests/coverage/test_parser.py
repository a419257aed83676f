"""Tests for coverage artifact readers."""

import json
from pathlib import Path

import pytest

from gatewright.coverage.models import ArtifactFormat
from gatewright.coverage.parser import (
    detect_format,
    parse_artifact,
    parse_cobertura,
    parse_coverage_json,
    parse_go_cover,
    parse_jacoco,
    parse_lcov,
)
from gatewright.errors import ArtifactUnreadable

COVERAGE_JSON = {
    "meta": {"version": "7.4.0"},
    "files": {
        "src/app/core.py": {
            "summary": {"num_statements": 10, "covered_lines": 6},
            "missing_lines": [12, 4, 7, 30],
        },
        "src/app/__init__.py": {
            "summary": {"num_statements": 0, "covered_lines": 0},
            "missing_lines": [],
        },
    },
}

COBERTURA = """<?xml version="1.0" ?>
<coverage line-rate="0.5">
  <packages>
    <package name="app">
      <classes>
        <class name="core.py" filename="app/core.py" line-rate="0.5">
          <lines>
            <line number="1" hits="3"/>
            <line number="2" hits="0"/>
            <line number="3" hits="1"/>
            <line number="4" hits="0"/>
          </lines>
        </class>
      </classes>
    </package>
  </packages>
</coverage>
"""

JACOCO = """<?xml version="1.0" encoding="UTF-8"?>
<report name="demo">
  <package name="com/example">
    <sourcefile name="Calc.java">
      <line nr="3" mi="0" ci="2" mb="0" cb="0"/>
      <line nr="5" mi="4" ci="0" mb="0" cb="0"/>
      <line nr="6" mi="0" ci="0" mb="0" cb="0"/>
      <line nr="9" mi="1" ci="1" mb="0" cb="0"/>
    </sourcefile>
  </package>
</report>
"""

LCOV = """TN:
SF:src/a.ts
DA:1,1
DA:2,0
DA:3,0
end_of_record
SF:src/b.ts
DA:1,5
end_of_record
"""

GO_COVER = """mode: set
example.com/m/calc.go:3.24,5.2 1 1
example.com/m/calc.go:7.30,9.16 2 0
example.com/m/calc.go:12.2,12.14 1 0
example.com/m/util.go:3.20,4.2 1 1
"""


class TestDetectFormat:
    """Test artifact format detection."""

    def test_by_suffix(self) -> None:
        """Known suffixes decide the format."""
        assert detect_format(Path("coverage.json"), "") == ArtifactFormat.COVERAGE_JSON
        assert detect_format(Path("lcov.info"), "") == ArtifactFormat.LCOV

    def test_by_content(self) -> None:
        """Unknown suffixes fall back to content sniffing."""
        assert detect_format(Path("coverage.out"), GO_COVER) == ArtifactFormat.GO_COVER
        assert detect_format(Path("coverage.xml"), COBERTURA) == ArtifactFormat.COBERTURA
        assert detect_format(Path("jacoco.xml"), JACOCO) == ArtifactFormat.JACOCO
        assert detect_format(Path("trace"), LCOV) == ArtifactFormat.LCOV

    def test_unrecognized(self) -> None:
        """Unrecognizable content raises ValueError."""
        with pytest.raises(ValueError):
            detect_format(Path("notes.txt"), "hello")


class TestParsers:
    """Test the per-format readers."""

    def test_coverage_json(self) -> None:
        """coverage.py JSON yields statements and sorted missing lines."""
        units = parse_coverage_json(json.dumps(COVERAGE_JSON))

        core = units[0]
        assert core.identifier == "src/app/core.py"
        assert core.total == 10
        assert core.covered == 6
        assert core.percent == 60.0
        assert core.missing_locations == ["4", "7", "12", "30"]

    def test_empty_file_is_fully_covered(self) -> None:
        """A file with no statements counts as 100%."""
        units = parse_coverage_json(json.dumps(COVERAGE_JSON))
        assert units[1].percent == 100.0

    def test_cobertura(self) -> None:
        """Cobertura lines with zero hits are missing."""
        [unit] = parse_cobertura(COBERTURA)
        assert unit.identifier == "app/core.py"
        assert unit.total == 4
        assert unit.covered == 2
        assert unit.missing_locations == ["2", "4"]

    def test_jacoco(self) -> None:
        """JaCoCo lines count as covered when any instruction is covered."""
        [unit] = parse_jacoco(JACOCO)
        assert unit.identifier == "com/example/Calc.java"
        assert unit.total == 3
        assert unit.covered == 2
        assert unit.missing_locations == ["5"]

    def test_lcov(self) -> None:
        """LCOV yields one unit per SF block."""
        units = parse_lcov(LCOV)
        assert [u.identifier for u in units] == ["src/a.ts", "src/b.ts"]
        assert units[0].percent == 33.33
        assert units[0].missing_locations == ["2", "3"]
        assert units[1].percent == 100.0

    def test_lcov_without_records(self) -> None:
        """LCOV text without SF records is rejected."""
        with pytest.raises(ValueError):
            parse_lcov("TN:\n")

    def test_go_cover(self) -> None:
        """Go profiles count statements and report missing blocks as line ranges."""
        units = parse_go_cover(GO_COVER)
        calc = units[0]
        assert calc.identifier == "example.com/m/calc.go"
        assert calc.total == 4
        assert calc.covered == 1
        assert calc.percent == 25.0
        assert calc.missing_locations == ["7-9", "12-12"]

    def test_go_cover_requires_mode(self) -> None:
        """Go profiles must start with a mode header."""
        with pytest.raises(ValueError):
            parse_go_cover("example.com/m/calc.go:3.24,5.2 1 1\n")


class TestParseArtifact:
    """Test parse_artifact error handling."""

    def test_reads_file(self, tmp_path: Path) -> None:
        """Reads and parses an artifact from disk."""
        path = tmp_path / "coverage.json"
        path.write_text(json.dumps(COVERAGE_JSON))

        units = parse_artifact(path)

        assert len(units) == 2

    def test_explicit_format(self, tmp_path: Path) -> None:
        """A format hint overrides detection."""
        path = tmp_path / "report.txt"
        path.write_text(LCOV)

        units = parse_artifact(path, ArtifactFormat.LCOV)

        assert len(units) == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing artifact is unreadable, never zero units."""
        with pytest.raises(ArtifactUnreadable) as exc_info:
            parse_artifact(tmp_path / "coverage.json")
        assert exc_info.value.reason == "file not found"

    def test_malformed_json(self, tmp_path: Path) -> None:
        """Malformed JSON is unreadable."""
        path = tmp_path / "coverage.json"
        path.write_text("{not json")

        with pytest.raises(ArtifactUnreadable):
            parse_artifact(path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        """JSON without a files table is unreadable."""
        path = tmp_path / "coverage.json"
        path.write_text(json.dumps({"totals": {}}))

        with pytest.raises(ArtifactUnreadable, match="KeyError"):
            parse_artifact(path)

    def test_malformed_xml(self, tmp_path: Path) -> None:
        """Broken XML is unreadable."""
        path = tmp_path / "coverage.xml"
        path.write_text("<coverage><packages>")

        with pytest.raises(ArtifactUnreadable):
            parse_artifact(path)
