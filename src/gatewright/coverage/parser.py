"""Coverage artifact readers.

Each reader turns one artifact format into normalized CoverageUnit records,
one per source file, in the order the artifact lists them.
"""

import json
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

from gatewright.coverage.models import ArtifactFormat, CoverageUnit
from gatewright.errors import ArtifactUnreadable

_SUFFIX_FORMATS = {
    ".json": ArtifactFormat.COVERAGE_JSON,
    ".info": ArtifactFormat.LCOV,
    ".lcov": ArtifactFormat.LCOV,
}


def _percent(covered: int, total: int) -> float:
    if total == 0:
        return 100.0
    return round(covered / total * 100, 2)


def _line_unit(identifier: str, hits: dict[int, int]) -> CoverageUnit:
    """Build a unit from a line-number → hit-count map."""
    covered = sum(1 for count in hits.values() if count > 0)
    missing = [str(line) for line in sorted(hits) if hits[line] == 0]
    return CoverageUnit(
        identifier=identifier,
        percent=_percent(covered, len(hits)),
        total=len(hits),
        covered=covered,
        missing_locations=missing,
    )


def detect_format(path: Path, text: str) -> ArtifactFormat:
    """Guess the artifact format from its suffix and first bytes."""
    if path.suffix in _SUFFIX_FORMATS:
        return _SUFFIX_FORMATS[path.suffix]

    head = text.lstrip()[:512]
    if head.startswith("{"):
        return ArtifactFormat.COVERAGE_JSON
    if head.startswith("mode:"):
        return ArtifactFormat.GO_COVER
    if head.startswith(("TN:", "SF:")):
        return ArtifactFormat.LCOV
    if head.startswith("<"):
        if "<report" in text[:4096]:
            return ArtifactFormat.JACOCO
        return ArtifactFormat.COBERTURA
    raise ValueError("unrecognized coverage artifact format")


def parse_coverage_json(text: str) -> list[CoverageUnit]:
    """coverage.py ``coverage json`` output."""
    payload = json.loads(text)
    files = payload["files"]
    if not isinstance(files, dict):
        raise ValueError("'files' is not an object")

    units: list[CoverageUnit] = []
    for filename, info in files.items():
        summary = info["summary"]
        total = int(summary["num_statements"])
        covered = int(summary["covered_lines"])
        missing = [str(line) for line in sorted(info.get("missing_lines", []))]
        units.append(
            CoverageUnit(
                identifier=filename,
                percent=_percent(covered, total),
                total=total,
                covered=covered,
                missing_locations=missing,
            )
        )
    return units


def parse_cobertura(text: str) -> list[CoverageUnit]:
    """Cobertura XML (coverage.py xml, coverlet, gcovr)."""
    root = ET.fromstring(text)
    if root.tag != "coverage":
        raise ValueError(f"expected <coverage> root, found <{root.tag}>")

    per_file: dict[str, dict[int, int]] = {}
    for cls in root.iter("class"):
        filename = cls.get("filename") or cls.get("name")
        if not filename:
            continue
        hits = per_file.setdefault(filename, {})
        for line in cls.iterfind("lines/line"):
            number = int(line.get("number", "0"))
            count = int(line.get("hits", "0"))
            hits[number] = max(hits.get(number, 0), count)

    return [_line_unit(name, hits) for name, hits in per_file.items()]


def parse_jacoco(text: str) -> list[CoverageUnit]:
    """JaCoCo XML report; one unit per source file."""
    root = ET.fromstring(text)
    if root.tag != "report":
        raise ValueError(f"expected <report> root, found <{root.tag}>")

    units: list[CoverageUnit] = []
    for package in root.iter("package"):
        package_name = package.get("name", "")
        for sourcefile in package.iterfind("sourcefile"):
            name = sourcefile.get("name", "")
            identifier = f"{package_name}/{name}" if package_name else name
            hits: dict[int, int] = {}
            for line in sourcefile.iterfind("line"):
                missed = int(line.get("mi", "0"))
                covered = int(line.get("ci", "0"))
                if missed + covered == 0:
                    continue
                hits[int(line.get("nr", "0"))] = covered
            units.append(_line_unit(identifier, hits))
    return units


def parse_lcov(text: str) -> list[CoverageUnit]:
    """LCOV tracefile (lcov, c8, cargo-llvm-cov, tarpaulin)."""
    per_file: dict[str, dict[int, int]] = {}
    current: dict[int, int] | None = None

    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("SF:"):
            current = per_file.setdefault(line[3:], {})
        elif line.startswith("DA:"):
            if current is None:
                raise ValueError("DA record outside of SF block")
            fields = line[3:].split(",")
            number, count = int(fields[0]), int(fields[1])
            current[number] = max(current.get(number, 0), count)
        elif line == "end_of_record":
            current = None

    if not per_file:
        raise ValueError("no SF records found")
    return [_line_unit(name, hits) for name, hits in per_file.items()]


def parse_go_cover(text: str) -> list[CoverageUnit]:
    """Go cover profile (``go test -coverprofile``). Counts statements, not lines."""
    lines = text.splitlines()
    if not lines or not lines[0].startswith("mode:"):
        raise ValueError("missing 'mode:' header")

    blocks: dict[str, dict[str, tuple[int, int]]] = {}
    for raw in lines[1:]:
        line = raw.strip()
        if not line:
            continue
        location, statements, count = line.rsplit(" ", 2)
        filename, _, span = location.rpartition(":")
        start, end = span.split(",")
        key = f"{start.split('.')[0]}-{end.split('.')[0]}"
        previous = blocks.setdefault(filename, {}).get(key, (0, 0))
        blocks[filename][key] = (int(statements), max(previous[1], int(count)))

    units: list[CoverageUnit] = []
    for filename, file_blocks in blocks.items():
        total = sum(stmts for stmts, _ in file_blocks.values())
        covered = sum(stmts for stmts, count in file_blocks.values() if count > 0)
        missing = sorted(
            (key for key, (stmts, count) in file_blocks.items() if count == 0 and stmts > 0),
            key=lambda k: int(k.split("-")[0]),
        )
        units.append(
            CoverageUnit(
                identifier=filename,
                percent=_percent(covered, total),
                total=total,
                covered=covered,
                missing_locations=missing,
            )
        )
    return units


_PARSERS: dict[ArtifactFormat, Callable[[str], list[CoverageUnit]]] = {
    ArtifactFormat.COVERAGE_JSON: parse_coverage_json,
    ArtifactFormat.COBERTURA: parse_cobertura,
    ArtifactFormat.JACOCO: parse_jacoco,
    ArtifactFormat.LCOV: parse_lcov,
    ArtifactFormat.GO_COVER: parse_go_cover,
}


def parse_artifact(path: Path, fmt: ArtifactFormat | None = None) -> list[CoverageUnit]:
    """Read a coverage artifact into units.

    Args:
        path: Artifact location
        fmt: Format hint (auto-detected if None)

    Returns:
        One CoverageUnit per source file

    Raises:
        ArtifactUnreadable: If the file is missing or cannot be parsed
    """
    if not path.is_file():
        raise ArtifactUnreadable(path, "file not found")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ArtifactUnreadable(path, str(e)) from e

    try:
        resolved = fmt or detect_format(path, text)
        return _PARSERS[resolved](text)
    except (ValueError, KeyError, TypeError, AttributeError, ET.ParseError) as e:
        raise ArtifactUnreadable(path, f"{type(e).__name__}: {e}") from e
