"""Prompts for the test-generation agent."""

from pathlib import Path

MAX_SOURCE_LINES = 600

SYSTEM_PROMPT = """You write unit tests that raise line coverage of one source file.

Rules:
- Only add NEW test files, or fully rewritten versions of test files you were shown.
- Target the listed uncovered locations. Do not test unrelated code.
- Follow the project's existing test layout and framework.
- Tests must pass against the current source. Never modify source files.
- Paths are relative to the project root.
- Set tests_added to the number of test cases you wrote.
"""


def load_source_excerpt(
    project_root: Path, identifier: str, max_lines: int = MAX_SOURCE_LINES
) -> str:
    """Read the unit's source with line numbers, or return "" if it cannot be found."""
    path = Path(identifier)
    if not path.is_absolute():
        path = project_root / path
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        return ""

    numbered = [f"{i:>5}  {line}" for i, line in enumerate(lines[:max_lines], start=1)]
    if len(lines) > max_lines:
        numbered.append(f"... ({len(lines) - max_lines} more lines truncated)")
    return "\n".join(numbered)


def build_generation_prompt(
    identifier: str,
    percent: float,
    threshold: float,
    gaps: list[str],
    toolchain: str,
    test_layout: str,
    source_excerpt: str,
    feedback: str | None = None,
) -> str:
    """Assemble the user prompt for one generation attempt."""
    sections = [
        f"Unit: {identifier}",
        f"Toolchain: {toolchain}",
        f"Current coverage: {percent:.1f}% (target {threshold:g}%)",
        f"Test layout: {test_layout}",
        "Uncovered locations (line numbers or line ranges):",
        ", ".join(gaps),
    ]
    if source_excerpt:
        sections += ["", "Source:", "```", source_excerpt, "```"]
    if feedback:
        sections += [
            "",
            "Your previous attempt failed validation. Test runner output:",
            "```",
            feedback[-4000:],
            "```",
            "Fix the failing tests. Drop any test you cannot make pass.",
        ]
    return "\n".join(sections)
