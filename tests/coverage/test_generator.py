"""Tests for the test-generation collaborator."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from pydantic_ai.models.test import TestModel

from gatewright.coverage.generator import (
    AgentTestGenerator,
    GeneratedFile,
    GeneratedTests,
    GenerationRequest,
)
from gatewright.coverage.models import CoverageUnit
from gatewright.coverage.prompts import SYSTEM_PROMPT, build_generation_prompt, load_source_excerpt
from gatewright.errors import GenerationError
from gatewright.providers.base import AgentResult, TokenUsage
from gatewright.providers.pydantic_ai import PydanticAIProvider

UNIT = CoverageUnit(
    identifier="src/app/core.py",
    percent=56.0,
    total=100,
    covered=56,
    missing_locations=["10", "11", "20-24"],
)


def _request(**overrides: object) -> GenerationRequest:
    values: dict[str, object] = {
        "unit": UNIT,
        "gaps": ["10", "11", "20-24"],
        "threshold": 90.0,
        "toolchain": "python",
        "test_layout": "tests/test_<module>.py using pytest",
    }
    values.update(overrides)
    return GenerationRequest.model_validate(values)


class TestGeneratedTests:
    """Test GeneratedTests model."""

    def test_tests_added_defaults_to_file_count(self) -> None:
        """Without a count, one test per file is assumed."""
        generated = GeneratedTests(
            files=[
                GeneratedFile(path="tests/a.py", content=""),
                GeneratedFile(path="b", content=""),
            ]
        )
        assert generated.tests_added == 2

    def test_explicit_count_kept(self) -> None:
        """An explicit count wins."""
        generated = GeneratedTests(
            files=[GeneratedFile(path="tests/a.py", content="")], tests_added=7
        )
        assert generated.tests_added == 7


class TestPrompts:
    """Test prompt construction."""

    def test_prompt_lists_gaps_and_target(self) -> None:
        """Prompt names the unit, its coverage, the target and the gaps."""
        prompt = build_generation_prompt(
            identifier="src/app/core.py",
            percent=56.0,
            threshold=90.0,
            gaps=["10", "20-24"],
            toolchain="python",
            test_layout="tests/",
            source_excerpt="",
        )
        assert "Unit: src/app/core.py" in prompt
        assert "56.0% (target 90%)" in prompt
        assert "10, 20-24" in prompt
        assert "previous attempt" not in prompt

    def test_prompt_includes_feedback(self) -> None:
        """A retry prompt carries the previous failure output."""
        prompt = build_generation_prompt(
            identifier="a.py",
            percent=10.0,
            threshold=90.0,
            gaps=["1"],
            toolchain="python",
            test_layout="tests/",
            source_excerpt="    1  x = 1",
            feedback="E   AssertionError",
        )
        assert "previous attempt failed" in prompt
        assert "E   AssertionError" in prompt
        assert "x = 1" in prompt

    def test_load_source_excerpt(self, tmp_path: Path) -> None:
        """Source excerpts are numbered and truncated."""
        root = tmp_path
        (root / "mod.py").write_text("a = 1\nb = 2\nc = 3\n")

        excerpt = load_source_excerpt(root, "mod.py", max_lines=2)

        lines = excerpt.splitlines()
        assert lines[0].strip() == "1  a = 1"
        assert lines[-1] == "... (1 more lines truncated)"

    def test_load_missing_source(self, tmp_path: Path) -> None:
        """A missing source file yields an empty excerpt."""
        assert load_source_excerpt(tmp_path, "nope.py") == ""


class TestAgentTestGenerator:
    """Test AgentTestGenerator with TestModel."""

    def test_generate_with_test_model(self) -> None:
        """Structured output from the agent becomes GeneratedTests."""
        provider: PydanticAIProvider[GeneratedTests, None] = PydanticAIProvider(
            model=TestModel(
                custom_output_args={
                    "files": [{"path": "tests/test_core.py", "content": "def test_x(): pass\n"}],
                    "tests_added": 0,
                    "rationale": "covers branches",
                }
            ),
            output_type=GeneratedTests,
            system_prompt=SYSTEM_PROMPT,
        )

        generator = AgentTestGenerator(provider)
        generated = generator.generate(_request())

        assert [f.path for f in generated.files] == ["tests/test_core.py"]
        assert generated.tests_added == 1
        assert generator.usage.requests == 1

    def test_prompt_passed_to_provider(self) -> None:
        """The provider receives a prompt built from the request."""
        provider = AsyncMock()
        provider.invoke.return_value = AgentResult(
            output=GeneratedTests(files=[GeneratedFile(path="tests/t.py", content="")]),
            usage=TokenUsage(),
            model="test",
            provider="test",
            duration_ms=1,
        )

        AgentTestGenerator(provider).generate(_request(attempt=2, feedback="boom"))

        prompt = provider.invoke.call_args.args[0]
        assert "src/app/core.py" in prompt
        assert "boom" in prompt

    def test_provider_failure_wrapped(self) -> None:
        """Provider exceptions surface as GenerationError."""
        provider = AsyncMock()
        provider.invoke.side_effect = RuntimeError("rate limited")

        with pytest.raises(GenerationError, match="rate limited"):
            AgentTestGenerator(provider).generate(_request())

    def test_no_files_is_error(self) -> None:
        """An empty generation is treated as a failure."""
        provider = AsyncMock()
        provider.invoke.return_value = AgentResult(
            output=GeneratedTests(files=[]),
            usage=TokenUsage(),
            model="test",
            provider="test",
            duration_ms=1,
        )

        with pytest.raises(GenerationError, match="no test files"):
            AgentTestGenerator(provider).generate(_request())
