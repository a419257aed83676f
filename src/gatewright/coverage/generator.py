"""Test-generation collaborator.

The remediation loop only sequences generation; what the tests contain is
opaque to it.
"""

import asyncio
import logging
from typing import Any, Protocol, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gatewright.coverage.models import CoverageUnit
from gatewright.coverage.prompts import SYSTEM_PROMPT, build_generation_prompt
from gatewright.errors import GenerationError
from gatewright.providers.base import AgentProvider, TokenUsage

logger = logging.getLogger(__name__)


class GeneratedFile(BaseModel):
    """One generated test file, path relative to the project root."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str


class GeneratedTests(BaseModel):
    """Candidate test additions for one unit."""

    model_config = ConfigDict(frozen=True)

    files: list[GeneratedFile]
    tests_added: int = Field(default=0, ge=0)
    rationale: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_count(cls, values: Any) -> Any:
        """Count one test per file when the generator does not say."""
        if isinstance(values, dict) and not values.get("tests_added") and values.get("files"):
            values = {**values, "tests_added": len(values["files"])}
        return values


class GenerationRequest(BaseModel):
    """Everything a generator needs to target one unit's gaps."""

    model_config = ConfigDict(frozen=True)

    unit: CoverageUnit
    gaps: list[str]
    threshold: float
    toolchain: str
    test_layout: str = ""
    source_excerpt: str = ""
    attempt: int = 1
    feedback: str | None = None


class GapTestGenerator(Protocol):
    """Produces candidate tests for a unit."""

    def generate(self, request: GenerationRequest) -> GeneratedTests: ...


class AgentTestGenerator:
    """Generates tests through an AI provider with structured GeneratedTests output.

    ``usage`` accumulates token counts over every call, failed attempts included.
    """

    def __init__(self, provider: AgentProvider[GeneratedTests, None]) -> None:
        self.provider = provider
        self.usage = TokenUsage(requests=0)

    @classmethod
    def from_model(
        cls, model: str, request_timeout: float | None = None
    ) -> "AgentTestGenerator":
        """Build a generator backed by a PydanticAIProvider."""
        from pydantic_ai.models import KnownModelName

        from gatewright.providers.pydantic_ai import PydanticAIProvider

        provider: PydanticAIProvider[GeneratedTests, None] = PydanticAIProvider(
            model=cast(KnownModelName, model),
            output_type=GeneratedTests,
            system_prompt=SYSTEM_PROMPT,
            request_timeout=request_timeout,
        )
        return cls(provider)

    def generate(self, request: GenerationRequest) -> GeneratedTests:
        """Invoke the provider synchronously.

        Raises:
            GenerationError: If the provider fails or returns no files
        """
        prompt = build_generation_prompt(
            identifier=request.unit.identifier,
            percent=request.unit.percent,
            threshold=request.threshold,
            gaps=request.gaps,
            toolchain=request.toolchain,
            test_layout=request.test_layout,
            source_excerpt=request.source_excerpt,
            feedback=request.feedback,
        )
        try:
            result = asyncio.run(self.provider.invoke(prompt))
        except Exception as e:
            raise GenerationError(f"test generation failed: {e}") from e

        self.usage = self.usage + result.usage
        logger.debug(
            "generation for %s (attempt %d) used %d tokens in %dms",
            request.unit.identifier,
            request.attempt,
            result.usage.total_tokens,
            result.duration_ms,
        )
        if not result.output.files:
            raise GenerationError("generator returned no test files")
        return result.output
