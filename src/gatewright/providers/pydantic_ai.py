"""Pydantic AI provider.

Wraps an ``Agent`` whose output type is validated by pydantic-ai, so a reply
that does not fit the schema is retried by the agent itself before it ever
reaches the caller.
"""

import time
from typing import Any

from pydantic_ai import Agent
from pydantic_ai.models import KnownModelName, Model
from pydantic_ai.models.test import TestModel
from pydantic_ai.settings import ModelSettings

from gatewright.providers.base import AgentProvider, AgentResult, TokenUsage


def split_model_name(model: object) -> tuple[str, str]:
    """Return ``(model_name, provider_name)`` for a model or "provider:model" string."""
    if isinstance(model, TestModel):
        return ("test", "test")
    text = str(model)
    provider, sep, name = text.partition(":")
    if not sep:
        return (text, "unknown")
    return (name, provider)


class PydanticAIProvider[OutputT, DepsT](AgentProvider[OutputT, DepsT]):
    """AgentProvider backed by a pydantic-ai Agent.

    Example:
        provider = PydanticAIProvider(
            model="anthropic:claude-sonnet-4-5",
            output_type=GeneratedTests,
            system_prompt=SYSTEM_PROMPT,
            request_timeout=120,
        )
    """

    def __init__(
        self,
        model: Model | KnownModelName | TestModel | str,
        output_type: type[OutputT],
        system_prompt: str = "",
        output_retries: int = 1,
        request_timeout: float | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            model: Pydantic AI model, "provider:model" string, or TestModel
            output_type: Structured output type the agent must produce
            system_prompt: System prompt for every run
            output_retries: Times the agent may re-ask after a schema mismatch
            request_timeout: Per-request timeout in seconds (provider default if None)
        """
        settings: ModelSettings = {}
        if request_timeout is not None:
            settings["timeout"] = request_timeout
        self._agent: Agent[DepsT, OutputT] = Agent(
            model=model,
            output_type=output_type,
            system_prompt=system_prompt,
            output_retries=output_retries,
            model_settings=settings or None,
        )
        self.model_name, self.provider_name = split_model_name(model)

    async def invoke(
        self,
        prompt: str,
        dependencies: DepsT | None = None,
        **kwargs: Any,
    ) -> AgentResult[OutputT]:
        """Run the agent once and collect usage and timing."""
        start = time.monotonic()
        if dependencies is not None:
            result = await self._agent.run(prompt, deps=dependencies, **kwargs)
        else:
            result = await self._agent.run(prompt, **kwargs)
        duration_ms = int((time.monotonic() - start) * 1000)

        run_usage = result.usage()
        return AgentResult(
            output=result.output,
            usage=TokenUsage(
                input_tokens=run_usage.input_tokens or 0,
                output_tokens=run_usage.output_tokens or 0,
                total_tokens=run_usage.total_tokens or 0,
                requests=run_usage.requests or 1,
            ),
            model=self.model_name,
            provider=self.provider_name,
            duration_ms=duration_ms,
        )
