"""Provider abstractions the test generator depends on.

Nothing here imports pydantic-ai, so the coverage loop and its tests can run
against any object implementing ``AgentProvider.invoke``.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict


class TokenUsage(BaseModel):
    """Token counts for one or more model requests."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    requests: int = 1

    model_config = ConfigDict(frozen=True)

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            requests=self.requests + other.requests,
        )


class AgentResult[OutputT](BaseModel):
    """Typed output of one invocation, with usage and timing."""

    output: OutputT
    usage: TokenUsage
    model: str
    provider: str
    duration_ms: int


class AgentProvider[OutputT, DepsT](ABC):
    """Something that turns a prompt into a typed ``AgentResult``."""

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        dependencies: DepsT | None = None,
        **kwargs: object,
    ) -> AgentResult[OutputT]: ...
