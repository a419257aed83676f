"""Tests for Pydantic AI provider implementation."""

from pydantic import BaseModel
from pydantic_ai.models.test import TestModel

from gatewright.providers.pydantic_ai import PydanticAIProvider, split_model_name


class DummyOutput(BaseModel):
    """Dummy output model for testing."""

    message: str


class TestPydanticAIProvider:
    """Test PydanticAIProvider with TestModel."""

    async def test_invoke_returns_agent_result(self) -> None:
        """Invoke returns AgentResult with correct structure."""
        provider = PydanticAIProvider(
            model=TestModel(), output_type=str, system_prompt="Test system prompt"
        )
        result = await provider.invoke("test prompt")

        assert isinstance(result.output, str)
        assert result.model == "test"
        assert result.provider == "test"
        assert result.duration_ms >= 0

    async def test_usage_has_token_counts(self) -> None:
        """Usage contains token counts from TestModel."""
        provider = PydanticAIProvider(model=TestModel(), output_type=str)
        result = await provider.invoke("test prompt")

        usage = result.usage
        assert usage.requests == 1
        assert usage.total_tokens == usage.input_tokens + usage.output_tokens

    async def test_structured_output(self) -> None:
        """Works with structured Pydantic output."""
        provider = PydanticAIProvider(model=TestModel(), output_type=DummyOutput)
        result = await provider.invoke("test prompt")

        assert isinstance(result.output, DummyOutput)

    async def test_dependencies_passed(self) -> None:
        """Dependencies can be passed to invoke."""

        class Deps:
            value: int = 42

        provider = PydanticAIProvider(model=TestModel(), output_type=str)
        result = await provider.invoke("test prompt", dependencies=Deps())
        assert isinstance(result.output, str)

    def test_request_timeout_accepted(self) -> None:
        """A request timeout is passed through as model settings."""
        provider = PydanticAIProvider(model=TestModel(), output_type=str, request_timeout=30)
        assert provider.model_name == "test"
        assert provider.provider_name == "test"


class TestSplitModelName:
    """Test split_model_name."""

    def test_shorthand(self) -> None:
        """Provider prefix is split off."""
        assert split_model_name("anthropic:claude-sonnet-4-5") == ("claude-sonnet-4-5", "anthropic")

    def test_plain_string(self) -> None:
        """No prefix means the provider is unknown."""
        assert split_model_name("some-model") == ("some-model", "unknown")

    def test_test_model(self) -> None:
        """TestModel reports 'test' for both."""
        assert split_model_name(TestModel()) == ("test", "test")

    def test_model_object(self) -> None:
        """Model objects are split by their string form."""

        class FakeModel:
            def __str__(self) -> str:
                return "openai:gpt-4o"

        assert split_model_name(FakeModel()) == ("gpt-4o", "openai")
