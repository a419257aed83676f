"""Gatewright providers — AI provider abstraction layer."""

from gatewright.providers.base import AgentProvider, AgentResult, TokenUsage
from gatewright.providers.config import resolve_default_model
from gatewright.providers.pydantic_ai import PydanticAIProvider

__all__ = [
    "AgentProvider",
    "AgentResult",
    "PydanticAIProvider",
    "TokenUsage",
    "resolve_default_model",
]
