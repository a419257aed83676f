"""Provider configuration — default model resolution."""

import os

DEFAULT_ANTHROPIC_MODEL = "anthropic:claude-sonnet-4-5"
DEFAULT_OPENAI_MODEL = "openai:gpt-4o"


def resolve_default_model() -> str:
    """Resolve the test-generation model based on available credentials.

    Checks in order:
    1. GATEWRIGHT_MODEL set → that model string
    2. ANTHROPIC_API_KEY set → DEFAULT_ANTHROPIC_MODEL
    3. OPENAI_API_KEY set → DEFAULT_OPENAI_MODEL
    4. Nothing → raise RuntimeError with clear instructions

    Returns:
        Full model string ready for PydanticAIProvider.
    """
    if model := os.environ.get("GATEWRIGHT_MODEL"):
        return model
    if os.environ.get("ANTHROPIC_API_KEY"):
        return DEFAULT_ANTHROPIC_MODEL
    if os.environ.get("OPENAI_API_KEY"):
        return DEFAULT_OPENAI_MODEL

    msg = (
        "No AI provider configured for test generation. Either:\n"
        "  1. Set ANTHROPIC_API_KEY or OPENAI_API_KEY, or\n"
        "  2. Set GATEWRIGHT_MODEL / [tool.gatewright] model, or\n"
        "  3. Pass --model explicitly (e.g. --model anthropic:claude-sonnet-4-5)"
    )
    raise RuntimeError(msg)
