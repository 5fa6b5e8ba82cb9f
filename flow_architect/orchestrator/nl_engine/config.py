"""Configuration for the NL Engine.

This module provides configuration settings for the intent classifier,
including LLM model selection.

Environment Variables:
    ANTHROPIC_MODEL: Claude model used to classify chat utterances.
        Defaults to "claude-haiku-4-5-20251001".
        Options:
          - claude-haiku-4-5-20251001 (default, fast enough for every turn)
          - claude-sonnet-4-20250514 (better on long, messy utterances)
"""

import os

# Default model - can be overridden via ANTHROPIC_MODEL env var
DEFAULT_MODEL = "claude-haiku-4-5-20251001"

# Classification answers are small JSON objects
DEFAULT_MAX_TOKENS = 512


def get_model() -> str:
    """Get the Claude model to use for intent classification.

    Reads from ANTHROPIC_MODEL environment variable, falling back to
    the default Haiku model if not set.

    Returns:
        Claude model identifier string.
    """
    return os.environ.get("ANTHROPIC_MODEL", DEFAULT_MODEL)
