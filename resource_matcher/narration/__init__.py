"""Optional relevance narration for matched listings."""

from .anthropic import AnthropicNarrator, build_narrator, build_prompt, extract_json_object
from .base import NarrationContext, Narrator
from .exceptions import (
    NarrationConfigurationError,
    NarrationError,
    NarrationHTTPError,
    NarrationResponseError,
    NarrationTimeoutError,
)

__all__ = [
    "Narrator",
    "NarrationContext",
    "AnthropicNarrator",
    "build_narrator",
    "build_prompt",
    "extract_json_object",
    "NarrationError",
    "NarrationHTTPError",
    "NarrationTimeoutError",
    "NarrationResponseError",
    "NarrationConfigurationError",
]
