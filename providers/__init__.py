"""
Content generators behind one canonical contract.

Implements the Adapter/Strategy pattern for talking to:
- Google Gemini (native: Gemini API or Vertex AI)
- OpenAI
- Anthropic Claude
- Meta Llama on OpenAI-compatible hosts
"""

from providers.base import ContentGenerator
from providers.exceptions import (
    ConfigurationError,
    ContentGeneratorError,
    ProviderError,
    QuotaExhaustedError,
    UnsupportedAuthType,
    UnsupportedCapability,
)
from providers.types import (
    Content,
    FinishReason,
    FunctionDeclaration,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
    Provider,
)

__all__ = [
    "ConfigurationError",
    "Content",
    "ContentGenerator",
    "ContentGeneratorError",
    "FinishReason",
    "FunctionDeclaration",
    "GenerateContentConfig",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "Part",
    "Provider",
    "ProviderError",
    "QuotaExhaustedError",
    "UnsupportedAuthType",
    "UnsupportedCapability",
]
