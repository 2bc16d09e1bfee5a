"""
Base interface for content generators.

Defines the contract that the native Gemini generator and every provider
adapter must follow.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from providers.types import (
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    EmbedContentResponse,
    GenerateContentRequest,
    GenerateContentResponse,
)


class ContentGenerator(ABC):
    """
    Abstract base class for content generators.

    All generators must implement generate_content(), generate_content_stream(),
    count_tokens() and embed_content(). Generators should set `provider` (a
    Provider tag, e.g. "anthropic") and `name` (display name, e.g. "Anthropic"
    or "Vertex AI") used in errors and logs.
    """

    provider: str
    name: str

    @abstractmethod
    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResponse:
        """
        Runs a single generation round-trip.

        Args:
            request: Canonical generation request

        Returns:
            GenerateContentResponse: Single-candidate canonical response

        Raises:
            ProviderError: If the provider call fails
        """
        pass

    @abstractmethod
    async def generate_content_stream(
        self, request: GenerateContentRequest
    ) -> AsyncIterator[GenerateContentResponse]:
        """
        Starts a streaming generation.

        Request translation happens while awaiting this call; the returned
        iterator is lazy, forward-only and single-use. Each element carries
        only the new text delta, and the last one carries the finish reason.
        Stopping iteration early closes the provider stream.

        Args:
            request: Canonical generation request

        Returns:
            AsyncIterator[GenerateContentResponse]: Partial responses
        """
        pass

    @abstractmethod
    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        """
        Counts tokens for the request contents.

        Exact for the native provider, approximate for adapters. Returns 0
        for empty input.
        """
        pass

    @abstractmethod
    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResponse:
        """
        Embeds the request contents.

        Raises:
            UnsupportedCapability: If the provider has no embeddings endpoint
        """
        pass
