"""
Meta Llama adapter for OpenAI-compatible hosts.

Defaults to Together.ai. Most Llama hosts accept text only and do not offer
function calling or embeddings, so inline data becomes placeholder text and
tools are left out of the call.
"""

import logging
from typing import AsyncIterator, List

from openai import AsyncOpenAI

from providers import openai_compat
from providers.base import ContentGenerator
from providers.exceptions import ProviderError, UnsupportedCapability
from providers.translation import (
    assemble_stream,
    drop_none,
    estimate_tokens,
    extract_text,
    parts_to_message_content,
    placeholder_block,
)
from providers.types import (
    Blob,
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    EmbedContentResponse,
    FinishReason,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
    Provider,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.together.xyz/v1"
DEFAULT_MODEL = "meta-llama/Llama-3.1-70B-Instruct-Turbo"

# Llama tokenizers land close to ~4 characters per token
CHARS_PER_TOKEN = 4

UNSUPPORTED_IMAGE_TEXT = "[Image data not supported by this provider]"

FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "eos": FinishReason.STOP,
    "tool_calls": FinishReason.STOP,
    "length": FinishReason.MAX_TOKENS,
    "content_filter": FinishReason.SAFETY,
}


class MetaLlamaAdapter(ContentGenerator):
    """
    Adapter for Llama models behind an OpenAI-compatible endpoint.

    Args:
        api_key: Host API key
        base_url: Host endpoint (default: Together.ai)
    """

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL):
        self.base_url = base_url
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.provider = Provider.META
        self.name = "Meta Llama"

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResponse:
        params = self._build_params(request)
        try:
            completion = await self.client.chat.completions.create(**params)
            response = openai_compat.response_from_completion(completion, FINISH_REASONS)
        except Exception as e:
            logger.error(f"Meta Llama generation error: {e}")
            raise ProviderError(self.name, str(e)) from e

        logger.info(f"Meta Llama ({params['model']}) response: {len(response.text)} chars")
        return response

    async def generate_content_stream(
        self, request: GenerateContentRequest
    ) -> AsyncIterator[GenerateContentResponse]:
        params = self._build_params(request)
        events = openai_compat.stream_events(self.client, params)
        return assemble_stream(events, self.name, FINISH_REASONS)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        text = extract_text(request.contents)
        return CountTokensResponse(total_tokens=estimate_tokens(text, CHARS_PER_TOKEN))

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResponse:
        raise UnsupportedCapability(self.name, "embeddings")

    def _build_params(self, request: GenerateContentRequest) -> dict:
        config = request.config
        params = {
            "model": request.model or DEFAULT_MODEL,
            "messages": openai_compat.build_messages(
                request, self._convert_parts, self.name
            ),
        }
        params.update(
            drop_none(
                {
                    "temperature": config.temperature,
                    "top_p": config.top_p,
                    "max_tokens": config.max_output_tokens,
                    "stop": config.stop_sequences,
                }
            )
        )
        if config.tools:
            logger.debug(
                f"Meta Llama: dropping {len(config.tools)} tool declarations (no function calling)"
            )
        return params

    def _convert_parts(self, parts: List[Part], role: str):
        return parts_to_message_content(parts, self._inline_block)

    def _inline_block(self, blob: Blob) -> dict:
        return placeholder_block(self.name, blob.mime_type, UNSUPPORTED_IMAGE_TEXT)
