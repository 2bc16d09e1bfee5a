"""
OpenAI API adapter.

Translates canonical requests to the chat-completions schema. Supports
images on user turns, function tools and embeddings.
"""

import logging
from typing import AsyncIterator, List, Optional

from openai import AsyncOpenAI

from providers import openai_compat
from providers.base import ContentGenerator
from providers.exceptions import ProviderError
from providers.translation import (
    assemble_stream,
    drop_none,
    estimate_tokens,
    extract_text,
    normalize_contents,
    parts_to_message_content,
    placeholder_block,
)
from providers.types import (
    Blob,
    ContentEmbedding,
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

DEFAULT_MODEL = "gpt-4o"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

# No token counting endpoint; ~4 characters per token for GPT models
CHARS_PER_TOKEN = 4

FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.MAX_TOKENS,
    "tool_calls": FinishReason.STOP,
    "function_call": FinishReason.STOP,
    "content_filter": FinishReason.SAFETY,
}


class OpenAIAdapter(ContentGenerator):
    """
    Adapter for the OpenAI API.

    Args:
        api_key: OpenAI API key
        base_url: Optional endpoint override (proxy or compatible host)
    """

    def __init__(self, api_key: str, base_url: Optional[str] = None):
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.provider = Provider.OPENAI
        self.name = "OpenAI"

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResponse:
        params = self._build_params(request)
        try:
            completion = await self.client.chat.completions.create(**params)
            response = openai_compat.response_from_completion(completion, FINISH_REASONS)
        except Exception as e:
            logger.error(f"OpenAI generation error: {e}")
            raise ProviderError(self.name, str(e)) from e

        logger.info(f"OpenAI ({params['model']}) response: {len(response.text)} chars")
        return response

    async def generate_content_stream(
        self, request: GenerateContentRequest
    ) -> AsyncIterator[GenerateContentResponse]:
        params = self._build_params(request)
        params["stream_options"] = {"include_usage": True}
        events = openai_compat.stream_events(self.client, params)
        return assemble_stream(events, self.name, FINISH_REASONS)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        text = extract_text(request.contents)
        return CountTokensResponse(total_tokens=estimate_tokens(text, CHARS_PER_TOKEN))

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResponse:
        """
        Embed each content separately through the embeddings endpoint.

        Returns:
            EmbedContentResponse: One embedding per content, in order
        """
        texts = [
            " ".join(p.text for p in c.parts if p.is_text)
            for c in normalize_contents(request.contents)
        ]
        if not texts:
            return EmbedContentResponse()

        try:
            response = await self.client.embeddings.create(
                model=request.model or DEFAULT_EMBEDDING_MODEL,
                input=texts,
            )
        except Exception as e:
            logger.error(f"OpenAI embeddings error: {e}")
            raise ProviderError(self.name, str(e)) from e

        return EmbedContentResponse(
            embeddings=[ContentEmbedding(values=list(d.embedding)) for d in response.data]
        )

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
            params["tools"] = openai_compat.convert_tools(config.tools)
        return params

    def _convert_parts(self, parts: List[Part], role: str):
        # Assistant turns only accept text
        if role == "assistant":
            texts = []
            for part in parts:
                if part.is_text:
                    texts.append(part.text)
                else:
                    texts.append(
                        placeholder_block(
                            self.name, part.inline_data.mime_type, "[Image data]"
                        )["text"]
                    )
            return " ".join(texts)
        return parts_to_message_content(parts, self._inline_block)

    def _inline_block(self, blob: Blob) -> dict:
        if blob.mime_type.startswith("image/"):
            return {
                "type": "image_url",
                "image_url": {"url": f"data:{blob.mime_type};base64,{blob.data}"},
            }
        return placeholder_block(
            self.name,
            blob.mime_type,
            f"[{blob.mime_type} content not supported by OpenAI]",
        )
