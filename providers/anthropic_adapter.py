"""
Anthropic Claude API provider adapter.

Translates canonical requests to the Messages API. The system instruction
goes in the top-level `system` field.
"""

import logging
from typing import AsyncIterator, Dict, List, Optional

from anthropic import AsyncAnthropic

from providers.base import ContentGenerator
from providers.exceptions import ProviderError, UnsupportedCapability
from providers.translation import (
    ROLE_MAP,
    StreamEvent,
    assemble_stream,
    build_usage,
    drop_none,
    estimate_tokens,
    extract_text,
    map_finish_reason,
    normalize_contents,
    parts_to_message_content,
    placeholder_block,
    system_instruction_text,
    text_response,
)
from providers.types import (
    Blob,
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    EmbedContentResponse,
    FinishReason,
    FunctionDeclaration,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
    Provider,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_MAX_TOKENS = 4096

# Claude averages ~3.5 characters per token
CHARS_PER_TOKEN = 3.5

IMAGE_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

FINISH_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "tool_use": FinishReason.STOP,
    "pause_turn": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
    "refusal": FinishReason.SAFETY,
}


class AnthropicAdapter(ContentGenerator):
    """
    Adapter for Anthropic Claude API.

    Args:
        api_key: Anthropic API key
    """

    def __init__(self, api_key: str):
        self.client = AsyncAnthropic(api_key=api_key)
        self.provider = Provider.ANTHROPIC
        self.name = "Anthropic"

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResponse:
        """
        Generate a reply using the Messages API.

        Args:
            request: Canonical request

        Returns:
            GenerateContentResponse: All text blocks joined in order

        Raises:
            ProviderError: If the API call fails
        """
        params = self._build_params(request)
        try:
            message = await self.client.messages.create(**params)
            response = self._convert_message(message)
        except Exception as e:
            logger.error(f"Anthropic generation error: {e}")
            raise ProviderError(self.name, str(e)) from e

        logger.info(f"Anthropic ({params['model']}) response: {len(response.text)} chars")
        return response

    async def generate_content_stream(
        self, request: GenerateContentRequest
    ) -> AsyncIterator[GenerateContentResponse]:
        params = self._build_params(request)
        return assemble_stream(self._stream_events(params), self.name, FINISH_REASONS)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        text = extract_text(request.contents)
        return CountTokensResponse(total_tokens=estimate_tokens(text, CHARS_PER_TOKEN))

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResponse:
        # Anthropic has no embeddings API
        raise UnsupportedCapability(self.name, "embeddings")

    def _build_params(self, request: GenerateContentRequest) -> dict:
        config = request.config
        params = {
            "model": request.model or DEFAULT_MODEL,
            "max_tokens": config.max_output_tokens or DEFAULT_MAX_TOKENS,
            "messages": self._convert_contents(request),
        }
        params.update(
            drop_none(
                {
                    "system": system_instruction_text(config),
                    "temperature": config.temperature,
                    "top_p": config.top_p,
                    "stop_sequences": config.stop_sequences,
                }
            )
        )
        if config.tools:
            params["tools"] = self._convert_tools(config.tools)
        return params

    def _convert_contents(self, request: GenerateContentRequest) -> List[Dict]:
        messages = []
        for content in normalize_contents(request.contents):
            role = ROLE_MAP.get(content.role)
            if role is None:
                logger.warning(f"Anthropic: skipping content with unknown role {content.role!r}")
                continue
            messages.append({"role": role, "content": self._convert_parts(content.parts, role)})
        return messages

    def _convert_parts(self, parts: List[Part], role: str):
        return parts_to_message_content(parts, lambda blob: self._inline_block(blob, role))

    def _inline_block(self, blob: Blob, role: str) -> Dict:
        # Image blocks are accepted on user turns only
        if role == "assistant" and blob.mime_type.startswith("image/"):
            return placeholder_block(self.name, blob.mime_type, "[Image data]")
        if blob.mime_type in IMAGE_MEDIA_TYPES:
            return {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": blob.mime_type,
                    "data": blob.data,
                },
            }
        return placeholder_block(
            self.name,
            blob.mime_type,
            f"[{blob.mime_type} content not supported by Anthropic]",
        )

    def _convert_tools(self, tools: List[FunctionDeclaration]) -> List[Dict]:
        converted = []
        for tool in tools:
            converted.append(
                drop_none(
                    {
                        "name": tool.name,
                        "description": tool.description,
                        # input_schema is required by the API
                        "input_schema": tool.parameters
                        or {"type": "object", "properties": {}},
                    }
                )
            )
        return converted

    def _convert_message(self, message) -> GenerateContentResponse:
        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(message, "usage", None)
        return text_response(
            text,
            finish_reason=map_finish_reason(message.stop_reason, FINISH_REASONS),
            usage=build_usage(
                getattr(usage, "input_tokens", None),
                getattr(usage, "output_tokens", None),
            ),
        )

    async def _stream_events(self, params: dict) -> AsyncIterator[StreamEvent]:
        stream = await self.client.messages.create(**params, stream=True)
        input_tokens: Optional[int] = None
        async with stream:
            async for event in stream:
                if event.type == "message_start":
                    usage = getattr(event.message, "usage", None)
                    input_tokens = getattr(usage, "input_tokens", None)
                elif event.type == "content_block_delta":
                    if getattr(event.delta, "type", None) == "text_delta":
                        yield StreamEvent(text=event.delta.text)
                elif event.type == "message_delta":
                    usage = getattr(event, "usage", None)
                    yield StreamEvent(
                        finish_reason=getattr(event.delta, "stop_reason", None),
                        usage=build_usage(
                            input_tokens, getattr(usage, "output_tokens", None)
                        ),
                    )
