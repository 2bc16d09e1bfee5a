"""
Google Gemini native content generator.

Wraps the Google GenAI SDK client (Gemini API or Vertex AI) behind the
canonical contract and handles quota errors.
"""

import base64
import logging
import re
from contextlib import aclosing
from typing import AsyncIterator, Dict, Optional

from google import genai
from google.genai import errors, types

from providers.base import ContentGenerator
from providers.exceptions import ProviderError, QuotaExhaustedError
from providers.translation import (
    StreamEvent,
    assemble_stream,
    build_usage,
    drop_none,
    map_finish_reason,
    normalize_contents,
    parts_text,
    text_response,
)
from providers.types import (
    Content,
    ContentEmbedding,
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    EmbedContentResponse,
    FinishReason,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
    Provider,
)

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-pro"
DEFAULT_GEMINI_FLASH_MODEL = "gemini-2.5-flash"
DEFAULT_GEMINI_EMBEDDING_MODEL = "gemini-embedding-001"

# Native model-family token, used to spot Gemini model names
GEMINI_MODEL_TOKEN = "gemini"

FINISH_REASONS = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.MAX_TOKENS,
    "SAFETY": FinishReason.SAFETY,
    "RECITATION": FinishReason.SAFETY,
    "BLOCKLIST": FinishReason.SAFETY,
    "PROHIBITED_CONTENT": FinishReason.SAFETY,
    "SPII": FinishReason.SAFETY,
    "IMAGE_SAFETY": FinishReason.SAFETY,
}


def _is_quota_error(error: Exception) -> bool:
    if isinstance(error, errors.APIError):
        return error.code == 429 or error.status == "RESOURCE_EXHAUSTED"
    # Errors raised outside the SDK's HTTP layer only carry a message
    error_str = str(error).lower()
    return (
        re.search(r"\b429\b", error_str) is not None
        or "quota" in error_str
        or "resource_exhausted" in error_str
    )


def _reason_name(reason) -> Optional[str]:
    if reason is None:
        return None
    return getattr(reason, "value", reason)


class GeminiGenerator(ContentGenerator):
    """
    Native generator for Google Gemini via the GenAI SDK.

    Token counts and embeddings come from the API and are exact.

    Args:
        api_key: Gemini or Google Cloud API key; None lets the SDK use ADC
        vertexai: Route through Vertex AI instead of the Gemini API
        http_headers: Extra headers sent with every request
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        vertexai: bool = False,
        http_headers: Optional[Dict[str, str]] = None,
    ):
        self.vertexai = bool(vertexai)
        self.client = genai.Client(
            api_key=api_key or None,
            vertexai=self.vertexai,
            http_options=types.HttpOptions(headers=dict(http_headers or {})),
        )
        self.provider = Provider.GOOGLE
        self.name = "Vertex AI" if self.vertexai else "Gemini"

    async def generate_content(
        self, request: GenerateContentRequest
    ) -> GenerateContentResponse:
        """
        Generate content using the Gemini API.

        Raises:
            QuotaExhaustedError: If a 429 quota error is received
            ProviderError: For any other API failure
        """
        model = request.model or DEFAULT_GEMINI_MODEL
        contents = self._convert_contents(request.contents)
        config = self._convert_config(request.config)
        try:
            raw = await self.client.aio.models.generate_content(
                model=model, contents=contents, config=config
            )
            response = self._convert_response(raw)
        except Exception as e:
            raise self._provider_error(e, model) from e

        logger.info(f"Gemini ({model}) response: {len(response.text)} chars")
        return response

    async def generate_content_stream(
        self, request: GenerateContentRequest
    ) -> AsyncIterator[GenerateContentResponse]:
        model = request.model or DEFAULT_GEMINI_MODEL
        params = {
            "model": model,
            "contents": self._convert_contents(request.contents),
            "config": self._convert_config(request.config),
        }
        return assemble_stream(self._stream_events(params), self.name, FINISH_REASONS)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        canonical = normalize_contents(request.contents)
        if not any(p.text or p.inline_data for c in canonical for p in c.parts):
            return CountTokensResponse(total_tokens=0)

        model = request.model or DEFAULT_GEMINI_MODEL
        contents = [self._convert_content(c) for c in canonical]
        try:
            raw = await self.client.aio.models.count_tokens(model=model, contents=contents)
        except Exception as e:
            raise self._provider_error(e, model) from e
        return CountTokensResponse(total_tokens=raw.total_tokens or 0)

    async def embed_content(self, request: EmbedContentRequest) -> EmbedContentResponse:
        texts = [parts_text(c.parts) for c in normalize_contents(request.contents)]
        if not texts:
            return EmbedContentResponse()

        model = request.model or DEFAULT_GEMINI_EMBEDDING_MODEL
        try:
            raw = await self.client.aio.models.embed_content(model=model, contents=texts)
        except Exception as e:
            raise self._provider_error(e, model) from e
        return EmbedContentResponse(
            embeddings=[ContentEmbedding(values=list(e.values or [])) for e in raw.embeddings or []]
        )

    def _provider_error(self, error: Exception, model: str) -> ProviderError:
        if _is_quota_error(error):
            logger.warning(f"Gemini quota exhausted: {error}")
            return QuotaExhaustedError(self.name, model, str(error))
        logger.error(f"Gemini generation error: {error}")
        return ProviderError(self.name, str(error))

    def _convert_contents(self, contents) -> list:
        return [self._convert_content(c) for c in normalize_contents(contents)]

    def _convert_content(self, content: Content) -> types.Content:
        return types.Content(
            role=content.role,
            parts=[self._convert_part(p) for p in content.parts],
        )

    def _convert_part(self, part: Part) -> types.Part:
        if part.is_text:
            return types.Part(text=part.text)
        blob = part.inline_data
        return types.Part(
            inline_data=types.Blob(
                mime_type=blob.mime_type, data=base64.b64decode(blob.data)
            )
        )

    def _convert_config(
        self, config: Optional[GenerateContentConfig]
    ) -> Optional[types.GenerateContentConfig]:
        if config is None:
            return None

        instruction = config.system_instruction
        if isinstance(instruction, Content):
            instruction = self._convert_content(instruction)

        kwargs = drop_none(
            {
                "system_instruction": instruction or None,
                "temperature": config.temperature,
                "top_p": config.top_p,
                "max_output_tokens": config.max_output_tokens,
                "stop_sequences": config.stop_sequences,
            }
        )
        if config.tools:
            kwargs["tools"] = [
                types.Tool(
                    function_declarations=[
                        types.FunctionDeclaration(
                            name=tool.name,
                            description=tool.description,
                            parameters_json_schema=tool.parameters,
                        )
                        for tool in config.tools
                    ]
                )
            ]
        return types.GenerateContentConfig(**kwargs) if kwargs else None

    def _convert_response(self, raw) -> GenerateContentResponse:
        usage = getattr(raw, "usage_metadata", None)
        usage_metadata = build_usage(
            getattr(usage, "prompt_token_count", None),
            getattr(usage, "candidates_token_count", None),
            getattr(usage, "total_token_count", None),
        )

        if not raw.candidates:
            # Prompt blocked before any candidate was produced
            feedback = getattr(raw, "prompt_feedback", None)
            reason = (
                FinishReason.SAFETY
                if getattr(feedback, "block_reason", None)
                else FinishReason.OTHER
            )
            return text_response("", finish_reason=reason, usage=usage_metadata)

        candidate = raw.candidates[0]
        return text_response(
            self._candidate_text(candidate),
            finish_reason=map_finish_reason(
                _reason_name(candidate.finish_reason), FINISH_REASONS
            ),
            usage=usage_metadata,
        )

    def _candidate_text(self, candidate) -> str:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        return "".join(
            p.text for p in parts if getattr(p, "text", None) and not getattr(p, "thought", False)
        )

    async def _stream_events(self, params: dict) -> AsyncIterator[StreamEvent]:
        try:
            stream = await self.client.aio.models.generate_content_stream(**params)
        except Exception as e:
            raise self._provider_error(e, params["model"]) from e

        async with aclosing(stream):
            async for chunk in stream:
                usage = getattr(chunk, "usage_metadata", None)
                event_usage = None
                if usage is not None:
                    event_usage = build_usage(
                        usage.prompt_token_count,
                        usage.candidates_token_count,
                        usage.total_token_count,
                    )
                if not chunk.candidates:
                    yield StreamEvent(usage=event_usage)
                    continue
                candidate = chunk.candidates[0]
                yield StreamEvent(
                    text=self._candidate_text(candidate),
                    finish_reason=_reason_name(candidate.finish_reason),
                    usage=event_usage,
                )
