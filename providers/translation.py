"""
Provider-neutral translation helpers shared by the adapters.

Covers content normalization, text extraction, approximate token counting,
canonical response construction and incremental stream assembly.
"""

import logging
import math
from contextlib import aclosing
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Union,
)

from providers.exceptions import ProviderError
from providers.types import (
    Blob,
    Candidate,
    Content,
    ContentsInput,
    FinishReason,
    GenerateContentConfig,
    GenerateContentResponse,
    Part,
    UsageMetadata,
)

logger = logging.getLogger(__name__)

# Canonical role -> role name used by every secondary provider
ROLE_MAP = {"user": "user", "model": "assistant"}


class StreamEvent(NamedTuple):
    """One provider stream event reduced to what the assembler needs."""

    text: str = ""
    finish_reason: Optional[str] = None
    usage: Optional[UsageMetadata] = None


def normalize_contents(contents: Optional[ContentsInput]) -> List[Content]:
    """
    Normalize a bare string, one Content, or a mixed list into a list of Contents.

    Bare strings become user turns. The input is never modified.
    """
    if contents is None:
        return []
    if isinstance(contents, (str, Content)):
        contents = [contents]

    normalized = []
    for item in contents:
        if isinstance(item, str):
            normalized.append(Content.user(item))
        elif isinstance(item, Content):
            normalized.append(item)
        else:
            raise TypeError(f"Unsupported contents element: {type(item).__name__}")
    return normalized


def parts_text(parts: List[Part]) -> str:
    return " ".join(p.text for p in parts if p.is_text)


def extract_text(contents: Optional[ContentsInput]) -> str:
    """Join the text of every part, then every content, with single spaces."""
    return " ".join(parts_text(c.parts) for c in normalize_contents(contents))


def system_instruction_text(config: Optional[GenerateContentConfig]) -> Optional[str]:
    """Flatten the configured system instruction to text, or None when unset."""
    if config is None or not config.system_instruction:
        return None
    instruction = config.system_instruction
    if isinstance(instruction, str):
        return instruction
    return parts_text(instruction.parts) or None


def estimate_tokens(text: str, chars_per_token: float) -> int:
    """Approximate token count from character length."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def drop_none(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def map_finish_reason(
    reason: Optional[str], table: Mapping[str, FinishReason]
) -> FinishReason:
    """Map a provider finish reason through its table; unknown or None -> OTHER."""
    if reason is None:
        return FinishReason.OTHER
    return table.get(reason, FinishReason.OTHER)


def build_usage(
    prompt_tokens: Optional[int],
    completion_tokens: Optional[int],
    total_tokens: Optional[int] = None,
) -> UsageMetadata:
    """Absent counters default to 0; total falls back to prompt + completion."""
    prompt = prompt_tokens or 0
    completion = completion_tokens or 0
    return UsageMetadata(
        prompt_token_count=prompt,
        candidates_token_count=completion,
        total_token_count=total_tokens or (prompt + completion),
    )


def text_response(
    text: str,
    finish_reason: Optional[FinishReason] = None,
    usage: Optional[UsageMetadata] = None,
) -> GenerateContentResponse:
    """Wrap text in a single-candidate canonical response with role "model"."""
    candidate = Candidate(
        content=Content(role="model", parts=[Part.from_text(text)]),
        finish_reason=finish_reason,
        index=0,
    )
    return GenerateContentResponse(candidates=[candidate], usage_metadata=usage)


def placeholder_block(provider: str, mime_type: str, text: str) -> Dict[str, str]:
    """Text block standing in for content the provider cannot represent."""
    logger.warning(f"{provider}: replacing unsupported {mime_type} part with placeholder")
    return {"type": "text", "text": text}


def parts_to_message_content(
    parts: List[Part], inline_block: Callable[[Blob], Dict[str, Any]]
) -> Union[str, List[Dict[str, Any]]]:
    """
    Collapse parts into provider message content.

    A single text part becomes a bare string; anything else becomes a list
    of content blocks, with `inline_block` translating inline data.
    """
    if len(parts) == 1 and parts[0].is_text:
        return parts[0].text
    if not parts:
        return ""

    blocks = []
    for part in parts:
        if part.is_text:
            blocks.append({"type": "text", "text": part.text})
        else:
            blocks.append(inline_block(part.inline_data))
    return blocks


async def assemble_stream(
    events: AsyncIterator[StreamEvent],
    provider: str,
    finish_reasons: Mapping[str, FinishReason],
) -> AsyncIterator[GenerateContentResponse]:
    """
    Turn provider stream events into canonical partial responses.

    Emits one partial per event with a non-empty text delta, in order. One
    delta is held back so the last partial can carry the finish reason and
    usage, which providers report on trailing events without text. Closing
    this iterator closes `events`, which must release the transport stream.
    A failing stream yields the held-back delta, then raises ProviderError.

    Args:
        events: Async generator of StreamEvents from an adapter
        provider: Provider name used for ProviderError
        finish_reasons: The provider's finish-reason table

    Yields:
        GenerateContentResponse: Partial responses carrying text deltas
    """
    pending: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Optional[UsageMetadata] = None
    emitted = 0
    fault: Optional[ProviderError] = None
    cause: Optional[BaseException] = None

    async with aclosing(events):
        try:
            async for event in events:
                if event.finish_reason is not None:
                    finish_reason = event.finish_reason
                if event.usage is not None:
                    usage = event.usage
                if not event.text:
                    continue
                if pending is not None:
                    emitted += 1
                    yield text_response(pending)
                pending = event.text
        except ProviderError as e:
            fault, cause = e, e.__cause__
        except Exception as e:
            fault, cause = ProviderError(provider, str(e)), e

    if fault is not None:
        logger.error(f"{provider} stream failed after {emitted} chunks: {fault}")
        # Deltas received before the fault still reach the caller
        if pending is not None:
            yield text_response(pending)
        raise fault from cause

    if pending is not None:
        yield text_response(
            pending,
            finish_reason=map_finish_reason(finish_reason, finish_reasons),
            usage=usage,
        )
