"""
Translation for providers that speak the OpenAI chat-completions schema.

Used by the OpenAI adapter and the Meta Llama adapter, which reaches Llama
models through OpenAI-compatible hosts.
"""

import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Union

from providers.translation import (
    ROLE_MAP,
    StreamEvent,
    build_usage,
    map_finish_reason,
    normalize_contents,
    system_instruction_text,
    text_response,
)
from providers.types import (
    FinishReason,
    FunctionDeclaration,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
)

logger = logging.getLogger(__name__)

MessageContent = Union[str, List[Dict[str, Any]]]


def build_messages(
    request: GenerateContentRequest,
    convert_parts: Callable[[List[Part], str], MessageContent],
    provider: str,
) -> List[Dict[str, Any]]:
    """
    Build chat messages, with the system instruction as a leading system message.

    Args:
        request: Canonical request
        convert_parts: Called with (parts, provider_role) to build message content
        provider: Provider name for log lines

    Returns:
        list[dict]: Chat-completions messages
    """
    messages = []

    system_prompt = system_instruction_text(request.config)
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    for content in normalize_contents(request.contents):
        role = ROLE_MAP.get(content.role)
        if role is None:
            logger.warning(f"{provider}: skipping content with unknown role {content.role!r}")
            continue
        messages.append({"role": role, "content": convert_parts(content.parts, role)})

    return messages


def convert_tools(tools: List[FunctionDeclaration]) -> List[Dict[str, Any]]:
    converted = []
    for tool in tools:
        function = {"name": tool.name}
        if tool.description is not None:
            function["description"] = tool.description
        if tool.parameters is not None:
            function["parameters"] = tool.parameters
        converted.append({"type": "function", "function": function})
    return converted


def response_from_completion(
    completion, finish_reasons: Mapping[str, FinishReason]
) -> GenerateContentResponse:
    """Translate a ChatCompletion into a canonical response."""
    choice = completion.choices[0]
    text = choice.message.content or ""
    usage = getattr(completion, "usage", None)
    return text_response(
        text,
        finish_reason=map_finish_reason(choice.finish_reason, finish_reasons),
        usage=build_usage(
            getattr(usage, "prompt_tokens", None),
            getattr(usage, "completion_tokens", None),
            getattr(usage, "total_tokens", None),
        ),
    )


async def stream_events(client, params: Dict[str, Any]) -> AsyncIterator[StreamEvent]:
    """
    Open a chat-completions stream and reduce each chunk to a StreamEvent.

    The stream is opened lazily on first pull and closed when this generator
    finishes or is closed.
    """
    stream = await client.chat.completions.create(**params, stream=True)
    async with stream:
        async for chunk in stream:
            usage = getattr(chunk, "usage", None)
            event_usage = None
            if usage is not None:
                event_usage = build_usage(
                    usage.prompt_tokens, usage.completion_tokens, usage.total_tokens
                )

            if not chunk.choices:
                # include_usage sends a final chunk with no choices
                yield StreamEvent(usage=event_usage)
                continue

            choice = chunk.choices[0]
            delta = getattr(choice, "delta", None)
            yield StreamEvent(
                text=getattr(delta, "content", None) or "",
                finish_reason=choice.finish_reason,
                usage=event_usage,
            )
