"""
Core pytest fixtures for the provider layer tests.

Provides fake SDK streams and canonical request builders. No fixture here
touches the network: SDK clients are replaced with mocks in each test.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import providers and services modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from types import SimpleNamespace
from typing import Any, List, Optional

from providers.types import (
    Content,
    FunctionDeclaration,
    GenerateContentConfig,
    GenerateContentRequest,
    Part,
)
from services.generator_config import EnvironmentSnapshot


# ============================================================================
# Fake SDK Streams
# ============================================================================


class FakeStream:
    """
    Stand-in for an SDK streaming response.

    Iterates the given events, optionally raising `error` after the last one.
    Records whether it was closed through `async with`, `close()` or `aclose()`.
    """

    def __init__(self, events: List[Any], error: Optional[Exception] = None):
        self._events = list(events)
        self._error = error
        self.closed = False
        self.pulled = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self._events:
            self.pulled += 1
            yield event
        if self._error is not None:
            raise self._error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def close(self):
        self.closed = True

    async def aclose(self):
        self.closed = True


@pytest.fixture
def make_stream():
    """
    Factory for FakeStream objects.

    Returns:
        Callable: make_stream(events, error=None) -> FakeStream
    """
    return FakeStream


# ============================================================================
# Anthropic Event Builders
# ============================================================================


@pytest.fixture
def anthropic_events():
    """
    Build a realistic Anthropic Messages stream.

    Returns:
        Callable: anthropic_events(texts, stop_reason="end_turn") -> list of events
    """

    def build(texts: List[str], stop_reason: Optional[str] = "end_turn"):
        events = [
            SimpleNamespace(
                type="message_start",
                message=SimpleNamespace(usage=SimpleNamespace(input_tokens=12, output_tokens=1)),
            ),
            SimpleNamespace(
                type="content_block_start",
                index=0,
                content_block=SimpleNamespace(type="text", text=""),
            ),
        ]
        for text in texts:
            events.append(
                SimpleNamespace(
                    type="content_block_delta",
                    index=0,
                    delta=SimpleNamespace(type="text_delta", text=text),
                )
            )
        events.append(SimpleNamespace(type="content_block_stop", index=0))
        events.append(
            SimpleNamespace(
                type="message_delta",
                delta=SimpleNamespace(stop_reason=stop_reason),
                usage=SimpleNamespace(output_tokens=7),
            )
        )
        events.append(SimpleNamespace(type="message_stop"))
        return events

    return build


# ============================================================================
# OpenAI Chunk Builders
# ============================================================================


@pytest.fixture
def openai_chunks():
    """
    Build chat-completions stream chunks.

    Content chunks carry no finish reason; a trailing empty-delta chunk
    carries it, followed by a usage-only chunk when `usage` is True.

    Returns:
        Callable: openai_chunks(texts, finish_reason="stop", usage=False) -> list
    """

    def chunk(content=None, finish_reason=None, role=None):
        return SimpleNamespace(
            choices=[
                SimpleNamespace(
                    index=0,
                    delta=SimpleNamespace(content=content, role=role),
                    finish_reason=finish_reason,
                )
            ],
            usage=None,
        )

    def build(texts: List[str], finish_reason: Optional[str] = "stop", usage: bool = False):
        chunks = [chunk(content="", role="assistant")]
        chunks.extend(chunk(content=text) for text in texts)
        chunks.append(chunk(finish_reason=finish_reason))
        if usage:
            chunks.append(
                SimpleNamespace(
                    choices=[],
                    usage=SimpleNamespace(prompt_tokens=9, completion_tokens=4, total_tokens=13),
                )
            )
        return chunks

    return build


@pytest.fixture
def openai_completion():
    """
    Build a ChatCompletion-shaped response.

    Returns:
        Callable: openai_completion(content, finish_reason="stop", usage=(p, c, t))
    """

    def build(content: Optional[str], finish_reason: Optional[str] = "stop", usage=(10, 5, 15)):
        usage_obj = None
        if usage is not None:
            prompt, completion, total = usage
            usage_obj = SimpleNamespace(
                prompt_tokens=prompt, completion_tokens=completion, total_tokens=total
            )
        return SimpleNamespace(
            choices=[
                SimpleNamespace(
                    index=0,
                    message=SimpleNamespace(role="assistant", content=content),
                    finish_reason=finish_reason,
                )
            ],
            usage=usage_obj,
        )

    return build


# ============================================================================
# Canonical Request Fixtures
# ============================================================================


@pytest.fixture
def simple_request() -> GenerateContentRequest:
    """One user turn with one text part."""
    return GenerateContentRequest(model="", contents=[Content.user("Hello there")])


@pytest.fixture
def conversation_request() -> GenerateContentRequest:
    """
    Multi-turn conversation with a system instruction, parameters and a tool.
    """
    return GenerateContentRequest(
        model="test-model",
        contents=[
            Content.user("What is the weather?"),
            Content.model("Which city?"),
            Content(role="user", parts=[Part.from_text("Paris"), Part.from_text("today")]),
        ],
        config=GenerateContentConfig(
            system_instruction="You are a weather bot.",
            temperature=0.2,
            top_p=0.9,
            max_output_tokens=256,
            stop_sequences=["END"],
            tools=[
                FunctionDeclaration(
                    name="get_weather",
                    description="Look up the weather",
                    parameters={
                        "type": "object",
                        "properties": {"city": {"type": "string"}},
                        "required": ["city"],
                    },
                )
            ],
        ),
    )


@pytest.fixture
def image_part() -> Part:
    return Part.from_bytes(b"\x89PNG fake image", "image/png")


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def empty_env() -> EnvironmentSnapshot:
    return EnvironmentSnapshot()


@pytest.fixture
def full_env() -> EnvironmentSnapshot:
    """Every credential set, for checking that unrelated keys are ignored."""
    return EnvironmentSnapshot(
        gemini_api_key="gemini-key",
        google_api_key="google-key",
        google_cloud_project="my-project",
        google_cloud_location="us-central1",
        openai_api_key="openai-key",
        anthropic_api_key="anthropic-key",
        meta_api_key="meta-key",
    )
