"""
Unit tests for the shared translation helpers.

Tests verify:
- Contents normalization (string, single Content, mixed list)
- Text extraction and system instruction flattening
- Approximate token estimation
- Usage defaults and finish-reason fallback
- Stream assembly: ordering, terminal finish reason, dropped events, errors
"""

import math

import pytest

from providers.exceptions import ProviderError
from providers.translation import (
    StreamEvent,
    assemble_stream,
    build_usage,
    estimate_tokens,
    extract_text,
    map_finish_reason,
    normalize_contents,
    parts_to_message_content,
    system_instruction_text,
)
from providers.types import (
    Content,
    FinishReason,
    GenerateContentConfig,
    Part,
    UsageMetadata,
)

TABLE = {"done": FinishReason.STOP, "cut": FinishReason.MAX_TOKENS}


async def _events(items, error=None):
    for item in items:
        yield item
    if error is not None:
        raise error


@pytest.mark.unit
class TestNormalizeContents:
    """Test contents normalization"""

    def test_bare_string_becomes_user_turn(self):
        contents = normalize_contents("hi")
        assert contents == [Content.user("hi")]

    def test_single_content_is_wrapped(self):
        content = Content.model("hello")
        assert normalize_contents(content) == [content]

    def test_mixed_list_keeps_order(self):
        contents = normalize_contents(["a", Content.model("b"), "c"])
        assert [c.role for c in contents] == ["user", "model", "user"]
        assert [c.parts[0].text for c in contents] == ["a", "b", "c"]

    def test_none_is_empty(self):
        assert normalize_contents(None) == []

    def test_input_list_not_modified(self):
        original = ["a", Content.model("b")]
        snapshot = list(original)
        normalize_contents(original)
        assert original == snapshot

    def test_rejects_unknown_elements(self):
        with pytest.raises(TypeError):
            normalize_contents([42])


@pytest.mark.unit
class TestTextHelpers:
    """Test text extraction, system instructions and token estimates"""

    def test_extract_text_joins_parts_and_contents_with_spaces(self):
        contents = [
            Content(role="user", parts=[Part.from_text("one"), Part.from_text("two")]),
            Content.model("three"),
        ]
        assert extract_text(contents) == "one two three"

    def test_extract_text_skips_inline_data(self):
        content = Content(
            role="user",
            parts=[Part.from_text("look"), Part.from_bytes(b"img", "image/png")],
        )
        assert extract_text(content) == "look"

    def test_system_instruction_string(self):
        config = GenerateContentConfig(system_instruction="Be brief.")
        assert system_instruction_text(config) == "Be brief."

    def test_system_instruction_content_is_flattened(self):
        config = GenerateContentConfig(
            system_instruction=Content(
                role="user", parts=[Part.from_text("Be"), Part.from_text("brief.")]
            )
        )
        assert system_instruction_text(config) == "Be brief."

    def test_system_instruction_unset(self):
        assert system_instruction_text(GenerateContentConfig()) is None
        assert system_instruction_text(GenerateContentConfig(system_instruction="")) is None

    def test_estimate_tokens_empty_is_zero(self):
        assert estimate_tokens("", 3.5) == 0

    @pytest.mark.parametrize("text,ratio", [("a", 4), ("abcdefg", 3.5), ("x" * 101, 4)])
    def test_estimate_tokens_rounds_up(self, text, ratio):
        assert estimate_tokens(text, ratio) == math.ceil(len(text) / ratio)


@pytest.mark.unit
class TestMessageContent:
    """Test collapsing parts into provider message content"""

    def test_single_text_part_is_bare_string(self):
        result = parts_to_message_content([Part.from_text("just text")], lambda blob: {})
        assert result == "just text"

    def test_multiple_parts_become_blocks(self):
        result = parts_to_message_content(
            [Part.from_text("a"), Part.from_text("b")], lambda blob: {}
        )
        assert result == [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]

    def test_single_inline_part_stays_a_block_list(self, image_part):
        result = parts_to_message_content(
            [image_part], lambda blob: {"type": "image", "mime": blob.mime_type}
        )
        assert result == [{"type": "image", "mime": "image/png"}]


@pytest.mark.unit
class TestUsageAndFinishReasons:
    """Test usage defaults and finish-reason mapping"""

    def test_usage_defaults_absent_counters_to_zero(self):
        assert build_usage(None, None) == UsageMetadata(0, 0, 0)

    def test_usage_total_falls_back_to_sum(self):
        usage = build_usage(7, 3)
        assert usage.total_token_count == 10

    def test_usage_keeps_provider_total(self):
        assert build_usage(7, 3, 12).total_token_count == 12

    def test_known_reason_is_mapped(self):
        assert map_finish_reason("cut", TABLE) == FinishReason.MAX_TOKENS

    @pytest.mark.parametrize("reason", [None, "", "something_new"])
    def test_unknown_reason_is_other(self, reason):
        assert map_finish_reason(reason, TABLE) == FinishReason.OTHER


@pytest.mark.unit
class TestAssembleStream:
    """Test incremental stream assembly"""

    @pytest.mark.asyncio
    async def test_one_partial_per_text_event_in_order(self):
        events = [StreamEvent(text=t) for t in ["a", "b", "c"]]
        events.append(StreamEvent(finish_reason="done"))

        partials = [p async for p in assemble_stream(_events(events), "Test", TABLE)]

        assert [p.text for p in partials] == ["a", "b", "c"]
        assert [p.finish_reason for p in partials] == [None, None, FinishReason.STOP]

    @pytest.mark.asyncio
    async def test_finish_reason_on_same_event_as_text(self):
        events = [StreamEvent(text="a"), StreamEvent(text="b", finish_reason="cut")]

        partials = [p async for p in assemble_stream(_events(events), "Test", TABLE)]

        assert partials[-1].finish_reason == FinishReason.MAX_TOKENS
        assert partials[0].finish_reason is None

    @pytest.mark.asyncio
    async def test_events_without_text_are_dropped(self):
        events = [StreamEvent(), StreamEvent(text="a"), StreamEvent(text=""), StreamEvent(text="b")]

        partials = [p async for p in assemble_stream(_events(events), "Test", TABLE)]

        assert [p.text for p in partials] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_missing_finish_reason_maps_to_other(self):
        partials = [
            p async for p in assemble_stream(_events([StreamEvent(text="a")]), "Test", TABLE)
        ]
        assert partials[0].finish_reason == FinishReason.OTHER

    @pytest.mark.asyncio
    async def test_usage_attached_to_terminal_partial_only(self):
        usage = UsageMetadata(1, 2, 3)
        events = [StreamEvent(text="a"), StreamEvent(text="b"), StreamEvent(usage=usage)]

        partials = [p async for p in assemble_stream(_events(events), "Test", TABLE)]

        assert partials[0].usage_metadata is None
        assert partials[1].usage_metadata == usage

    @pytest.mark.asyncio
    async def test_partials_carry_deltas_not_accumulated_text(self):
        events = [StreamEvent(text="Hel"), StreamEvent(text="lo")]
        partials = [p async for p in assemble_stream(_events(events), "Test", TABLE)]
        assert partials[1].text == "lo"
        assert partials[1].candidates[0].content.role == "model"

    @pytest.mark.asyncio
    async def test_empty_stream_yields_nothing(self):
        partials = [p async for p in assemble_stream(_events([]), "Test", TABLE)]
        assert partials == []

    @pytest.mark.asyncio
    async def test_fault_raises_provider_error_after_prior_deltas(self):
        events = [StreamEvent(text="a"), StreamEvent(text="b"), StreamEvent(text="c")]
        stream = assemble_stream(_events(events, error=ConnectionError("reset")), "Test", TABLE)

        received = []
        with pytest.raises(ProviderError, match="Test API error: reset"):
            async for partial in stream:
                received.append(partial.text)

        assert received == ["a", "b", "c"]
