"""
Canonical request/response model shared by every content generator.

The shapes follow the native (Gemini) schema: a conversation is a list of
Content turns, each holding ordered Parts. Adapters translate these to and
from their provider's own schema and never mutate them.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Provider(str, Enum):
    """Backend a generator talks to. GOOGLE is the native provider."""

    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    META = "meta"


class FinishReason(str, Enum):
    """Why a generation turn ended."""

    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    OTHER = "OTHER"


@dataclass(frozen=True)
class Blob:
    """Inline binary payload. `data` holds base64 text."""

    mime_type: str
    data: str


@dataclass(frozen=True)
class Part:
    """
    One piece of a Content turn.

    Exactly one of `text` or `inline_data` is set.
    """

    text: Optional[str] = None
    inline_data: Optional[Blob] = None

    def __post_init__(self):
        if (self.text is None) == (self.inline_data is None):
            raise ValueError("Part must carry exactly one of text or inline_data")

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_base64(cls, data: str, mime_type: str) -> "Part":
        return cls(inline_data=Blob(mime_type=mime_type, data=data))

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "Part":
        return cls.from_base64(base64.b64encode(data).decode("ascii"), mime_type)

    @property
    def is_text(self) -> bool:
        return self.text is not None


@dataclass(frozen=True)
class Content:
    """A single conversation turn. Role is "user" or "model"."""

    role: str
    parts: List[Part] = field(default_factory=list)

    @classmethod
    def user(cls, *texts: str) -> "Content":
        return cls(role="user", parts=[Part.from_text(t) for t in texts])

    @classmethod
    def model(cls, *texts: str) -> "Content":
        return cls(role="model", parts=[Part.from_text(t) for t in texts])


# A bare string, one Content, or a list mixing both.
ContentsInput = Union[str, Content, List[Union[str, Content]]]


@dataclass(frozen=True)
class FunctionDeclaration:
    """Tool the model may call. `parameters` is a JSON schema object."""

    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class GenerateContentConfig:
    """Optional generation parameters."""

    system_instruction: Optional[Union[str, Content]] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    tools: Optional[List[FunctionDeclaration]] = None


@dataclass(frozen=True)
class GenerateContentRequest:
    model: str
    contents: ContentsInput
    config: GenerateContentConfig = field(default_factory=GenerateContentConfig)


@dataclass(frozen=True)
class UsageMetadata:
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


@dataclass(frozen=True)
class Candidate:
    content: Content
    finish_reason: Optional[FinishReason] = None
    index: int = 0


@dataclass(frozen=True)
class GenerateContentResponse:
    """
    A full response, or one partial element of a stream.

    Partial responses carry only the incremental text delta; the last one
    of a stream also carries the finish reason.
    """

    candidates: List[Candidate] = field(default_factory=list)
    usage_metadata: Optional[UsageMetadata] = None

    @property
    def text(self) -> str:
        """Concatenated text of the first candidate."""
        if not self.candidates:
            return ""
        return "".join(p.text for p in self.candidates[0].content.parts if p.is_text)

    @property
    def finish_reason(self) -> Optional[FinishReason]:
        if not self.candidates:
            return None
        return self.candidates[0].finish_reason


@dataclass(frozen=True)
class CountTokensRequest:
    model: str
    contents: ContentsInput


@dataclass(frozen=True)
class CountTokensResponse:
    total_tokens: int


@dataclass(frozen=True)
class EmbedContentRequest:
    model: str
    contents: ContentsInput


@dataclass(frozen=True)
class ContentEmbedding:
    values: List[float]


@dataclass(frozen=True)
class EmbedContentResponse:
    embeddings: List[ContentEmbedding] = field(default_factory=list)
