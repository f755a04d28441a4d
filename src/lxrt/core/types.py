"""Core data types used throughout lxrt."""

import io
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

import numpy as np

from lxrt.core.constants import Role

EmbeddingVector = list[float]


@dataclass(frozen=True)
class Message:
    """One turn of a conversation. Has no identity beyond its position."""

    role: Role
    content: str

    def __post_init__(self):
        object.__setattr__(self, "role", Role(self.role))

    def to_dict(self) -> dict[str, str]:
        """Convert to the ``{role, content}`` mapping most chat templates expect."""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Create from dictionary."""
        return cls(role=data["role"], content=data["content"])


MessageLike = Union[Message, Mapping[str, Any]]


def normalize_messages(messages: Union[str, Sequence[MessageLike]]) -> list[Message]:
    """Accept Message objects or plain ``{role, content}`` dicts.

    A plain string is a single user message.
    """
    if isinstance(messages, str):
        return [Message(role=Role.USER, content=messages)]
    return [m if isinstance(m, Message) else Message.from_dict(m) for m in messages]


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the engine, zeros when it does not report them."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(frozen=True)
class ChatResponse:
    """Result of a multi-turn generation."""

    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class AudioOutput:
    """Synthesized speech."""

    samples: np.ndarray
    sampling_rate: int

    @property
    def duration_s(self) -> float:
        return len(self.samples) / float(self.sampling_rate) if self.sampling_rate else 0.0

    def to_wav_bytes(self) -> bytes:
        """Encode as 16-bit PCM WAV."""
        import soundfile as sf

        buffer = io.BytesIO()
        sf.write(buffer, np.asarray(self.samples, dtype=np.float32), self.sampling_rate, format="WAV", subtype="PCM_16")
        return buffer.getvalue()
