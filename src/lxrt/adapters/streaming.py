"""Streaming-response adapter: tokens as UTF-8 byte chunks.

The byte iterator plugs into any ASGI streaming response, for example
``StreamingResponse(adapter.create_stream_response(messages))``.
"""

from collections.abc import AsyncIterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional

from lxrt.core.types import Message

if TYPE_CHECKING:
    from lxrt.provider import AIProvider

# Chat UIs send roles the engine has no use for
SUPPORTED_ROLES = ("system", "user", "assistant")


class StreamingAdapter:
    """Turns ``AIProvider.stream`` into a byte stream.

    Engine errors propagate out of the iterator; the stream never ends
    normally after a failure.
    """

    def __init__(self, provider: "AIProvider"):
        self.provider = provider

    @staticmethod
    def _to_messages(messages: Sequence[Mapping[str, Any]]) -> list[Message]:
        return [
            Message(role=m["role"], content=m["content"])
            for m in messages
            if m.get("role") in SUPPORTED_ROLES
        ]

    async def create_stream_response(
        self,
        messages: Sequence[Mapping[str, Any]],
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[bytes]:
        """Yield each generated token as UTF-8 bytes, in order."""
        options = {
            key: value
            for key, value in (("temperature", temperature), ("top_p", top_p), ("max_tokens", max_tokens))
            if value is not None
        }
        async with self.provider.stream(self._to_messages(messages), **options) as tokens:
            async for token in tokens:
                yield token.encode("utf-8")

    async def generate_text(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> dict[str, str]:
        """Non-streaming completion as ``{"text": ...}``."""
        options = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["max_tokens"] = max_tokens
        return {"text": await self.provider.complete(prompt, **options)}
