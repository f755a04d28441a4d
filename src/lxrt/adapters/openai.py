"""OpenAI-shaped request/response adapter over AIProvider.

Usage:
    adapter = OpenAIAdapter(provider)
    response = await adapter.create_chat_completion(
        model="local",
        messages=[{"role": "user", "content": "Hello"}],
        max_tokens=20,
    )
    print(response["choices"][0]["message"]["content"])
"""

import time
import uuid
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from lxrt.core.constants import Modality

if TYPE_CHECKING:
    from lxrt.provider import AIProvider

GENERATION_PARAMS = ("temperature", "top_p", "max_tokens")


def _generation_options(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: params[key] for key in GENERATION_PARAMS if params.get(key) is not None}


def _response_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:24]}"


class OpenAIAdapter:
    """Chat completions, text completions and embeddings in OpenAI's shapes.

    Requests can be passed as a mapping, as keyword arguments, or both
    (keywords win).
    """

    def __init__(self, provider: "AIProvider"):
        self.provider = provider

    def _model_name(self, requested: Optional[str], modality: Modality) -> str:
        if requested:
            return requested
        if modality in self.provider.modalities:
            return self.provider.status(modality).model or modality.value
        return modality.value

    async def create_chat_completion(
        self, request: Optional[Dict[str, Any]] = None, **params: Any
    ) -> Union[Dict[str, Any], AsyncIterator[Dict[str, Any]]]:
        """``{model, messages, temperature?, top_p?, max_tokens?, stream?}``.

        Returns a ``chat.completion`` dict, or with ``stream=True`` an async
        iterator of ``chat.completion.chunk`` dicts.
        """
        params = {**(request or {}), **params}
        model = self._model_name(params.get("model"), Modality.LLM)
        options = _generation_options(params)

        if params.get("stream"):
            return self._stream_chunks(params["messages"], model, options)

        reply = await self.provider.chat(params["messages"], **options)
        return {
            "id": _response_id("chatcmpl"),
            "object": "chat.completion",
            "created": int(time.time()),
            "model": model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": reply.content},
                    "finish_reason": "stop",
                }
            ],
            "usage": reply.usage.to_dict(),
        }

    async def _stream_chunks(self, messages, model: str, options: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        chunk_id = _response_id("chatcmpl")
        created = int(time.time())

        def chunk(delta: Dict[str, Any], finish_reason: Optional[str] = None) -> Dict[str, Any]:
            return {
                "id": chunk_id,
                "object": "chat.completion.chunk",
                "created": created,
                "model": model,
                "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
            }

        async with self.provider.stream(messages, **options) as tokens:
            yield chunk({"role": "assistant", "content": ""})
            async for token in tokens:
                yield chunk({"content": token})
        yield chunk({}, finish_reason="stop")

    async def create_completion(self, request: Optional[Dict[str, Any]] = None, **params: Any) -> Dict[str, Any]:
        """``{model, prompt, temperature?, top_p?, max_tokens?}`` to a ``text_completion``."""
        params = {**(request or {}), **params}
        text = await self.provider.complete(params["prompt"], **_generation_options(params))
        return {
            "id": _response_id("cmpl"),
            "object": "text_completion",
            "created": int(time.time()),
            "model": self._model_name(params.get("model"), Modality.LLM),
            "choices": [{"index": 0, "text": text, "finish_reason": "stop"}],
        }

    async def create_embeddings(self, request: Optional[Dict[str, Any]] = None, **params: Any) -> Dict[str, Any]:
        """``{model, input}`` where input is a string or a list of strings."""
        params = {**(request or {}), **params}
        inputs = params["input"]
        texts = [inputs] if isinstance(inputs, str) else list(inputs)
        vectors = await self.provider.embed(texts)
        return {
            "object": "list",
            "data": [
                {"object": "embedding", "index": i, "embedding": vector}
                for i, vector in enumerate(vectors)
            ],
            "model": self._model_name(params.get("model"), Modality.EMBEDDING),
        }
