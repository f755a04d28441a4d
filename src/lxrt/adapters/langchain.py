"""LangChain-shaped LLM and embeddings over AIProvider.

Duck-typed: the classes expose the methods LangChain calls without
importing langchain, so they work in chains without a hard dependency.

Usage:
    llm = LangChainLLM(provider, temperature=0.2)
    answer = await llm.ainvoke("What is a vector database?")

    embeddings = LangChainEmbeddings(provider)
    vectors = await embeddings.aembed_documents(["a", "b"])
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any, Union

from lxrt.core.constants import Role
from lxrt.core.types import EmbeddingVector, Message

if TYPE_CHECKING:
    from lxrt.provider import AIProvider

# LangChain message types to chat roles
_ROLE_BY_TYPE = {
    "human": Role.USER,
    "user": Role.USER,
    "ai": Role.ASSISTANT,
    "assistant": Role.ASSISTANT,
    "system": Role.SYSTEM,
}


def _run_sync(coro):
    """Run a coroutine for synchronous callers."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("Called a synchronous method from a running event loop; use the async variant")


def _to_messages(input: Union[str, Sequence[Any]]) -> list[Message]:
    """Accept a prompt string, LangChain message objects, ``(role, content)`` tuples or dicts."""
    if isinstance(input, str):
        return [Message(role=Role.USER, content=input)]

    messages = []
    for item in input:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, dict):
            messages.append(Message(role=_ROLE_BY_TYPE[item["role"]], content=item["content"]))
        elif isinstance(item, tuple):
            role, content = item
            messages.append(Message(role=_ROLE_BY_TYPE[role], content=content))
        else:
            messages.append(Message(role=_ROLE_BY_TYPE[item.type], content=item.content))
    return messages


class LangChainLLM:
    """Text-in, text-out LLM with LangChain's ``invoke``/``stream`` surface."""

    def __init__(self, provider: "AIProvider", **options: Any):
        self.provider = provider
        self.options = options

    @property
    def _llm_type(self) -> str:
        return "lxrt"

    async def ainvoke(self, input: Union[str, Sequence[Any]], **options: Any) -> str:
        merged = {**self.options, **options}
        if isinstance(input, str):
            return await self.provider.complete(input, **merged)
        reply = await self.provider.chat(_to_messages(input), **merged)
        return reply.content

    def invoke(self, input: Union[str, Sequence[Any]], **options: Any) -> str:
        return _run_sync(self.ainvoke(input, **options))

    async def astream(self, input: Union[str, Sequence[Any]], **options: Any) -> AsyncIterator[str]:
        async with self.provider.stream(_to_messages(input), **{**self.options, **options}) as tokens:
            async for token in tokens:
                yield token

    async def abatch(self, inputs: Sequence[Union[str, Sequence[Any]]], **options: Any) -> list[str]:
        return [await self.ainvoke(item, **options) for item in inputs]


class LangChainEmbeddings:
    """LangChain ``Embeddings`` interface."""

    def __init__(self, provider: "AIProvider"):
        self.provider = provider

    async def aembed_documents(self, texts: list[str]) -> list[EmbeddingVector]:
        return await self.provider.embed(list(texts))

    async def aembed_query(self, text: str) -> EmbeddingVector:
        return await self.provider.embed(text)

    def embed_documents(self, texts: list[str]) -> list[EmbeddingVector]:
        return _run_sync(self.aembed_documents(texts))

    def embed_query(self, text: str) -> EmbeddingVector:
        return _run_sync(self.aembed_query(text))
