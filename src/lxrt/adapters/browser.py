"""OpenAI-client-shaped shim for browser-automation agents.

Agents that expect an ``openai.AsyncOpenAI``-like object call
``client.chat.completions.create(...)`` and ``client.embeddings.create(...)``;
both delegate to OpenAIAdapter.
"""

from types import SimpleNamespace
from typing import TYPE_CHECKING

from .openai import OpenAIAdapter

if TYPE_CHECKING:
    from lxrt.provider import AIProvider


class BrowserAgentClient:
    """Client object exposing ``chat.completions.create`` and ``embeddings.create``."""

    def __init__(self, provider: "AIProvider"):
        self._openai = OpenAIAdapter(provider)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._openai.create_chat_completion))
        self.embeddings = SimpleNamespace(create=self._openai.create_embeddings)
