"""Compatibility shims for third-party AI tooling.

Each depends only on AIProvider's public operations.
"""

from .browser import BrowserAgentClient
from .langchain import LangChainEmbeddings, LangChainLLM
from .openai import OpenAIAdapter
from .streaming import StreamingAdapter

__all__ = [
    "OpenAIAdapter",
    "StreamingAdapter",
    "LangChainLLM",
    "LangChainEmbeddings",
    "BrowserAgentClient",
]
