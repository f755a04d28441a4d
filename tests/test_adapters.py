"""Tests for the OpenAI, streaming, LangChain and browser-agent shims."""

import asyncio
from types import SimpleNamespace

import pytest
from conftest import STUB_DIMENSION, CountingLoader, StubGenerationEngine

from lxrt.adapters import (
    BrowserAgentClient,
    LangChainEmbeddings,
    LangChainLLM,
    OpenAIAdapter,
    StreamingAdapter,
)
from lxrt.core.constants import Modality

TOKENS = ["Hello", ",", " local", " world", "!"]


@pytest.fixture
def provider(make_provider):
    provider, loaders = make_provider({"llm": {"model": "tiny"}, "embedding": {}})
    provider.loaders = loaders
    return provider


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_chat_completion_shape(self, provider):
        adapter = OpenAIAdapter(provider)

        response = await adapter.create_chat_completion(
            model="gpt-3.5-turbo",
            messages=[{"role": "user", "content": "Hello?"}],
            max_tokens=20,
            temperature=0.7,
        )

        assert response["object"] == "chat.completion"
        assert response["id"].startswith("chatcmpl-")
        assert isinstance(response["created"], int)
        assert response["model"] == "gpt-3.5-turbo"
        choice = response["choices"][0]
        assert choice["index"] == 0
        assert choice["message"] == {"role": "assistant", "content": "Hello, local world!"}
        assert choice["finish_reason"] == "stop"
        assert response["usage"] == {"promptTokens": 4, "completionTokens": 5, "totalTokens": 9}

        _, _, options = provider.loaders[Modality.LLM].engine.calls[-1]
        assert options == {"max_tokens": 20, "temperature": 0.7}

    @pytest.mark.asyncio
    async def test_request_mapping_and_configured_model_name(self, provider):
        adapter = OpenAIAdapter(provider)

        response = await adapter.create_chat_completion({"messages": [{"role": "user", "content": "hi"}]})

        assert response["model"] == "HuggingFaceTB/SmolLM2-135M-Instruct"

    @pytest.mark.asyncio
    async def test_streaming_chat_completion_chunks(self, provider):
        adapter = OpenAIAdapter(provider)

        chunks = await adapter.create_chat_completion(
            messages=[{"role": "user", "content": "hi"}], stream=True
        )
        received = [chunk async for chunk in chunks]

        assert all(c["object"] == "chat.completion.chunk" for c in received)
        assert len({c["id"] for c in received}) == 1
        assert received[0]["choices"][0]["delta"]["role"] == "assistant"
        content = "".join(c["choices"][0]["delta"].get("content", "") for c in received)
        assert content == "".join(TOKENS)
        assert received[-1]["choices"][0]["finish_reason"] == "stop"

    @pytest.mark.asyncio
    async def test_text_completion(self, provider):
        adapter = OpenAIAdapter(provider)

        response = await adapter.create_completion(model="text-davinci-003", prompt="The future", max_tokens=5)

        assert response["object"] == "text_completion"
        assert response["choices"][0]["text"] == "echo: The future"

    @pytest.mark.asyncio
    async def test_embeddings_single_and_batch(self, provider):
        adapter = OpenAIAdapter(provider)

        single = await adapter.create_embeddings(model="ada", input="Hello world")
        batch = await adapter.create_embeddings(input=["Hello world", "Goodbye world"])

        assert single["object"] == "list"
        assert len(single["data"]) == 1
        assert single["data"][0]["object"] == "embedding"
        assert len(single["data"][0]["embedding"]) == STUB_DIMENSION
        assert [d["index"] for d in batch["data"]] == [0, 1]
        assert batch["model"] == "sentence-transformers/all-MiniLM-L6-v2"


class TestStreamingAdapter:
    @pytest.mark.asyncio
    async def test_tokens_as_utf8_bytes(self, provider):
        adapter = StreamingAdapter(provider)

        chunks = [
            chunk
            async for chunk in adapter.create_stream_response(
                [{"role": "data", "content": "ignored"}, {"role": "user", "content": "hi"}],
                temperature=0.2,
            )
        ]

        assert chunks == [t.encode("utf-8") for t in TOKENS]
        _, messages, options = provider.loaders[Modality.LLM].engine.calls[-1]
        assert [m.content for m in messages] == ["hi"]
        assert options == {"temperature": 0.2}

    @pytest.mark.asyncio
    async def test_engine_error_is_raised_not_a_normal_close(self, make_provider):
        loader = CountingLoader(lambda: StubGenerationEngine(fail_after=1))
        provider, _ = make_provider({"llm": {}}, llm=loader)
        adapter = StreamingAdapter(provider)

        received = []
        with pytest.raises(RuntimeError, match="decoder crashed"):
            async for chunk in adapter.create_stream_response([{"role": "user", "content": "hi"}]):
                received.append(chunk)
        assert received == [b"Hello"]

    @pytest.mark.asyncio
    async def test_generate_text(self, provider):
        result = await StreamingAdapter(provider).generate_text("Hi", max_tokens=3)
        assert result == {"text": "echo: Hi"}


class TestLangChain:
    def test_llm_type(self, provider):
        assert LangChainLLM(provider)._llm_type == "lxrt"

    @pytest.mark.asyncio
    async def test_ainvoke_prompt_uses_completion(self, provider):
        llm = LangChainLLM(provider, temperature=0.1)

        answer = await llm.ainvoke("What is 2+2?", max_tokens=4)

        assert answer == "echo: What is 2+2?"
        assert provider.loaders[Modality.LLM].engine.calls[-1][2] == {"temperature": 0.1, "max_tokens": 4}

    @pytest.mark.asyncio
    async def test_ainvoke_messages_uses_chat(self, provider):
        llm = LangChainLLM(provider)
        messages = [
            SimpleNamespace(type="system", content="Be brief."),
            SimpleNamespace(type="human", content="Hi"),
            ("ai", "Hello"),
            {"role": "user", "content": "Again"},
        ]

        answer = await llm.ainvoke(messages)

        kind, sent, _ = provider.loaders[Modality.LLM].engine.calls[-1]
        assert kind == "chat"
        assert answer == "".join(TOKENS)
        assert [m.role.value for m in sent] == ["system", "user", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_astream(self, provider):
        llm = LangChainLLM(provider)
        assert [t async for t in llm.astream("hi")] == TOKENS

    @pytest.mark.asyncio
    async def test_sync_invoke_inside_event_loop_is_rejected(self, provider):
        with pytest.raises(RuntimeError, match="async variant"):
            LangChainLLM(provider).invoke("hi")

    def test_sync_invoke(self, provider):
        assert LangChainLLM(provider).invoke("hi") == "echo: hi"

    @pytest.mark.asyncio
    async def test_async_embeddings(self, provider):
        embeddings = LangChainEmbeddings(provider)

        query = await embeddings.aembed_query("cat")
        docs = await embeddings.aembed_documents(["cat", "dog", "car"])

        assert len(query) == STUB_DIMENSION
        assert len(docs) == 3
        assert docs[0] == query

    def test_sync_embeddings(self, provider):
        embeddings = LangChainEmbeddings(provider)

        assert len(embeddings.embed_query("cat")) == STUB_DIMENSION
        assert len(embeddings.embed_documents(["a", "b"])) == 2


class TestBrowserAgentClient:
    @pytest.mark.asyncio
    async def test_openai_client_surface(self, provider):
        client = BrowserAgentClient(provider)

        chat = await client.chat.completions.create(messages=[{"role": "user", "content": "Click login"}])
        vectors = await client.embeddings.create(input=["button", "link"])

        assert chat["choices"][0]["message"]["content"] == "Hello, local world!"
        assert len(vectors["data"]) == 2

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_model_load(self, provider):
        client = BrowserAgentClient(provider)

        await asyncio.gather(
            *(client.chat.completions.create(messages=[{"role": "user", "content": str(i)}]) for i in range(4))
        )

        assert provider.loaders[Modality.LLM].calls == 1
