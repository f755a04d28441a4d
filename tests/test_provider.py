"""Tests for the AIProvider façade, using stub engines."""

import asyncio

import numpy as np
import pytest
from conftest import STUB_DIMENSION, CountingLoader, StubEmbeddingEngine, StubImageEngine, make_png, make_wav

from lxrt.core.constants import Modality, ModelState
from lxrt.core.exceptions import (
    ConfigError,
    DisposedError,
    LoadFailedError,
    ModelNotConfiguredError,
    ModelNotLoadedError,
)
from lxrt.core.types import ChatResponse, Message
from lxrt.provider import AIProvider, create_ai_provider
from lxrt.vectorization.adapters.image import ImageEmbeddingAdapter
from lxrt.vectorization.content import Content
from lxrt.vectorization.registry import AdapterRegistry

FULL_CONFIG = {"llm": {}, "embedding": {}, "tts": {}, "asr": {}}


class TestGeneration:
    @pytest.mark.asyncio
    async def test_chat_returns_content_and_usage(self, make_provider, chat_messages):
        provider, _ = make_provider({"llm": {}})

        reply = await provider.chat(chat_messages)

        assert isinstance(reply, ChatResponse)
        assert reply.content == "Hello, local world!"
        assert reply.usage.prompt_tokens == 8
        assert reply.usage.completion_tokens == 5
        assert reply.usage.total_tokens == 13

    @pytest.mark.asyncio
    async def test_chat_accepts_message_objects(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        await provider.chat([Message(role="user", content="hi")])

        _, messages, _ = loaders[Modality.LLM].engine.calls[-1]
        assert messages == [Message(role="user", content="hi")]

    @pytest.mark.asyncio
    async def test_chat_accepts_plain_string(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        reply = await provider.chat("List 3 fruits in JSON.")

        assert reply.content == "Hello, local world!"
        _, messages, _ = loaders[Modality.LLM].engine.calls[-1]
        assert messages == [Message(role="user", content="List 3 fruits in JSON.")]

    @pytest.mark.asyncio
    async def test_complete_passes_options_unmodified(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        text = await provider.complete("Once upon", temperature=0.1, top_p=0.5, max_tokens=7)

        assert text == "echo: Once upon"
        assert loaders[Modality.LLM].engine.calls[-1] == (
            "complete",
            "Once upon",
            {"temperature": 0.1, "top_p": 0.5, "max_tokens": 7},
        )

    @pytest.mark.asyncio
    async def test_unconfigured_modality(self, make_provider, chat_messages):
        provider, _ = make_provider({"embedding": {}})

        with pytest.raises(ModelNotConfiguredError) as exc_info:
            await provider.chat(chat_messages)
        assert exc_info.value.modality == "llm"


class TestEmbedding:
    @pytest.mark.asyncio
    async def test_embed_string_returns_one_vector(self, make_provider):
        provider, _ = make_provider({"embedding": {}})

        vector = await provider.embed("a")

        assert len(vector) == STUB_DIMENSION
        assert all(isinstance(x, float) for x in vector)

    @pytest.mark.asyncio
    async def test_vector_length_is_stable(self, make_provider):
        provider, _ = make_provider({"embedding": {}})

        lengths = {len(await provider.embed(text)) for text in ["a", "a longer sentence", "cat"]}

        assert lengths == {STUB_DIMENSION}

    @pytest.mark.asyncio
    async def test_embed_list_returns_vector_per_text(self, make_provider):
        provider, loaders = make_provider({"embedding": {}})

        vectors = await provider.embed(["cat", "dog"])

        assert len(vectors) == 2
        assert loaders[Modality.EMBEDDING].engine.batches == [["cat", "dog"]]

    @pytest.mark.asyncio
    async def test_embed_empty_list(self, make_provider):
        provider, loaders = make_provider({"embedding": {}})

        assert await provider.embed([]) == []
        assert loaders[Modality.EMBEDDING].calls == 0

    @pytest.mark.asyncio
    async def test_text_content_goes_through_embedding_model(self, make_provider):
        provider, _ = make_provider({"embedding": {}})

        from_content = await provider.embed(Content.from_text("cat"))
        from_text = await provider.embed("cat")

        assert from_content == from_text

    @pytest.mark.asyncio
    async def test_similarity_orders_related_texts_higher(self, make_provider):
        provider, _ = make_provider({"embedding": {}})

        related = await provider.similarity("cat", "kitten")
        unrelated = await provider.similarity("cat", "car engine")

        assert -1.0 <= unrelated < related <= 1.0
        assert related > 0.9

    @pytest.mark.asyncio
    async def test_similarity_without_embedding_model(self, make_provider):
        provider, _ = make_provider({"llm": {}})

        with pytest.raises(ModelNotConfiguredError):
            await provider.similarity("a", "b")


class TestSpeech:
    @pytest.mark.asyncio
    async def test_synthesize_returns_audio(self, make_provider):
        provider, _ = make_provider({"tts": {}})

        audio = await provider.synthesize("hello")

        assert audio.sampling_rate == 16000
        assert audio.duration_s == pytest.approx(0.1)
        assert audio.to_wav_bytes()[:4] == b"RIFF"

    @pytest.mark.asyncio
    async def test_transcribe_decodes_wav_bytes(self, make_provider):
        provider, loaders = make_provider({"asr": {}})

        text = await provider.transcribe(make_wav(seconds=0.5, sampling_rate=8000))

        samples, rate, _ = loaders[Modality.ASR].engine.received[-1]
        assert text == "hello world"
        assert rate == 16000
        assert len(samples) == 8000

    @pytest.mark.asyncio
    async def test_transcribe_resamples_raw_arrays(self, make_provider):
        provider, loaders = make_provider({"stt": {}})

        await provider.transcribe(np.zeros(4000, dtype=np.float32), sampling_rate=8000, language="en")

        samples, _, options = loaders[Modality.ASR].engine.received[-1]
        assert len(samples) == 8000
        assert options == {"language": "en"}


class TestWarmup:
    @pytest.mark.asyncio
    async def test_concurrent_warmups_load_once(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        await asyncio.gather(*(provider.warmup("llm") for _ in range(8)))

        assert loaders[Modality.LLM].calls == 1
        assert provider.status("llm").state == ModelState.READY

    @pytest.mark.asyncio
    async def test_concurrent_warmups_share_failure(self, make_provider):
        loader = CountingLoader(StubEmbeddingEngine, error=OSError("disk full"))
        provider, _ = make_provider({"embedding": {}}, embedding=loader)

        results = await asyncio.gather(
            *(provider.warmup(Modality.EMBEDDING) for _ in range(4)), return_exceptions=True
        )

        assert loader.calls == 1
        assert all(r is results[0] for r in results)
        assert isinstance(results[0], LoadFailedError)

    @pytest.mark.asyncio
    async def test_warmup_all_skips_skipped_modalities(self, make_provider):
        provider, loaders = make_provider({"llm": {}, "embedding": {"skip": True}})

        await provider.warmup()

        assert loaders[Modality.LLM].calls == 1
        assert loaders[Modality.EMBEDDING].calls == 0
        assert provider.status("embedding").state == ModelState.UNLOADED

    @pytest.mark.asyncio
    async def test_explicit_warmup_policy(self, make_provider):
        provider, _ = make_provider({"embedding": {}, "implicit_warmup": False})

        with pytest.raises(ModelNotLoadedError):
            await provider.embed("a")

        await provider.warmup("embedding")
        assert len(await provider.embed("a")) == STUB_DIMENSION

    def test_warmup_policy_reaches_default_adapters(self, make_provider):
        provider, _ = make_provider({"embedding": {}, "implicit_warmup": False})

        image, audio = provider.registry.adapters[1:3]

        assert image.controller.implicit_warmup is False
        assert audio.controller.implicit_warmup is False

    @pytest.mark.asyncio
    async def test_adapter_model_needs_warmup_under_explicit_policy(self, cpu_caps, cpu_selector):
        loader = CountingLoader(StubImageEngine)
        registry = AdapterRegistry()
        registry.register(ImageEmbeddingAdapter(selector=cpu_selector, loader=loader, implicit_warmup=False))
        provider = AIProvider(
            {"embedding": {}, "implicit_warmup": False},
            loaders={"embedding": CountingLoader(StubEmbeddingEngine)},
            registry=registry,
            capabilities=cpu_caps,
        )

        with pytest.raises(ModelNotLoadedError):
            await provider.embed(Content(make_png()))
        assert loader.calls == 0

        await provider.warmup("image")

        assert loader.calls == 1
        assert await provider.embed(Content(make_png())) == pytest.approx([0.6, 0.8])

    @pytest.mark.asyncio
    async def test_unknown_modality(self, make_provider):
        provider, _ = make_provider({"llm": {}})

        with pytest.raises(ConfigError):
            await provider.warmup("vision")


class TestDispose:
    @pytest.mark.asyncio
    async def test_every_operation_fails_after_dispose(self, make_provider, chat_messages):
        provider, loaders = make_provider(FULL_CONFIG)
        await provider.warmup()

        await provider.dispose()

        assert all(loader.engine.unloaded for loader in loaders.values())
        with pytest.raises(DisposedError):
            await provider.chat(chat_messages)
        with pytest.raises(DisposedError):
            await provider.complete("x")
        with pytest.raises(DisposedError):
            provider.stream("x")
        with pytest.raises(DisposedError):
            await provider.embed("x")
        with pytest.raises(DisposedError):
            await provider.embed(Content(b"\x89PNG\r\n\x1a\n" + b"\x00" * 8))
        with pytest.raises(DisposedError):
            await provider.similarity("a", "b")
        with pytest.raises(DisposedError):
            await provider.synthesize("x")
        with pytest.raises(DisposedError):
            await provider.transcribe(b"")
        with pytest.raises(DisposedError):
            await provider.warmup("llm")

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, make_provider):
        provider, _ = make_provider({"llm": {}})

        await provider.dispose()
        await provider.dispose()

        assert provider.is_disposed
        assert provider.status("llm").state == ModelState.DISPOSED

    @pytest.mark.asyncio
    async def test_dispose_disposes_adapters(self, make_provider):
        provider, _ = make_provider({"embedding": {}})

        await provider.dispose()

        image = next(a for a in provider.registry.adapters if a.name == "image")
        assert image.controller.is_disposed

    @pytest.mark.asyncio
    async def test_async_context_manager_disposes(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        async with provider as ai:
            await ai.complete("x")

        assert provider.is_disposed
        assert loaders[Modality.LLM].engine.unloaded


class TestConstruction:
    def test_statuses_cover_configured_modalities(self, make_provider):
        provider, _ = make_provider({"llm": {"model": "tiny"}, "stt": {}})

        statuses = provider.statuses()

        assert set(statuses) == {"llm", "asr"}
        assert statuses["llm"].model == "HuggingFaceTB/SmolLM2-135M-Instruct"
        assert statuses["asr"].state == ModelState.UNLOADED

    def test_status_of_unconfigured_modality(self, make_provider):
        provider, _ = make_provider({"llm": {}})

        with pytest.raises(ModelNotConfiguredError):
            provider.status("tts")

    def test_invalid_config_raises_config_error(self):
        with pytest.raises(ConfigError):
            AIProvider({"llm": {"device": "tpu"}})

    def test_create_from_yaml_file(self, tmp_path, cpu_caps):
        path = tmp_path / "provider.yaml"
        path.write_text("llm:\n  model: tiny\n  device: cpu\nembedding:\n  skip: true\n")

        provider = create_ai_provider(path, capabilities=cpu_caps)

        assert provider.modalities == [Modality.LLM, Modality.EMBEDDING]
        assert provider.config.embedding.skip

    @pytest.mark.asyncio
    async def test_lifecycle_events(self, make_provider):
        events = []
        provider, _ = make_provider({"llm": {}})
        provider.on_event(events.append)

        await provider.warmup("llm")
        await provider.dispose()

        assert [(e.modality, e.state) for e in events] == [
            ("llm", ModelState.READY),
            ("llm", ModelState.DISPOSED),
        ]
