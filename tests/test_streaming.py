"""Tests for pull-driven token streams."""

import asyncio

import pytest
from conftest import CountingLoader, StubGenerationEngine

from lxrt.core.constants import Modality
from lxrt.core.exceptions import DisposedError, ModelNotConfiguredError

TOKENS = ["Hello", ",", " local", " world", "!"]


class TestTokenOrder:
    @pytest.mark.asyncio
    async def test_tokens_arrive_in_order_without_duplicates(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        tokens = [token async for token in provider.stream("hi")]

        assert tokens == TOKENS
        assert loaders[Modality.LLM].engine.produced == len(TOKENS)

    @pytest.mark.asyncio
    async def test_collect_joins_tokens(self, make_provider):
        provider, _ = make_provider({"llm": {}})

        text = await provider.stream([{"role": "user", "content": "hi"}]).collect()

        assert text == "".join(TOKENS)

    @pytest.mark.asyncio
    async def test_options_reach_the_engine(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        await provider.stream("hi", temperature=0.0, max_tokens=3).collect()

        kind, messages, options = loaders[Modality.LLM].engine.calls[-1]
        assert kind == "stream"
        assert messages[0].content == "hi"
        assert options == {"temperature": 0.0, "max_tokens": 3}


class TestLaziness:
    @pytest.mark.asyncio
    async def test_nothing_loads_before_first_pull(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        stream = provider.stream("hi")
        await asyncio.sleep(0.02)

        assert loaders[Modality.LLM].calls == 0
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_stopping_after_first_token_stops_generation(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        stream = provider.stream("hi")
        first = await stream.__anext__()
        await stream.aclose()

        engine = loaders[Modality.LLM].engine
        assert first == "Hello"
        assert engine.produced == 1
        assert engine.stream_closed
        assert stream.closed

    @pytest.mark.asyncio
    async def test_break_inside_async_with_releases_stream(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        async with provider.stream("hi") as tokens:
            async for _ in tokens:
                break

        engine = loaders[Modality.LLM].engine
        assert engine.stream_closed
        assert engine.produced == 1

    @pytest.mark.asyncio
    async def test_closed_stream_stays_empty(self, make_provider):
        provider, _ = make_provider({"llm": {}})

        stream = provider.stream("hi")
        await stream.collect()

        assert [t async for t in stream] == []


class TestFailures:
    @pytest.mark.asyncio
    async def test_engine_error_propagates_after_partial_output(self, make_provider):
        loader = CountingLoader(lambda: StubGenerationEngine(fail_after=2))
        provider, _ = make_provider({"llm": {}}, llm=loader)

        received = []
        with pytest.raises(RuntimeError, match="decoder crashed"):
            async for token in provider.stream("hi"):
                received.append(token)

        assert received == TOKENS[:2]
        assert loader.engine.stream_closed

    @pytest.mark.asyncio
    async def test_dispose_mid_stream_raises_disposed_on_next_pull(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        stream = provider.stream("hi")
        await stream.__anext__()
        await provider.dispose()

        engine = loaders[Modality.LLM].engine
        assert engine.unloaded
        assert stream.closed
        with pytest.raises(DisposedError):
            await stream.__anext__()
        assert engine.produced == 1

    @pytest.mark.asyncio
    async def test_unconfigured_llm_fails_immediately(self, make_provider):
        provider, _ = make_provider({"embedding": {}})

        with pytest.raises(ModelNotConfiguredError):
            provider.stream("hi")


class StallingEngine(StubGenerationEngine):
    """Yields one token, then waits until cancelled or released."""

    def __init__(self):
        super().__init__()
        self.waiting = asyncio.Event()
        self.release = asyncio.Event()

    async def stream(self, messages, **options):
        try:
            self.produced += 1
            yield "Hello"
            self.waiting.set()
            await self.release.wait()
            self.produced += 1
            yield " again"
        finally:
            self.stream_closed = True


class TestAbandonedStreams:
    @pytest.mark.asyncio
    async def test_break_without_close_is_released_by_dispose(self, make_provider):
        provider, loaders = make_provider({"llm": {}})

        async for _ in provider.stream("hi"):
            break
        engine = loaders[Modality.LLM].engine
        assert not engine.stream_closed

        await provider.dispose()

        assert engine.stream_closed
        assert engine.unloaded

    @pytest.mark.asyncio
    async def test_cancelling_a_pending_pull_closes_the_stream(self, make_provider):
        loader = CountingLoader(StallingEngine)
        provider, _ = make_provider({"llm": {}}, llm=loader)
        stream = provider.stream("hi")
        assert await stream.__anext__() == "Hello"

        pending = asyncio.create_task(stream.__anext__())
        await loader.engine.waiting.wait()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        engine = loader.engine
        assert stream.closed
        assert engine.stream_closed
        assert engine.produced == 1
        assert [t async for t in stream] == []

        # No lease left behind: disposal unloads at once
        await provider.dispose()
        assert engine.unloaded

    @pytest.mark.asyncio
    async def test_dispose_during_pending_pull_defers_release(self, make_provider):
        loader = CountingLoader(StallingEngine)
        provider, _ = make_provider({"llm": {}}, llm=loader)
        stream = provider.stream("hi")
        await stream.__anext__()

        pending = asyncio.create_task(stream.__anext__())
        await loader.engine.waiting.wait()
        await provider.dispose()
        engine = loader.engine
        assert not engine.unloaded

        engine.release.set()
        with pytest.raises(DisposedError):
            await pending
        assert engine.stream_closed
        assert engine.unloaded
