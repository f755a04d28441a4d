"""Pull-driven token stream returned by ``AIProvider.stream``."""

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Optional

from lxrt.core.exceptions import DisposedError

if TYPE_CHECKING:
    from lxrt.engines.base import Engine

    from .controller import ModelController


class TokenStream:
    """Async iterator over generated text fragments.

    Nothing is loaded or generated until the first fragment is pulled, and
    each pull produces at most one fragment, so a consumer that stops
    pulling stops generation. Close it with ``aclose()`` or use it as an
    async context manager to release the engine promptly:

        async with provider.stream("Tell me a story") as tokens:
            async for token in tokens:
                print(token, end="")

    A stream left open (``break`` without closing) is closed when its
    controller is disposed. Cancelling the task waiting on a pull closes
    the stream as well. A stream is single-use; once exhausted or closed
    it stays empty.
    """

    def __init__(
        self,
        controller: "ModelController",
        call: Callable[["Engine"], AsyncIterator[str]],
    ):
        self._controller = controller
        self._call = call
        self._iterator: Optional[AsyncIterator[str]] = None
        self._leased = False
        self._pulling = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "TokenStream":
        return self

    async def __anext__(self) -> str:
        controller = self._controller
        if self._closed:
            if controller.is_disposed:
                raise DisposedError(controller.modality)
            raise StopAsyncIteration

        if self._iterator is None:
            engine = await controller._lease()
            self._leased = True
            controller._track_stream(self)
            self._iterator = self._call(engine)

        if controller.is_disposed:
            await self.aclose()
            raise DisposedError(controller.modality)

        self._pulling = True
        try:
            token = await self._iterator.__anext__()
        except StopAsyncIteration:
            self._pulling = False
            await self.aclose()
            raise
        except asyncio.CancelledError:
            self._pulling = False
            await self.aclose()
            raise
        except Exception as e:
            self._pulling = False
            disposed = controller.is_disposed
            await self.aclose()
            if disposed:
                raise DisposedError(controller.modality) from e
            raise
        self._pulling = False

        # Closed or disposed while the fragment was being produced: drop it
        if self._closed or controller.is_disposed:
            self._closed = False
            await self.aclose()
            if controller.is_disposed:
                raise DisposedError(controller.modality)
            raise StopAsyncIteration
        return token

    async def aclose(self) -> None:
        """Stop generation and return the engine lease. Idempotent.

        Closing while another task is waiting on a pull marks the stream
        closed; that pull finishes the cleanup when the fragment arrives.
        """
        if self._closed:
            return
        self._closed = True
        if self._pulling:
            return
        iterator, self._iterator = self._iterator, None
        try:
            if iterator is not None and hasattr(iterator, "aclose"):
                await iterator.aclose()
        finally:
            if self._leased:
                self._leased = False
                self._controller._untrack_stream(self)
                self._controller._return_lease()

    async def __aenter__(self) -> "TokenStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def collect(self) -> str:
        """Drain the stream into one string."""
        async with self:
            return "".join([token async for token in self])
