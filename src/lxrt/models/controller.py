"""Model lifecycle controller: one per modality.

Owns a single engine handle and moves it through

    unloaded -> loading -> ready | error     (error -> loading on retry)
    any non-disposed state -> disposed       (terminal)

Usage:
    controller = ModelController("embedding", config, load_embedding_engine)

    await controller.ensure_loaded()
    vectors = await controller.invoke(lambda engine: engine.embed(["hello"]))
    await controller.dispose()

Concurrent ``ensure_loaded`` callers share one load task, so the loader
runs once and every caller sees the same outcome. The engine is never
handed to callers outside of ``invoke``/``open_stream``; calls in flight
hold a lease, and disposal closes open streams and defers unloading
the engine until the last lease is returned.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TypeVar

from lxrt.backends.capabilities import detect
from lxrt.backends.selector import BackendSelector, LoadSettings
from lxrt.config.schemas import ModalityConfig
from lxrt.core.constants import Modality, ModelState
from lxrt.core.exceptions import (
    DisposedError,
    LoadFailedError,
    ModelNotConfiguredError,
    ModelNotLoadedError,
)
from lxrt.core.logging import LogContext, get_logger
from lxrt.engines.base import Engine, EngineLoader
from lxrt.models.presets import resolve_model_id

from .streaming import TokenStream

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ModelStatus:
    """Snapshot of a controller for diagnostics."""

    modality: str
    state: ModelState
    model: Optional[str] = None
    device: Optional[str] = None
    dtype: Optional[str] = None
    error: Optional[str] = None

    @property
    def loaded(self) -> bool:
        return self.state == ModelState.READY

    @property
    def loading(self) -> bool:
        return self.state == ModelState.LOADING


@dataclass(frozen=True)
class LifecycleEvent:
    """Emitted to listeners on ready, error and disposed transitions."""

    modality: str
    state: ModelState
    model: Optional[str] = None
    error: Optional[BaseException] = None


class ModelController:
    """State machine owning one modality's engine.

    Args:
        modality: Modality name (``llm``, ``embedding``, ... or an adapter's own name)
        config: The modality's config; None means unconfigured
        loader: Coroutine function creating the engine from LoadSettings
        selector: Backend selector; built from ``detect()`` on first load when omitted
        cache_dir: Provider-wide cache dir for configs without their own
        num_threads: Thread budget for the wasm path
        implicit_warmup: Load on first ``invoke`` instead of raising ModelNotLoadedError
    """

    def __init__(
        self,
        modality: str,
        config: Optional[ModalityConfig],
        loader: EngineLoader,
        selector: Optional[BackendSelector] = None,
        cache_dir: Optional[Path] = None,
        num_threads: Optional[int] = None,
        implicit_warmup: bool = True,
    ):
        self.modality = str(getattr(modality, "value", modality))
        self.config = config
        self.implicit_warmup = implicit_warmup
        self._loader = loader
        self._selector = selector
        self._cache_dir = cache_dir
        self._num_threads = num_threads

        self._state = ModelState.UNLOADED
        self._engine: Optional[Engine] = None
        self._settings: Optional[LoadSettings] = None
        self._load_task: Optional[asyncio.Task] = None
        self._last_error: Optional[BaseException] = None
        self._leases = 0
        self._streams: set[TokenStream] = set()
        self._listeners: list[Callable[[LifecycleEvent], None]] = []

    # === Introspection ===

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ModelState.READY

    @property
    def is_disposed(self) -> bool:
        return self._state == ModelState.DISPOSED

    @property
    def is_configured(self) -> bool:
        return self.config is not None and not self.config.skip

    @property
    def model_id(self) -> Optional[str]:
        """Resolved model id (presets expanded)."""
        if self.config is None:
            return None
        if self.modality in Modality._value2member_map_:
            return resolve_model_id(Modality(self.modality), self.config.model)
        return self.config.model

    def status(self) -> ModelStatus:
        return ModelStatus(
            modality=self.modality,
            state=self._state,
            model=self.model_id,
            device=self._settings.device.value if self._settings else None,
            dtype=self._settings.dtype.value if self._settings else None,
            error=str(self._last_error) if self._last_error and self._state == ModelState.ERROR else None,
        )

    def on_event(self, callback: Callable[[LifecycleEvent], None]) -> None:
        """Register a callback for ready/error/disposed transitions."""
        self._listeners.append(callback)

    def _emit(self, error: Optional[BaseException] = None) -> None:
        event = LifecycleEvent(self.modality, self._state, self.model_id, error)
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception as e:
                logger.warning("Lifecycle listener failed for %s: %s", self.modality, e)

    # === Guards ===

    def _check_usable(self) -> None:
        if self._state == ModelState.DISPOSED:
            raise DisposedError(self.modality)
        if self.config is None:
            raise ModelNotConfiguredError(self.modality)
        if self.config.skip:
            raise ModelNotConfiguredError(self.modality, reason="skipped by configuration")

    def _check_not_disposed(self) -> None:
        if self._state == ModelState.DISPOSED:
            raise DisposedError(self.modality)

    # === Loading ===

    async def ensure_loaded(self) -> None:
        """Load the engine unless ready; join an in-flight load if there is one.

        Raises:
            ModelNotConfiguredError: Modality unconfigured or skipped
            LoadFailedError: The engine could not be created on any device
            DisposedError: Disposed before or during the load
        """
        self._check_usable()
        if self._state == ModelState.READY:
            return

        if self._load_task is None:
            self._state = ModelState.LOADING
            self._load_task = asyncio.get_running_loop().create_task(
                self._load(), name=f"lxrt-load-{self.modality}"
            )
            # Retrieve the outcome even if every joiner was cancelled
            self._load_task.add_done_callback(lambda t: t.cancelled() or t.exception())
        else:
            logger.debug("Joining in-flight load: %s", self.modality)

        # One caller being cancelled must not cancel the shared load
        await asyncio.shield(self._load_task)

    def _resolve_chain(self) -> list[LoadSettings]:
        if self._selector is None:
            self._selector = BackendSelector(detect())
        return self._selector.resolve(
            self.config,
            self.model_id,
            cache_dir=self._cache_dir,
            num_threads=self._num_threads,
        )

    async def _load(self) -> None:
        model_id = self.model_id
        try:
            chain = self._resolve_chain()
            engine, last_error = None, None
            for i, settings in enumerate(chain):
                try:
                    with LogContext(
                        logger,
                        f"Loading {self.modality} model",
                        model=model_id,
                        device=settings.device.value,
                        dtype=settings.dtype.value,
                    ):
                        engine = await self._loader(settings)
                    self._settings = settings
                    break
                except Exception as e:
                    last_error = e
                    if self._state == ModelState.DISPOSED:
                        break
                    if i + 1 < len(chain):
                        logger.warning(
                            "%s load on %s failed, falling back to %s",
                            self.modality,
                            settings.device.value,
                            chain[i + 1].device.value,
                        )

            if engine is None:
                raise LoadFailedError(self.modality, model_id, cause=last_error) from last_error

            if self._state == ModelState.DISPOSED:
                # Disposed while loading: the handle never becomes visible
                self._unload_engine(engine)
                raise DisposedError(self.modality)

            self._engine = engine
            self._last_error = None
            self._state = ModelState.READY
            self._emit()

        except DisposedError:
            raise
        except Exception as e:
            if self._state == ModelState.DISPOSED:
                raise DisposedError(self.modality) from e
            error = e if isinstance(e, LoadFailedError) else LoadFailedError(self.modality, model_id, cause=e)
            self._state = ModelState.ERROR
            self._last_error = error
            self._emit(error)
            if error is e:
                raise
            raise error from e
        finally:
            self._load_task = None

    # === Invocation ===

    async def _lease(self) -> Engine:
        """Get the engine for one call, loading it first under implicit warmup."""
        self._check_usable()
        if self._state != ModelState.READY:
            if not self.implicit_warmup:
                raise ModelNotLoadedError(self.modality, state=self._state.value)
            await self.ensure_loaded()
        self._check_not_disposed()
        self._leases += 1
        return self._engine

    def _track_stream(self, stream: TokenStream) -> None:
        self._streams.add(stream)

    def _untrack_stream(self, stream: TokenStream) -> None:
        self._streams.discard(stream)

    def _return_lease(self) -> None:
        self._leases -= 1
        if self._leases == 0 and self._state == ModelState.DISPOSED:
            self._release_engine()

    async def invoke(self, call: Callable[[Engine], Awaitable[T]]) -> T:
        """Run ``call(engine)`` against the ready engine.

        Raises:
            ModelNotLoadedError: Not ready and implicit warmup is off
            DisposedError: Disposed before or while the call ran
        """
        engine = await self._lease()
        try:
            result = await call(engine)
        except Exception as e:
            if self._state == ModelState.DISPOSED:
                raise DisposedError(self.modality) from e
            raise
        finally:
            self._return_lease()

        if self._state == ModelState.DISPOSED:
            raise DisposedError(self.modality)
        return result

    def open_stream(self, call: Callable[[Engine], AsyncIterator[str]]) -> TokenStream:
        """Wrap a streaming engine call; nothing runs until the first pull."""
        return TokenStream(self, call)

    # === Disposal ===

    def _unload_engine(self, engine: Engine) -> None:
        try:
            engine.unload()
        except Exception as e:
            logger.warning("Error unloading %s engine: %s", self.modality, e)

    def _release_engine(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            self._unload_engine(engine)
            logger.info("%s model released: %s", self.modality, self.model_id)

    async def dispose(self) -> None:
        """Release the engine and enter the terminal disposed state. Idempotent."""
        if self._state == ModelState.DISPOSED:
            return
        self._state = ModelState.DISPOSED
        # Streams abandoned without aclose() still hold a lease
        for stream in list(self._streams):
            await stream.aclose()
        if self._leases == 0:
            self._release_engine()
        else:
            logger.debug("Deferring %s release until %d call(s) finish", self.modality, self._leases)
        self._emit()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(modality='{self.modality}', state={self._state.value})"
