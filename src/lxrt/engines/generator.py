"""Text generation engine on HuggingFace transformers.

Streaming decodes one token per request: each ``__anext__`` on the stream
runs exactly one forward pass (in a worker thread), so nothing is computed
ahead of the consumer and closing the stream drops the KV cache at once.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Sequence

from lxrt.backends.selector import LoadSettings, quantization_config, torch_dtype
from lxrt.core.constants import Defaults, Device
from lxrt.core.logging import get_logger
from lxrt.core.types import Message, TokenUsage

from .base import GenerationEngine, GenerationResult
from .resources import apply_thread_budget, clear_device_memory

logger = get_logger(__name__)


class _DecodeState:
    """Per-stream decoding state: KV cache and tokens generated so far."""

    def __init__(self, input_ids):
        self.next_input = input_ids
        self.past_key_values = None
        self.generated: list[int] = []
        self.emitted_text = ""

    def release(self) -> None:
        self.next_input = None
        self.past_key_values = None


class HFGenerationEngine(GenerationEngine):
    """AutoModelForCausalLM plus its tokenizer."""

    def __init__(self, model, tokenizer, model_name: str):
        self._model = model
        self._tokenizer = tokenizer
        self.model_name = model_name

    @property
    def device(self):
        return next(self._model.parameters()).device

    # === Prompt encoding ===

    def _encode_prompt(self, prompt: str):
        return self._tokenizer(prompt, return_tensors="pt")["input_ids"].to(self.device)

    def _encode_chat(self, messages: Sequence[Message]):
        conversation = [m.to_dict() for m in messages]
        if getattr(self._tokenizer, "chat_template", None):
            input_ids = self._tokenizer.apply_chat_template(
                conversation, add_generation_prompt=True, return_tensors="pt"
            )
            if not hasattr(input_ids, "to"):
                input_ids = input_ids["input_ids"]
            return input_ids.to(self.device)

        # Base models without a chat template get a plain transcript
        transcript = "\n".join(f"{m['role']}: {m['content']}" for m in conversation)
        return self._encode_prompt(f"{transcript}\nassistant:")

    # === Batch generation ===

    def _generate_sync(self, input_ids, **options: Any) -> GenerationResult:
        import torch

        max_tokens = options.get("max_tokens") or Defaults.MAX_TOKENS
        temperature = options.get("temperature", Defaults.TEMPERATURE)
        top_p = options.get("top_p", Defaults.TOP_P)

        with torch.no_grad():
            outputs = self._model.generate(
                input_ids,
                attention_mask=torch.ones_like(input_ids),
                max_new_tokens=max_tokens,
                do_sample=temperature > 0,
                temperature=temperature if temperature > 0 else None,
                top_p=top_p if temperature > 0 else None,
                pad_token_id=self._tokenizer.pad_token_id,
            )

        prompt_length = input_ids.shape[1]
        generated = outputs[0, prompt_length:]
        text = self._tokenizer.decode(generated, skip_special_tokens=True)
        return GenerationResult(
            text=text,
            usage=TokenUsage(prompt_tokens=int(prompt_length), completion_tokens=int(generated.shape[0])),
        )

    async def complete(self, prompt: str, **options: Any) -> GenerationResult:
        input_ids = self._encode_prompt(prompt)
        return await asyncio.to_thread(self._generate_sync, input_ids, **options)

    async def chat(self, messages: Sequence[Message], **options: Any) -> GenerationResult:
        input_ids = self._encode_chat(messages)
        return await asyncio.to_thread(self._generate_sync, input_ids, **options)

    # === Streaming ===

    def _logits_processors(self, temperature: float, top_p: float):
        from transformers import LogitsProcessorList, TemperatureLogitsWarper, TopPLogitsWarper

        processors = LogitsProcessorList()
        if temperature > 0:
            processors.append(TemperatureLogitsWarper(temperature))
            if top_p < 1.0:
                processors.append(TopPLogitsWarper(top_p))
        return processors

    def _next_token(self, state: _DecodeState, processors, sample: bool) -> int:
        import torch

        with torch.no_grad():
            out = self._model(
                input_ids=state.next_input,
                past_key_values=state.past_key_values,
                use_cache=True,
            )
            logits = out.logits[:, -1, :]
            history = torch.tensor([state.generated or [0]], device=logits.device)
            scores = processors(history, logits)
            if sample:
                token = torch.multinomial(torch.softmax(scores, dim=-1), num_samples=1)
            else:
                token = torch.argmax(scores, dim=-1, keepdim=True)

        state.past_key_values = out.past_key_values
        state.next_input = token
        token_id = int(token[0, 0])
        state.generated.append(token_id)
        return token_id

    def _new_text(self, state: _DecodeState, final: bool = False) -> str:
        text = self._tokenizer.decode(state.generated, skip_special_tokens=True)
        if text.endswith("�") and not final:
            return ""  # incomplete multi-byte character, wait for the next token
        delta = text[len(state.emitted_text) :]
        state.emitted_text = text
        return delta

    async def stream(self, messages: Sequence[Message], **options: Any) -> AsyncIterator[str]:
        max_tokens = options.get("max_tokens") or Defaults.MAX_TOKENS
        temperature = options.get("temperature", Defaults.TEMPERATURE)
        top_p = options.get("top_p", Defaults.TOP_P)

        processors = self._logits_processors(temperature, top_p)
        eos_ids = self._eos_token_ids()
        state = _DecodeState(self._encode_chat(messages))
        try:
            for _ in range(max_tokens):
                token_id = await asyncio.to_thread(self._next_token, state, processors, temperature > 0)
                if token_id in eos_ids:
                    break
                delta = self._new_text(state)
                if delta:
                    yield delta
            # Whatever was held back for an unfinished character
            tail = self._new_text(state, final=True)
            if tail:
                yield tail
        finally:
            state.release()

    def _eos_token_ids(self) -> set[int]:
        eos = self._model.generation_config.eos_token_id
        if eos is None:
            eos = self._tokenizer.eos_token_id
        if eos is None:
            return set()
        return set(eos) if isinstance(eos, (list, tuple)) else {eos}

    def unload(self) -> None:
        if hasattr(self._model, "to"):
            try:
                self._model.to("cpu")
            except (RuntimeError, ValueError):
                pass  # quantized models cannot be moved
        del self._model
        del self._tokenizer
        clear_device_memory()


def _load_sync(settings: LoadSettings) -> HFGenerationEngine:
    from transformers import AutoModelForCausalLM, AutoTokenizer

    if settings.device == Device.WASM:
        apply_thread_budget(settings.num_threads)

    tokenizer = AutoTokenizer.from_pretrained(settings.model, cache_dir=settings.cache_folder)
    if tokenizer.pad_token is None:
        tokenizer.pad_token = tokenizer.eos_token
        tokenizer.pad_token_id = tokenizer.eos_token_id

    quant = quantization_config(settings.dtype)
    model = AutoModelForCausalLM.from_pretrained(
        settings.model,
        cache_dir=settings.cache_folder,
        torch_dtype=None if quant else torch_dtype(settings.dtype),
        quantization_config=quant,
        device_map="auto" if quant else None,
        low_cpu_mem_usage=True,
    )
    if quant is None:
        model = model.to(settings.torch_device)
    model.eval()
    logger.debug("Generation model %s on %s (%s)", settings.model, settings.torch_device, settings.dtype.value)

    return HFGenerationEngine(model, tokenizer, settings.model)


async def load_generation_engine(settings: LoadSettings) -> HFGenerationEngine:
    """Engine loader for the ``llm`` modality."""
    return await asyncio.to_thread(_load_sync, settings)
