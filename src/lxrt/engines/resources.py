"""Device memory housekeeping shared by the engines."""

import gc


def clear_device_memory() -> None:
    """Collect garbage and return cached accelerator memory to the driver."""
    gc.collect()
    try:
        import torch
    except ImportError:
        return

    if torch.cuda.is_available():
        torch.cuda.empty_cache()
    mps = getattr(torch, "mps", None)
    if mps is not None and getattr(torch.backends, "mps", None) and torch.backends.mps.is_available():
        mps.empty_cache()


def apply_thread_budget(num_threads: "int | None") -> None:
    """Bound torch intra-op threads for the wasm CPU path."""
    if not num_threads:
        return
    import torch

    if torch.get_num_threads() != num_threads:
        torch.set_num_threads(num_threads)
