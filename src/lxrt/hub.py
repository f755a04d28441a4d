"""Model acquisition: download, list and remove models in the Hugging Face cache.

Download progress is reported through a typed event channel:

    def show(event):
        if isinstance(event, ProgressEvent):
            print(f"{event.percent:.0f}% {event.file}")

    path = pull_model("sentence-transformers/all-MiniLM-L6-v2", on_event=show)
"""

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from huggingface_hub import HfApi, hf_hub_download, scan_cache_dir, snapshot_download
from huggingface_hub.errors import CacheNotFound

from lxrt.core.constants import DType, Modality
from lxrt.core.exceptions import ConfigError
from lxrt.core.logging import get_logger
from lxrt.models.presets import resolve_model_id

logger = get_logger(__name__)

# Weights for other runtimes; the torch stack never reads them
IGNORE_PATTERNS = ["*.onnx", "*.onnx_data", "*.tflite", "*.msgpack", "*.h5", "*.ot", "*.gguf", "onnx/*"]


@dataclass(frozen=True)
class ProgressEvent:
    """A file finished downloading."""

    percent: float
    file: Optional[str] = None
    status: str = field(default="progress", init=False)


@dataclass(frozen=True)
class DoneEvent:
    """All files are in the cache."""

    model_id: str
    path: Path
    status: str = field(default="done", init=False)


PullEvent = Union[ProgressEvent, DoneEvent]


@dataclass(frozen=True)
class CachedModel:
    """One model repository in the local cache."""

    name: str
    path: Path
    size_bytes: int
    last_modified: float
    nb_files: int


def _is_ignored(filename: str) -> bool:
    return any(fnmatch.fnmatch(filename, pattern) for pattern in IGNORE_PATTERNS)


def pull_model(
    model_id: str,
    dtype: Union[DType, str, None] = None,
    cache_dir: Optional[Path] = None,
    on_event: Optional[Callable[[PullEvent], None]] = None,
    modality: Union[Modality, str, None] = None,
    revision: Optional[str] = None,
) -> Path:
    """Download every file of a model into the cache.

    Checkpoints are cast to the requested dtype at load time, so one
    snapshot serves every dtype; ``dtype`` is validated and logged.

    Args:
        model_id: Hub repo id, or a preset name when ``modality`` is given
        dtype: Intended load precision
        cache_dir: Cache directory (Hugging Face default when omitted)
        on_event: Receives a ProgressEvent per file, then one DoneEvent
        modality: Resolve ``model_id`` as a preset of this modality
        revision: Branch, tag or commit

    Returns:
        Path of the downloaded snapshot
    """
    if dtype is not None:
        try:
            dtype = DType(dtype)
        except ValueError as e:
            raise ConfigError(f"Unknown dtype: {dtype}", details={"valid": [d.value for d in DType]}, cause=e) from e
    if modality is not None:
        model_id = resolve_model_id(Modality.parse(modality), model_id)

    cache = str(cache_dir) if cache_dir else None
    files = [f for f in HfApi().list_repo_files(model_id, revision=revision) if not _is_ignored(f)]
    logger.info("Pulling %s (%d files, dtype=%s)", model_id, len(files), dtype.value if dtype else "auto")

    for i, filename in enumerate(files, 1):
        hf_hub_download(model_id, filename, cache_dir=cache, revision=revision)
        if on_event:
            on_event(ProgressEvent(percent=100.0 * i / len(files), file=filename))

    path = Path(snapshot_download(model_id, cache_dir=cache, revision=revision, allow_patterns=files))
    if on_event:
        on_event(DoneEvent(model_id=model_id, path=path))
    logger.info("Model cached: %s -> %s", model_id, path)
    return path


def list_models(cache_dir: Optional[Path] = None) -> List[CachedModel]:
    """Cached model repositories, sorted by name."""
    try:
        info = scan_cache_dir(cache_dir)
    except CacheNotFound:
        logger.debug("No cache at %s", cache_dir or "default location")
        return []

    models = [
        CachedModel(
            name=repo.repo_id,
            path=Path(repo.repo_path),
            size_bytes=repo.size_on_disk,
            last_modified=repo.last_modified,
            nb_files=repo.nb_files,
        )
        for repo in info.repos
        if repo.repo_type == "model"
    ]
    return sorted(models, key=lambda m: m.name)


def remove_model(model_id: str, cache_dir: Optional[Path] = None) -> Optional[int]:
    """Delete every cached revision of a model.

    Returns:
        Bytes freed, or None if the model is not cached
    """
    try:
        info = scan_cache_dir(cache_dir)
    except CacheNotFound:
        return None

    for repo in info.repos:
        if repo.repo_type == "model" and repo.repo_id == model_id:
            strategy = info.delete_revisions(*(rev.commit_hash for rev in repo.revisions))
            strategy.execute()
            logger.info("Removed %s (%d bytes)", model_id, strategy.expected_freed_size)
            return strategy.expected_freed_size
    return None


def format_bytes(num_bytes: int) -> str:
    """Human-readable size."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"
