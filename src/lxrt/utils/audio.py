"""Audio decoding helpers for speech recognition and audio embeddings."""

import io
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Union

import numpy as np

from lxrt.core.exceptions import ContentDecodeError
from lxrt.core.logging import get_logger

logger = get_logger(__name__)

FFMPEG_TIMEOUT_S = 120


def resample_audio(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Resample mono samples with scipy (FFT method)."""
    if source_rate == target_rate or samples.size == 0:
        return samples.astype(np.float32)
    from scipy.signal import resample

    num_samples = int(len(samples) * target_rate / source_rate)
    return resample(samples, num_samples).astype(np.float32)


def decode_audio(
    data: Union[bytes, str, Path],
    target_rate: Optional[int] = None,
    normalize: bool = False,
) -> tuple[np.ndarray, int]:
    """Decode an audio file or buffer to mono float32 samples.

    Args:
        data: Encoded audio bytes or a file path
        target_rate: Resample to this rate when given
        normalize: Scale so the peak amplitude is 1.0

    Returns:
        (samples, sampling_rate)

    Raises:
        ContentDecodeError: If soundfile cannot read the input
    """
    import soundfile as sf

    source = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else str(data)
    try:
        audio, sr = sf.read(source, dtype="float32")
    except (RuntimeError, TypeError) as e:  # LibsndfileError is a RuntimeError
        raise ContentDecodeError("Unreadable audio", cause=e) from e

    # Handle stereo
    if audio.ndim > 1:
        audio = audio.mean(axis=1)

    if target_rate and sr != target_rate:
        audio = resample_audio(audio, sr, target_rate)
        sr = target_rate

    if normalize:
        peak = float(np.max(np.abs(audio))) if audio.size else 0.0
        if peak > 0:
            audio = audio / peak

    return audio.astype(np.float32), sr


def extract_audio_track(video: bytes, sampling_rate: int) -> bytes:
    """Extract the audio track of a video as mono WAV using ffmpeg.

    Raises:
        ContentDecodeError: If ffmpeg is missing, fails, or the video has no audio
    """
    ffmpeg_bin = shutil.which("ffmpeg")
    if not ffmpeg_bin:
        raise ContentDecodeError("ffmpeg is required to extract audio from video")

    with tempfile.TemporaryDirectory(prefix="lxrt-video-") as tmp:
        src = Path(tmp) / "input"
        dst = Path(tmp) / "audio.wav"
        src.write_bytes(video)
        cmd = [
            ffmpeg_bin,
            "-y",
            "-loglevel",
            "error",
            "-i",
            str(src),
            "-vn",
            "-ar",
            str(sampling_rate),
            "-ac",
            "1",
            str(dst),
        ]
        try:
            subprocess.run(cmd, check=True, timeout=FFMPEG_TIMEOUT_S, capture_output=True)
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", "replace").strip() if e.stderr else ""
            raise ContentDecodeError("ffmpeg failed to extract audio", details={"stderr": stderr}, cause=e) from e
        except (OSError, subprocess.SubprocessError) as e:
            raise ContentDecodeError("ffmpeg failed to extract audio", cause=e) from e

        if not dst.exists() or dst.stat().st_size == 0:
            raise ContentDecodeError("Video has no audio track")
        logger.debug("Extracted %d bytes of audio from video", dst.stat().st_size)
        return dst.read_bytes()
