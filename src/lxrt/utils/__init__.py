"""Utility helpers."""

from lxrt.utils.audio import decode_audio, extract_audio_track, resample_audio

__all__ = ["decode_audio", "extract_audio_track", "resample_audio"]
