"""lxrt CLI - model cache management.

Usage:
    lxrt pull sentence-transformers/all-MiniLM-L6-v2
    lxrt pull tiny --modality llm --dtype fp16
    lxrt list
    lxrt remove openai/whisper-tiny --yes
    lxrt info
"""

from lxrt.cli.main import main

__all__ = ["main"]
