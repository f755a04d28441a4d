"""Content container for multi-modal embedding."""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

OCTET_STREAM = "application/octet-stream"


def guess_mime_type(data: bytes) -> str:
    """Sniff a media type from leading magic bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    if data.startswith(b"BM"):
        return "image/bmp"
    if len(data) >= 12 and data[:4] == b"RIFF":
        if data[8:12] == b"WEBP":
            return "image/webp"
        if data[8:12] == b"WAVE":
            return "audio/wav"
    if data.startswith(b"fLaC"):
        return "audio/flac"
    if data.startswith(b"OggS"):
        return "audio/ogg"
    if data.startswith(b"ID3") or data[:2] in {b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"}:
        return "audio/mpeg"
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return "audio/mp4" if data[8:11] == b"M4A" else "video/mp4"
    if data.startswith(b"\x1a\x45\xdf\xa3"):
        return "video/webm"
    return OCTET_STREAM


def _normalize(mime_type: str) -> str:
    return mime_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class Content:
    """Raw bytes plus a media type.

    A missing or ``application/octet-stream`` media type is replaced by
    one sniffed from the bytes when they carry a known signature.
    """

    data: bytes
    mime_type: str = OCTET_STREAM
    name: Optional[str] = None

    def __post_init__(self):
        mime = _normalize(self.mime_type or OCTET_STREAM)
        if mime == OCTET_STREAM:
            mime = guess_mime_type(self.data)
        object.__setattr__(self, "mime_type", mime)

    @property
    def major_type(self) -> str:
        """``image`` for ``image/png`` and so on."""
        return self.mime_type.split("/", 1)[0]

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "Content":
        """Read a file; the media type comes from its extension, then its bytes."""
        path = Path(path)
        mime = mime_type or mimetypes.guess_type(str(path))[0] or OCTET_STREAM
        return cls(data=path.read_bytes(), mime_type=mime, name=path.name)

    @classmethod
    def from_text(cls, text: str, name: Optional[str] = None) -> "Content":
        return cls(data=text.encode("utf-8"), mime_type="text/plain", name=name)

    def __repr__(self) -> str:
        return f"Content(mime_type='{self.mime_type}', size={len(self.data)}, name={self.name!r})"
