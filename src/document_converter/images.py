"""Helpers for opaque embedded images: sniffing, sizing and data URIs."""

from __future__ import annotations

import base64
import binascii
import re
import struct
from pathlib import Path
from urllib.parse import unquote_to_bytes

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?),(?P<data>.*)$", re.DOTALL)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/gif": "gif",
    "image/bmp": "bmp",
}

DEFAULT_SIZE = (400, 300)


def sniff_image_type(data: bytes) -> str | None:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data.startswith(b"BM"):
        return "image/bmp"
    return None


def mime_from_name(name: str) -> str:
    suffix = Path(name).suffix.lower().lstrip(".")
    if suffix == "jpg":
        suffix = "jpeg"
    for mime, extension in EXTENSIONS.items():
        if extension == suffix:
            return mime
    return "application/octet-stream"


def image_size(data: bytes) -> tuple[int, int]:
    """Return the pixel size of a PNG, GIF or JPEG image, or a default guess."""

    kind = sniff_image_type(data)
    try:
        if kind == "image/png" and len(data) >= 24:
            width, height = struct.unpack(">II", data[16:24])
            return width, height
        if kind == "image/gif" and len(data) >= 10:
            width, height = struct.unpack("<HH", data[6:10])
            return width, height
        if kind == "image/jpeg":
            return _jpeg_size(data)
    except struct.error:
        return DEFAULT_SIZE
    return DEFAULT_SIZE


def _jpeg_size(data: bytes) -> tuple[int, int]:
    offset = 2
    while offset + 9 < len(data):
        if data[offset] != 0xFF:
            offset += 1
            continue
        marker = data[offset + 1]
        if marker in (0xD8, 0x01) or 0xD0 <= marker <= 0xD7:
            offset += 2
            continue
        (length,) = struct.unpack(">H", data[offset + 2 : offset + 4])
        if 0xC0 <= marker <= 0xCF and marker not in (0xC4, 0xC8, 0xCC):
            height, width = struct.unpack(">HH", data[offset + 5 : offset + 9])
            return width, height
        offset += 2 + length
    return DEFAULT_SIZE


def to_data_uri(data: bytes, mime_type: str | None = None) -> str:
    mime = mime_type or sniff_image_type(data) or "application/octet-stream"
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_uri(uri: str) -> tuple[str, bytes] | None:
    match = DATA_URI_RE.match(uri.strip())
    if not match:
        return None
    payload = match.group("data")
    try:
        if ";base64" in (match.group("params") or ""):
            data = base64.b64decode(payload, validate=False)
        else:
            data = unquote_to_bytes(payload)
    except (binascii.Error, ValueError):
        return None
    mime = match.group("mime") or sniff_image_type(data) or "application/octet-stream"
    return mime, data


__all__ = [
    "from_data_uri",
    "image_size",
    "mime_from_name",
    "sniff_image_type",
    "to_data_uri",
]
