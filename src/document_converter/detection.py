from __future__ import annotations

import re
import zipfile
from dataclasses import dataclass
from pathlib import Path

from .models import Format, Payload

EXTENSION_MAP: dict[str, Format] = {
    ".txt": Format.PLAIN_TEXT,
    ".text": Format.PLAIN_TEXT,
    ".md": Format.LIGHT_MARKUP,
    ".markdown": Format.LIGHT_MARKUP,
    ".html": Format.HYPER_MARKUP,
    ".htm": Format.HYPER_MARKUP,
    ".docx": Format.COMPOUND_CONTAINER,
    ".pdf": Format.FIXED_LAYOUT,
}

ZIP_SIGNATURE = b"PK\x03\x04"
PDF_SIGNATURE = b"%PDF"
SAMPLE_SIZE = 1000
MARKDOWN_HINT_RE = re.compile(r"(^|\n)#{1,6} |```|!\[|\]\(|\*\*.+?\*\*")
BINARY_RE = re.compile(r"[\x00-\x08\x0e-\x1f]")


class DetectionError(RuntimeError):
    """Raised when format detection fails."""


@dataclass(slots=True)
class DetectionResult:
    format: Format
    mime_type: str
    extension: str


@dataclass(frozen=True, slots=True)
class FormatGuess:
    format: Format
    confidence: float


def _looks_like_html(sample: str) -> bool:
    lowered = sample.lower()
    return "<!doctype html" in lowered or "<html" in lowered or ("<body" in lowered and "</body>" in lowered)


def sniff_format(path: Path, expected: Format) -> bool:
    if expected is Format.COMPOUND_CONTAINER:
        return zipfile.is_zipfile(path)
    with path.open("rb") as handle:
        sample = handle.read(SAMPLE_SIZE)
    if expected is Format.FIXED_LAYOUT:
        return sample.startswith(PDF_SIGNATURE)
    if sample.startswith(PDF_SIGNATURE) or sample.startswith(ZIP_SIGNATURE):
        return False
    if expected is Format.HYPER_MARKUP:
        return _looks_like_html(sample.decode("utf-8", errors="ignore"))
    return True


def detect_format(path: Path) -> DetectionResult:
    """Format of a file from its extension, confirmed by sniffing its content."""

    extension = path.suffix.lower()
    fmt = EXTENSION_MAP.get(extension)
    if fmt is None:
        raise DetectionError(f"Unsupported file extension: {extension or '<none>'}")
    if not path.is_file():
        raise DetectionError(f"Source file does not exist: {path}")
    if not sniff_format(path, fmt):
        raise DetectionError(f"Content sniff mismatch: {path.name} does not look like {fmt.value}")
    return DetectionResult(format=fmt, mime_type=fmt.mime_type, extension=extension)


def detect_format_from_content(payload: Payload) -> FormatGuess:
    """Best guess at the format of an in-memory payload."""

    if isinstance(payload, (bytes, bytearray)):
        raw = bytes(payload)
        if raw.startswith(PDF_SIGNATURE):
            return FormatGuess(Format.FIXED_LAYOUT, 0.9)
        if raw.startswith(ZIP_SIGNATURE):
            return FormatGuess(Format.COMPOUND_CONTAINER, 0.9)
        try:
            sample = raw[: SAMPLE_SIZE * 4].decode("utf-8")
        except UnicodeDecodeError:
            return FormatGuess(Format.COMPOUND_CONTAINER, 0.3)
    else:
        sample = payload
    sample = sample[:SAMPLE_SIZE]

    if sample.startswith(PDF_SIGNATURE.decode("ascii")):
        return FormatGuess(Format.FIXED_LAYOUT, 0.9)
    if _looks_like_html(sample):
        return FormatGuess(Format.HYPER_MARKUP, 0.8)
    if MARKDOWN_HINT_RE.search(sample):
        return FormatGuess(Format.LIGHT_MARKUP, 0.7)
    if BINARY_RE.search(sample):
        return FormatGuess(Format.COMPOUND_CONTAINER, 0.3)
    return FormatGuess(Format.PLAIN_TEXT, 0.5)


__all__ = [
    "DetectionError",
    "DetectionResult",
    "EXTENSION_MAP",
    "FormatGuess",
    "detect_format",
    "detect_format_from_content",
    "sniff_format",
]
