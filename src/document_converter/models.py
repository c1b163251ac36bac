"""Domain models for document format conversion."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from .errors import ConversionError

Payload = Union[str, bytes]


class Format(str, Enum):
    PLAIN_TEXT = "txt"
    LIGHT_MARKUP = "md"
    HYPER_MARKUP = "html"
    COMPOUND_CONTAINER = "docx"
    FIXED_LAYOUT = "pdf"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def is_textual(self) -> bool:
        return self in _TEXTUAL

    @property
    def is_binary(self) -> bool:
        return not self.is_textual

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self]

    @classmethod
    def parse(cls, value: str | Format) -> Format:
        if isinstance(value, Format):
            return value
        normalized = str(value).strip().lower().lstrip(".")
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        alias = _ALIASES.get(normalized)
        if alias is None:
            raise ValueError(f"Unknown document format: {value!r}")
        return alias


_TEXTUAL = frozenset({Format.PLAIN_TEXT, Format.LIGHT_MARKUP, Format.HYPER_MARKUP})

_ALIASES: dict[str, Format] = {
    "text": Format.PLAIN_TEXT,
    "markdown": Format.LIGHT_MARKUP,
    "htm": Format.HYPER_MARKUP,
    "word": Format.COMPOUND_CONTAINER,
}

MIME_TYPES: dict[Format, str] = {
    Format.PLAIN_TEXT: "text/plain",
    Format.LIGHT_MARKUP: "text/markdown",
    Format.HYPER_MARKUP: "text/html",
    Format.COMPOUND_CONTAINER: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    Format.FIXED_LAYOUT: "application/pdf",
}


def check_payload(payload: object, fmt: Format) -> None:
    expected = str if fmt.is_textual else bytes
    if fmt.is_binary and isinstance(payload, bytearray):
        return
    if not isinstance(payload, expected):
        raise TypeError(
            f"{fmt.value} payloads must be {expected.__name__}, got {type(payload).__name__}"
        )


@dataclass(slots=True)
class ConversionOptions:
    """Caller-supplied knobs for a single conversion call."""

    preserve_formatting: bool = False
    include_styles: bool = False
    custom_styles: dict[str, str] = field(default_factory=dict)
    preserve_images: bool = False
    image_base_path: Path | None = None
    output_destination: Path | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    template_reference: str | None = None
    preview_timeout_s: float | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class ConversionWarning:
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def ImagesDropped(count: int) -> ConversionWarning:  # noqa: N802 - warning variant constructor
    return ConversionWarning("IMAGES_DROPPED", f"{count} embedded image(s) dropped")


def DegradedRendering(reason: str = "full typesetting backend unavailable") -> ConversionWarning:  # noqa: N802
    return ConversionWarning("DEGRADED_RENDERING", reason)


def PartialExtraction(reason: str) -> ConversionWarning:  # noqa: N802
    return ConversionWarning("PARTIAL_EXTRACTION", reason)


@dataclass(slots=True)
class ConversionResult:
    """Outcome of a conversion call: a payload or a tagged failure, never both."""

    source: Format
    target: Format
    payload: Payload | None = None
    warnings: list[ConversionWarning] = field(default_factory=list)
    error: ConversionError | None = None
    destination: Path | None = None
    hops: list[Format] = field(default_factory=list)
    run_id: str | None = None

    def __post_init__(self) -> None:
        if self.payload is not None and self.error is not None:
            raise ValueError("ConversionResult cannot carry both a payload and an error")
        if self.payload is None and self.error is None:
            raise ValueError("ConversionResult needs either a payload or an error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def warning_codes(self) -> list[str]:
        return [warning.code for warning in self.warnings]

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True, slots=True)
class StructuralOutline:
    headings: tuple[Heading, ...] = ()
    paragraph_count: int = 0
    sentence_count: int = 0
    word_count: int = 0

    @property
    def titles(self) -> list[str]:
        return [heading.text for heading in self.headings]


__all__ = [
    "ConversionOptions",
    "ConversionResult",
    "ConversionWarning",
    "DegradedRendering",
    "Format",
    "Heading",
    "ImagesDropped",
    "MIME_TYPES",
    "PartialExtraction",
    "Payload",
    "StructuralOutline",
    "check_payload",
]
