"""Document format conversion among text, Markdown, HTML, DOCX and PDF."""

from __future__ import annotations

from functools import lru_cache

from .config import AppConfig, build_router, load_config
from .errors import (
    BindingError,
    ConversionError,
    InvalidContainer,
    IoFailure,
    MalformedMarkup,
    MissingTemplate,
    UnsupportedConversion,
)
from .models import (
    ConversionOptions,
    ConversionResult,
    ConversionWarning,
    Format,
    Heading,
    Payload,
    StructuralOutline,
)
from .router import ConversionRouter, build_default_transforms


@lru_cache(maxsize=1)
def default_router() -> ConversionRouter:
    return ConversionRouter()


def convert(
    payload: Payload,
    source: Format | str,
    target: Format | str,
    options: ConversionOptions | None = None,
) -> ConversionResult:
    return default_router().convert(payload, source, target, options)


def structural_outline(payload: Payload, fmt: Format | str) -> StructuralOutline:
    return default_router().structural_outline(payload, fmt)


__all__ = [
    "AppConfig",
    "BindingError",
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "ConversionRouter",
    "ConversionWarning",
    "Format",
    "Heading",
    "InvalidContainer",
    "IoFailure",
    "MalformedMarkup",
    "MissingTemplate",
    "StructuralOutline",
    "UnsupportedConversion",
    "build_default_transforms",
    "build_router",
    "convert",
    "default_router",
    "load_config",
    "structural_outline",
]
