"""Tagged failures raised by conversion stages."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Format


class ConversionError(RuntimeError):
    code = "CONVERSION_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.stages: list[str] = []
        self.pair: tuple[Format, Format] | None = None

    def annotate(self, stage: str, pair: tuple[Format, Format] | None = None) -> ConversionError:
        """Record the stage the error crossed; the first pair seen is kept."""

        if not self.stages or self.stages[-1] != stage:
            self.stages.append(stage)
        if self.pair is None and pair is not None:
            self.pair = pair
        return self

    def describe(self) -> str:
        parts = [self.code]
        if self.stages:
            parts.append(f"[{' <- '.join(self.stages)}]")
        if self.pair is not None:
            source, target = self.pair
            parts.append(f"({source.value}->{target.value})")
        return f"{' '.join(parts)}: {self}"


class UnsupportedConversion(ConversionError):
    code = "UNSUPPORTED_CONVERSION"

    def __init__(self, source: Format, target: Format) -> None:
        super().__init__(f"No conversion path from {source.value} to {target.value}")
        self.source = source
        self.target = target
        self.pair = (source, target)


class InvalidContainer(ConversionError):
    code = "INVALID_CONTAINER"


class MissingTemplate(ConversionError):
    code = "MISSING_TEMPLATE"

    def __init__(self, reference: str, message: str | None = None) -> None:
        super().__init__(message or f"Container blueprint not found: {reference!r}")
        self.reference = reference


class BindingError(ConversionError):
    code = "BINDING_ERROR"

    def __init__(self, placeholder: str) -> None:
        super().__init__(f"No value bound for required placeholder {placeholder!r}")
        self.placeholder = placeholder


class MalformedMarkup(ConversionError):
    code = "MALFORMED_MARKUP"


class IoFailure(ConversionError):
    code = "IO_FAILURE"

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        super().__init__(message or f"Unable to write {path}")
        self.path = Path(path)


__all__ = [
    "BindingError",
    "ConversionError",
    "InvalidContainer",
    "IoFailure",
    "MalformedMarkup",
    "MissingTemplate",
    "UnsupportedConversion",
]
