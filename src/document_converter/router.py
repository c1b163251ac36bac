"""Format registry and conversion routing."""

from __future__ import annotations

import time
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping

from .container import ContainerReader, ContainerWriter
from .errors import ConversionError, InvalidContainer, IoFailure, MalformedMarkup, UnsupportedConversion
from .fixed_layout import FixedLayoutCodec
from .logging import HopTiming, RunLogEntry, RunLogger
from .models import (
    ConversionOptions,
    ConversionResult,
    ConversionWarning,
    Format,
    Payload,
    StructuralOutline,
    check_payload,
)
from .normalizer import to_light_markup
from .outline import outline_from_html
from .transcoder import MarkupTranscoder
from .utils import atomic_write, atomic_write_bytes, generate_run_id

Transform = Callable[[Payload, ConversionOptions], tuple[Payload, list[ConversionWarning]]]
Pair = tuple[Format, Format]

HUB = Format.HYPER_MARKUP
SECONDARY_HUB = Format.LIGHT_MARKUP


def _without_warnings(function: Callable[[Payload, ConversionOptions], Payload]) -> Transform:
    def transform(payload: Payload, options: ConversionOptions) -> tuple[Payload, list[ConversionWarning]]:
        return function(payload, options), []

    transform.__name__ = getattr(function, "__name__", "transform")
    return transform


def build_default_transforms(
    *,
    transcoder: MarkupTranscoder | None = None,
    reader: ContainerReader | None = None,
    writer: ContainerWriter | None = None,
    fixed_layout: FixedLayoutCodec | None = None,
) -> dict[Pair, Transform]:
    """The standard direct-transform table, built from the given components."""

    transcoder = transcoder or MarkupTranscoder()
    reader = reader or ContainerReader()
    writer = writer or ContainerWriter()
    fixed_layout = fixed_layout or FixedLayoutCodec(transcoder=transcoder)
    return {
        (Format.PLAIN_TEXT, Format.LIGHT_MARKUP): _without_warnings(lambda text, _options: to_light_markup(text)),
        (Format.LIGHT_MARKUP, Format.HYPER_MARKUP): _without_warnings(transcoder.light_to_hyper),
        (Format.HYPER_MARKUP, Format.LIGHT_MARKUP): _without_warnings(transcoder.hyper_to_light),
        (Format.HYPER_MARKUP, Format.PLAIN_TEXT): _without_warnings(transcoder.hyper_to_text),
        (Format.COMPOUND_CONTAINER, Format.HYPER_MARKUP): reader.container_to_hyper,
        (Format.COMPOUND_CONTAINER, Format.PLAIN_TEXT): _without_warnings(
            lambda data, _options: reader.container_to_plain_text(data)
        ),
        (Format.HYPER_MARKUP, Format.COMPOUND_CONTAINER): writer.hyper_to_container,
        (Format.HYPER_MARKUP, Format.FIXED_LAYOUT): fixed_layout.any_to_fixed_layout,
        (Format.FIXED_LAYOUT, Format.HYPER_MARKUP): fixed_layout.fixed_layout_to_hyper,
    }


def _stage(pair: Pair) -> str:
    return f"{pair[0].value}->{pair[1].value}"


def _foreign_error(pair: Pair, exc: Exception) -> ConversionError:
    source, target = pair
    error_cls = InvalidContainer if source.is_binary or target is Format.COMPOUND_CONTAINER else MalformedMarkup
    return error_cls(f"{_stage(pair)} failed: {type(exc).__name__}: {exc}")


def _payload_size(payload: Payload) -> int:
    return len(payload.encode("utf-8")) if isinstance(payload, str) else len(payload)


class ConversionRouter:
    """Resolves a (source, target) pair to direct transforms or a hub chain and runs it."""

    def __init__(
        self,
        transforms: Mapping[Pair, Transform] | None = None,
        *,
        run_logger: RunLogger | None = None,
    ) -> None:
        table = dict(transforms) if transforms is not None else build_default_transforms()
        self._transforms: Mapping[Pair, Transform] = MappingProxyType(table)
        self._run_logger = run_logger

    @property
    def transforms(self) -> Mapping[Pair, Transform]:
        return self._transforms

    def plan(self, source: Format | str, target: Format | str) -> list[Format]:
        """The format path a conversion would take, endpoints included."""

        src, dst = Format.parse(source), Format.parse(target)
        if src is dst:
            return [src]
        path = self._find_path(src, dst)
        if path is None:
            raise UnsupportedConversion(src, dst)
        return path

    def supported_pairs(self) -> list[tuple[Format, Format, list[Format]]]:
        pairs = []
        for src in Format:
            for dst in Format:
                if src is dst:
                    continue
                path = self._find_path(src, dst)
                if path is not None:
                    pairs.append((src, dst, path))
        return pairs

    def _find_path(self, source: Format, target: Format) -> list[Format] | None:
        if (source, target) in self._transforms:
            return [source, target]
        for hub in (HUB, SECONDARY_HUB):
            if hub is SECONDARY_HUB and not source.is_textual:
                continue
            leg = self._leg_to_hub(source, hub)
            if leg is None:
                continue
            if target is hub:
                return leg
            if (hub, target) in self._transforms:
                return [*leg, target]
        return None

    def _leg_to_hub(self, source: Format, hub: Format) -> list[Format] | None:
        if source is hub:
            return [source]
        if (source, hub) in self._transforms:
            return [source, hub]
        # textual sources may reach the hypertext hub through lightweight markup
        if (
            source.is_textual
            and hub is not SECONDARY_HUB
            and source is not SECONDARY_HUB
            and (source, SECONDARY_HUB) in self._transforms
            and (SECONDARY_HUB, hub) in self._transforms
        ):
            return [source, SECONDARY_HUB, hub]
        return None

    def convert(
        self,
        payload: Payload,
        source: Format | str,
        target: Format | str,
        options: ConversionOptions | None = None,
    ) -> ConversionResult:
        opts = options or ConversionOptions()
        src, dst = Format.parse(source), Format.parse(target)
        run_id = generate_run_id()
        timings: list[HopTiming] = []
        warnings: list[ConversionWarning] = []
        path: list[Format] = [src]
        destination: Path | None = None
        write_ms = 0.0

        try:
            current = self._validated(payload, src)
            if src is not dst:
                path = self.plan(src, dst)
                for hop in zip(path, path[1:]):
                    started = time.perf_counter()
                    current, hop_warnings = self._run_hop(hop, current, opts)
                    timings.append(HopTiming(hop[0].value, hop[1].value, (time.perf_counter() - started) * 1000))
                    warnings.extend(hop_warnings)
            if opts.output_destination is not None:
                started = time.perf_counter()
                destination = self._write(Path(opts.output_destination), current)
                write_ms = (time.perf_counter() - started) * 1000
        except ConversionError as exc:
            exc.annotate("convert", (src, dst))
            result = ConversionResult(src, dst, error=exc, warnings=warnings, hops=path, run_id=run_id)
            self._log(result, timings, 0, write_ms)
            return result

        result = ConversionResult(
            src, dst, payload=current, warnings=warnings, destination=destination, hops=path, run_id=run_id
        )
        self._log(result, timings, _payload_size(current), write_ms)
        return result

    def structural_outline(self, payload: Payload, fmt: Format | str) -> StructuralOutline:
        """Headings and counts of a payload, derived from its hypertext rendering."""

        result = self.convert(payload, fmt, HUB, ConversionOptions())
        result.raise_for_error()
        return outline_from_html(result.payload)

    def _validated(self, payload: Payload, fmt: Format) -> Payload:
        try:
            check_payload(payload, fmt)
        except TypeError as exc:
            error_cls = InvalidContainer if fmt.is_binary else MalformedMarkup
            raise error_cls(str(exc)).annotate("validate") from exc
        return bytes(payload) if isinstance(payload, bytearray) else payload

    def _run_hop(
        self, hop: Pair, payload: Payload, options: ConversionOptions
    ) -> tuple[Payload, list[ConversionWarning]]:
        transform = self._transforms[hop]
        try:
            produced, hop_warnings = transform(payload, options)
        except ConversionError as exc:
            raise exc.annotate(_stage(hop), hop)
        except Exception as exc:
            raise _foreign_error(hop, exc).annotate(_stage(hop), hop) from exc
        return produced, list(hop_warnings)

    def _write(self, path: Path, payload: Payload) -> Path:
        try:
            if isinstance(payload, str):
                atomic_write(path, payload)
            else:
                atomic_write_bytes(path, payload)
        except OSError as exc:
            raise IoFailure(path, f"Unable to write {path}: {exc}").annotate("write") from exc
        return path

    def _log(self, result: ConversionResult, timings: list[HopTiming], size_bytes: int, write_ms: float) -> None:
        if self._run_logger is None:
            return
        error = result.error
        self._run_logger.append(
            RunLogEntry(
                run_id=result.run_id or generate_run_id(),
                source=result.source.value,
                target=result.target.value,
                status="success" if error is None else "failure",
                hops=[fmt.value for fmt in result.hops],
                warnings=[str(warning) for warning in result.warnings],
                error_code=error.code if error is not None else None,
                stages=list(error.stages) if error is not None else [],
                timings=timings,
                size_bytes=size_bytes,
                destination=str(result.destination) if result.destination else None,
                write_ms=write_ms,
            )
        )


__all__ = [
    "ConversionRouter",
    "HUB",
    "SECONDARY_HUB",
    "Transform",
    "build_default_transforms",
]
