from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .container import (
    DEFAULT_BLUEPRINT,
    BlueprintStore,
    BuiltinBlueprintStore,
    ChainedBlueprintStore,
    ContainerReader,
    ContainerWriter,
    DirectoryBlueprintStore,
)
from .fixed_layout import DEFAULT_PREVIEW_TIMEOUT_S, FixedLayoutCodec, PreviewCollaborator, select_typesetter
from .logging import RunLogger
from .router import ConversionRouter, build_default_transforms
from .styles import DEFAULT_STYLES, StyleInjector
from .transcoder import MarkupTranscoder

CONFIG_FILE = Path("config.toml")


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    log_file: str = "log.jsonl"
    max_payload_mb: int = 25
    enable_local_api: bool = False

    @property
    def log_path(self) -> Path:
        return self.output_dir / self.log_file

    @property
    def max_payload_bytes(self) -> int:
        return max(1, self.max_payload_mb) * 1024 * 1024


@dataclass(slots=True)
class TemplateConfig:
    directory: Path | None = None
    default_reference: str = DEFAULT_BLUEPRINT


@dataclass(slots=True)
class StyleConfig:
    overrides: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class FixedLayoutConfig:
    backend: str = "auto"
    page_size: str = "A4"
    preview_timeout_s: float = DEFAULT_PREVIEW_TIMEOUT_S


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)
    styles: StyleConfig = field(default_factory=StyleConfig)
    fixed_layout: FixedLayoutConfig = field(default_factory=FixedLayoutConfig)
    api: APIConfig = field(default_factory=APIConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else None


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        log_file=str(data.get("log_file", "log.jsonl")),
        max_payload_mb=int(data.get("max_payload_mb", 25)),
        enable_local_api=bool(data.get("enable_local_api", False)),
    )


def _build_templates(data: Mapping[str, object] | None) -> TemplateConfig:
    if not data:
        return TemplateConfig()
    directory = data.get("directory")
    return TemplateConfig(
        directory=Path(str(directory)) if directory else None,
        default_reference=str(data.get("default_reference", DEFAULT_BLUEPRINT)),
    )


def _build_styles(data: Mapping[str, object] | None) -> StyleConfig:
    if not data:
        return StyleConfig()
    overrides = data.get("overrides", {})
    if not isinstance(overrides, Mapping):
        raise TypeError(f"Unsupported styles.overrides configuration: {overrides!r}")
    return StyleConfig(overrides={str(selector): str(rules) for selector, rules in overrides.items()})


def _build_fixed_layout(data: Mapping[str, object] | None) -> FixedLayoutConfig:
    if not data:
        return FixedLayoutConfig()
    return FixedLayoutConfig(
        backend=str(data.get("backend", "auto")),
        page_size=str(data.get("page_size", "A4")),
        preview_timeout_s=float(data.get("preview_timeout_s", DEFAULT_PREVIEW_TIMEOUT_S)),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        templates=_build_templates(_section(raw, "templates")),
        styles=_build_styles(_section(raw, "styles")),
        fixed_layout=_build_fixed_layout(_section(raw, "fixed_layout")),
        api=_build_api(_section(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "max_payload_mb": config.runtime.max_payload_mb,
            "enable_local_api": config.runtime.enable_local_api,
        },
        "templates": {
            "directory": str(config.templates.directory) if config.templates.directory else None,
            "default_reference": config.templates.default_reference,
        },
        "styles": {"overrides": dict(config.styles.overrides)},
        "fixed_layout": {
            "backend": config.fixed_layout.backend,
            "page_size": config.fixed_layout.page_size,
            "preview_timeout_s": config.fixed_layout.preview_timeout_s,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)


def build_blueprint_store(config: AppConfig) -> BlueprintStore:
    builtin = BuiltinBlueprintStore()
    if config.templates.directory is None:
        return builtin
    return ChainedBlueprintStore(DirectoryBlueprintStore(config.templates.directory), builtin)


def build_router(
    config: AppConfig,
    *,
    previewer: PreviewCollaborator | None = None,
    with_logging: bool = True,
) -> ConversionRouter:
    """Wire a router from configuration: blueprints, stylesheet, typesetter and run log."""

    styles = StyleInjector({**DEFAULT_STYLES, **config.styles.overrides})
    transcoder = MarkupTranscoder(styles)
    fixed_layout = FixedLayoutCodec(
        select_typesetter(config.fixed_layout.backend, config.fixed_layout.page_size),
        previewer,
        transcoder=transcoder,
        page_size=config.fixed_layout.page_size,
        preview_timeout_s=config.fixed_layout.preview_timeout_s,
    )
    transforms = build_default_transforms(
        transcoder=transcoder,
        reader=ContainerReader(),
        writer=ContainerWriter(build_blueprint_store(config), config.templates.default_reference),
        fixed_layout=fixed_layout,
    )
    run_logger = RunLogger(config.runtime.log_path) if with_logging else None
    return ConversionRouter(transforms, run_logger=run_logger)


__all__ = [
    "APIConfig",
    "AppConfig",
    "CONFIG_FILE",
    "FixedLayoutConfig",
    "RuntimeConfig",
    "StyleConfig",
    "TemplateConfig",
    "build_blueprint_store",
    "build_router",
    "dump_config",
    "load_config",
]
