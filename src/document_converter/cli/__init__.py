from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import AppConfig, build_router, dump_config
from ..detection import DetectionError, detect_format
from ..errors import ConversionError
from ..models import ConversionOptions, Format
from ..settings import Settings, get_settings, load_effective_config
from ..utils import parse_key_values, slugify

console = Console()

app = typer.Typer(help="Convert documents among txt, md, html, docx and pdf")


def _load_config(path: Path | None) -> AppConfig:
    settings = get_settings()
    if path is not None:
        settings = Settings(config_path=path, enable_local_api=settings.enable_local_api)
    return load_effective_config(settings)


def _parse_format(value: str) -> Format:
    try:
        return Format.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _resolve_source(file: Path, declared: str | None) -> Format:
    if declared:
        return _parse_format(declared)
    try:
        return detect_format(file).format
    except DetectionError as exc:
        console.print(f"[red]Detection failed[/red]: {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _read_payload(file: Path, fmt: Format, config: AppConfig) -> str | bytes:
    if not file.is_file():
        console.print(f"[red]Source file does not exist[/red]: {file}")
        raise typer.Exit(1)
    if file.stat().st_size > config.runtime.max_payload_bytes:
        console.print(f"[red]SIZE_LIMIT[/red]: {file.name} exceeds {config.runtime.max_payload_mb} MB")
        raise typer.Exit(1)
    if not fmt.is_textual:
        return file.read_bytes()
    try:
        return file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        console.print(f"[red]MALFORMED_MARKUP[/red]: {file.name} is not valid UTF-8 {fmt.value}")
        raise typer.Exit(1) from exc


@app.command()
def convert(
    file: Path,
    to: str = typer.Option(..., "--to", help="Target format: txt, md, html, docx or pdf"),
    source: str | None = typer.Option(None, "--from", help="Source format (detected when omitted)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination file"),
    styles: bool = typer.Option(False, "--styles", help="Inject the default stylesheet into HTML output"),
    preserve_images: bool = typer.Option(False, "--preserve-images", help="Inline container images as data URIs"),
    preserve_formatting: bool = typer.Option(False, "--preserve-formatting", help="Keep block breaks in text output"),
    template: str | None = typer.Option(None, "--template", help="Container blueprint reference"),
    meta: list[str] = typer.Option([], "--meta", help="Blueprint value as key=value, repeatable"),
    title: str | None = typer.Option(None, "--title", help="Document title override"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    target = _parse_format(to)
    src = _resolve_source(file, source)
    payload = _read_payload(file, src, cfg)
    try:
        metadata = parse_key_values(meta)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--meta") from exc

    destination = output or cfg.runtime.output_dir / f"{slugify(file.stem)}{target.extension}"
    options = ConversionOptions(
        preserve_formatting=preserve_formatting,
        include_styles=styles,
        preserve_images=preserve_images,
        image_base_path=file.resolve().parent,
        output_destination=destination,
        metadata=metadata,
        template_reference=template,
        title=title,
    )
    result = build_router(cfg).convert(payload, src, target, options)
    for warning in result.warnings:
        console.print(f"[yellow]Warning[/yellow]: {escape(str(warning))}")
    if result.error is not None:
        console.print(f"[red]Conversion failed[/red]: {escape(result.error.describe())}")
        raise typer.Exit(1)
    hops = " -> ".join(fmt.value for fmt in result.hops)
    console.print(f"[green]Success[/green]: {file.name} ({hops}) -> {result.destination}")


@app.command()
def outline(
    file: Path,
    source: str | None = typer.Option(None, "--from", help="Source format (detected when omitted)"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    src = _resolve_source(file, source)
    payload = _read_payload(file, src, cfg)
    try:
        result = build_router(cfg, with_logging=False).structural_outline(payload, src)
    except ConversionError as exc:
        console.print(f"[red]Outline failed[/red]: {escape(exc.describe())}")
        raise typer.Exit(1) from exc

    table = Table(title=f"Outline of {file.name}")
    table.add_column("Level", justify="right")
    table.add_column("Heading")
    for heading in result.headings:
        table.add_row(str(heading.level), f"{'  ' * (heading.level - 1)}{escape(heading.text)}")
    console.print(table)
    console.print(
        f"{result.paragraph_count} paragraphs, {result.sentence_count} sentences, {result.word_count} words"
    )


@app.command()
def formats(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    router = build_router(_load_config(config), with_logging=False)
    table = Table(title="Supported conversions")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Path")
    for src, dst, path in router.supported_pairs():
        table.add_row(src.value, dst.value, " -> ".join(fmt.value for fmt in path))
    console.print(table)


@app.command("show-config")
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    console.print_json(dump_config(_load_config(config)))


@app.command()
def serve(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    import uvicorn

    from api.app import create_app

    cfg = _load_config(config)
    try:
        application = create_app(cfg)
    except RuntimeError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
    uvicorn.run(application, host=cfg.api.host, port=cfg.api.port)


if __name__ == "__main__":
    app()
