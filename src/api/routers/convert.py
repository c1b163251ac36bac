from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from api.dependencies import get_config, get_router
from api.schemas import HeadingModel, OutlineResponse
from api.utils import run_sync
from document_converter.config import AppConfig
from document_converter.detection import EXTENSION_MAP, detect_format_from_content
from document_converter.errors import ConversionError
from document_converter.models import ConversionOptions, Format, Payload
from document_converter.router import ConversionRouter
from document_converter.utils import slugify

router = APIRouter(tags=["conversion"])


@router.post("/convert", summary="Convert a single document")
async def convert_document(
    file: UploadFile = File(...),
    target: str = Form(...),
    source: str | None = Form(None),
    include_styles: bool = Form(False),
    preserve_images: bool = Form(False),
    preserve_formatting: bool = Form(False),
    template: str | None = Form(None),
    title: str | None = Form(None),
    conversions: ConversionRouter = Depends(get_router),
    config: AppConfig = Depends(get_config),
) -> Response:
    content = await file.read()
    _enforce_size_limit(content, config)
    target_format = _parse_format(target)
    source_format = _resolve_source(file.filename, source, content)
    payload = _decode(content, source_format)

    options = ConversionOptions(
        preserve_formatting=preserve_formatting,
        include_styles=include_styles,
        preserve_images=preserve_images,
        template_reference=template or None,
        title=title or None,
    )
    result = await run_sync(conversions.convert, payload, source_format, target_format, options)
    if result.error is not None:
        raise HTTPException(status_code=400, detail=result.error.code)

    body = result.payload.encode("utf-8") if isinstance(result.payload, str) else result.payload
    stem = slugify(Path(file.filename or "document").stem)
    return Response(
        content=body,
        media_type=target_format.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{stem}{target_format.extension}"',
            "X-Conversion-Warnings": ",".join(result.warning_codes),
            "X-Run-Id": result.run_id or "",
        },
    )


@router.post("/outline", summary="Structural outline of a document", response_model=OutlineResponse)
async def outline_document(
    file: UploadFile = File(...),
    source: str | None = Form(None),
    conversions: ConversionRouter = Depends(get_router),
    config: AppConfig = Depends(get_config),
) -> OutlineResponse:
    content = await file.read()
    _enforce_size_limit(content, config)
    source_format = _resolve_source(file.filename, source, content)
    payload = _decode(content, source_format)
    try:
        outline = await run_sync(conversions.structural_outline, payload, source_format)
    except ConversionError as exc:
        raise HTTPException(status_code=400, detail=exc.code) from exc
    return OutlineResponse(
        source=source_format.value,
        headings=[HeadingModel(level=heading.level, text=heading.text) for heading in outline.headings],
        paragraph_count=outline.paragraph_count,
        sentence_count=outline.sentence_count,
        word_count=outline.word_count,
    )


def _parse_format(value: str) -> Format:
    try:
        return Format.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="UNKNOWN_FORMAT") from exc


def _resolve_source(filename: str | None, declared: str | None, content: bytes) -> Format:
    if declared:
        return _parse_format(declared)
    by_extension = EXTENSION_MAP.get(Path(filename or "").suffix.lower())
    if by_extension is not None:
        return by_extension
    return detect_format_from_content(content).format


def _decode(content: bytes, fmt: Format) -> Payload:
    if fmt.is_binary:
        return content
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="INVALID_ENCODING") from exc


def _enforce_size_limit(payload: bytes, config: AppConfig) -> None:
    if len(payload) > config.runtime.max_payload_bytes:
        raise HTTPException(status_code=413, detail="SIZE_LIMIT")


__all__ = [
    "router",
]
