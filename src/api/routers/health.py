from __future__ import annotations

from fastapi import APIRouter, Depends

from api import __version__
from api.dependencies import get_router
from api.schemas import FormatPair, HealthStatus
from document_converter.router import ConversionRouter

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health() -> HealthStatus:
    return HealthStatus(status="ok", version=__version__)


@router.get("/formats", summary="Supported conversions", response_model=list[FormatPair])
def formats(conversions: ConversionRouter = Depends(get_router)) -> list[FormatPair]:
    return [
        FormatPair(source=src.value, target=dst.value, path=[fmt.value for fmt in path])
        for src, dst, path in conversions.supported_pairs()
    ]


__all__ = ["router"]
