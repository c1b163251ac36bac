"""FastAPI dependency providers for application services."""

from __future__ import annotations

from fastapi import HTTPException, Request

from document_converter.config import AppConfig
from document_converter.router import ConversionRouter


def get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(status_code=503, detail="CONFIG_UNAVAILABLE")
    return config


def get_router(request: Request) -> ConversionRouter:
    router = getattr(request.app.state, "router", None)
    if router is None:
        raise HTTPException(status_code=503, detail="ROUTER_UNAVAILABLE")
    return router


__all__ = ["get_config", "get_router"]
