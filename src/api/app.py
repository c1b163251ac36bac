from __future__ import annotations

from fastapi import FastAPI

from document_converter.config import AppConfig, build_router
from document_converter.settings import load_effective_config

from . import __version__
from .routers import convert, health

API_TITLE = "Local Document Converter"
API_VERSION = __version__


def create_app(config: AppConfig | None = None) -> FastAPI:
    config = config or load_effective_config()
    if not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title=API_TITLE, version=API_VERSION)
    app.state.config = config
    app.state.router = build_router(config)

    app.include_router(health.router)
    app.include_router(convert.router)
    return app


__all__ = ["API_TITLE", "API_VERSION", "create_app"]
