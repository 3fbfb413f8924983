"""
FastAPI application entrypoint for the plant identifier.
"""

from __future__ import annotations

from fastapi import FastAPI

from plant_identifier.api.routes import router as api_router
from plant_identifier.core.config import get_settings
from plant_identifier.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Plant Identifier",
        version="0.1.0",
        description="Identify a plant from a photograph using Gemini.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
