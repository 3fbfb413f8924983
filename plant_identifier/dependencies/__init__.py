"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_workflow_controller,
    get_gemini_client,
    get_plant_parser,
    get_workflow_registry,
)

__all__ = [
    "build_workflow_controller",
    "get_gemini_client",
    "get_plant_parser",
    "get_workflow_registry",
]
