"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from plant_identifier.clients import GeminiClient
from plant_identifier.core.config import get_settings
from plant_identifier.services import (
    PlantInfoParser,
    WorkflowController,
    WorkflowRegistry,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide Gemini client instance."""
    settings = _settings()
    return GeminiClient(settings.gemini)


@lru_cache()
def get_plant_parser() -> PlantInfoParser:
    """Provide the stateless plant description parser."""
    return PlantInfoParser()


def build_workflow_controller() -> WorkflowController:
    """Build a controller wired to the shared Gemini client and parser."""
    settings = _settings()
    return WorkflowController(
        get_gemini_client(),
        get_plant_parser(),
        max_upload_bytes=settings.max_upload_bytes,
        default_mime_type=settings.gemini.default_mime_type,
    )


@lru_cache()
def get_workflow_registry() -> WorkflowRegistry:
    """Provide the process-local registry of per-session controllers."""
    return WorkflowRegistry(
        build_workflow_controller, max_sessions=_settings().max_sessions
    )


__all__ = [
    "build_workflow_controller",
    "get_gemini_client",
    "get_plant_parser",
    "get_workflow_registry",
]
