"""Service layer exports."""

from .plant_parser import InvalidArgumentError, PlantInfoParser, parse_plant_info
from .workflow import (
    PLANT_DESCRIPTION_PROMPT,
    AnalysisRequest,
    PlantAnalysisError,
    WorkflowController,
    WorkflowRegistry,
)

__all__ = [
    "AnalysisRequest",
    "InvalidArgumentError",
    "PLANT_DESCRIPTION_PROMPT",
    "PlantAnalysisError",
    "PlantInfoParser",
    "WorkflowController",
    "WorkflowRegistry",
    "parse_plant_info",
]
