"""Public schema exports."""

from .plant import (
    DEFAULT_DIFFICULTY,
    NOT_FOUND,
    ErrorKind,
    PlantRecord,
    WorkflowFailure,
    WorkflowPhase,
    WorkflowState,
)

__all__ = [
    "DEFAULT_DIFFICULTY",
    "NOT_FOUND",
    "ErrorKind",
    "PlantRecord",
    "WorkflowFailure",
    "WorkflowPhase",
    "WorkflowState",
]
