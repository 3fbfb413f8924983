"""
Pydantic models describing parsed plant records and workflow progress.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

NOT_FOUND = "information not found"
DEFAULT_DIFFICULTY = "beginner"


class PlantRecord(BaseModel):
    """Structured description of a plant extracted from generated prose."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(NOT_FOUND, description="Common name of the plant.")
    scientific_name: str = Field(NOT_FOUND, description="Binomial name.")
    difficulty: str = Field(
        DEFAULT_DIFFICULTY, description="Care difficulty for a home grower."
    )
    water_frequency: str = Field(NOT_FOUND, description="How often to water.")
    temperature: str = Field(NOT_FOUND, description="Suitable temperature range.")
    humidity: str = Field(NOT_FOUND, description="Suitable humidity.")
    features: tuple[str, ...] = Field(
        default_factory=tuple, description="Notable characteristics, in order."
    )
    precautions: tuple[str, ...] = Field(
        default_factory=tuple, description="Care warnings, in order."
    )


class WorkflowPhase(str, Enum):
    """Lifecycle phases of a single analysis cycle."""

    IDLE = "idle"
    VALIDATING = "validating"
    ENCODING = "encoding"
    AWAITING_RESPONSE = "awaiting_response"
    PARSING = "parsing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowPhase.SUCCEEDED, WorkflowPhase.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self not in (
            WorkflowPhase.IDLE,
            WorkflowPhase.SUCCEEDED,
            WorkflowPhase.FAILED,
        )


class ErrorKind(str, Enum):
    """Reasons a cycle can end in the failed phase."""

    MISSING_INPUT = "missing_input"
    FILE_TOO_LARGE = "file_too_large"
    READ_ERROR = "read_error"
    SERVER_ERROR = "server_error"
    MALFORMED_RESPONSE = "malformed_response"
    NETWORK_ERROR = "network_error"
    INVALID_ARGUMENT = "invalid_argument"


class WorkflowFailure(BaseModel):
    """Failure details surfaced to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str = Field(..., description="Human-readable explanation.")
    status: Optional[int] = Field(
        None, description="HTTP status returned by the generation service."
    )


class WorkflowState(BaseModel):
    """Snapshot of a controller's current cycle."""

    model_config = ConfigDict(frozen=True)

    phase: WorkflowPhase = WorkflowPhase.IDLE
    cycle: int = Field(0, ge=0, description="Monotonic identifier of the cycle.")
    record: Optional[PlantRecord] = None
    error: Optional[WorkflowFailure] = None
