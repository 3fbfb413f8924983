"""
FastAPI routes for the plant identifier.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse

from plant_identifier.clients import ImageFile, InMemoryImageFile
from plant_identifier.dependencies import get_workflow_registry
from plant_identifier.schemas import ErrorKind, WorkflowPhase, WorkflowState
from plant_identifier.services import WorkflowRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


_FAILURE_STATUS: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.MISSING_INPUT: HTTPStatus.BAD_REQUEST,
    ErrorKind.FILE_TOO_LARGE: HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
    ErrorKind.READ_ERROR: HTTPStatus.BAD_REQUEST,
    ErrorKind.SERVER_ERROR: HTTPStatus.BAD_GATEWAY,
    ErrorKind.MALFORMED_RESPONSE: HTTPStatus.BAD_GATEWAY,
    ErrorKind.NETWORK_ERROR: HTTPStatus.BAD_GATEWAY,
    ErrorKind.INVALID_ARGUMENT: HTTPStatus.BAD_GATEWAY,
}


def _state_response(state: WorkflowState, status: HTTPStatus) -> JSONResponse:
    return JSONResponse(status_code=status, content=state.model_dump(mode="json"))


def _declared_too_large(file: UploadFile, limit: int) -> bool:
    # Such uploads fail validation on their declared size and are never read.
    return file.size is not None and file.size > limit


def _status_for(state: WorkflowState) -> HTTPStatus:
    if state.phase is WorkflowPhase.SUCCEEDED:
        return HTTPStatus.OK
    if state.phase is WorkflowPhase.FAILED and state.error is not None:
        return _FAILURE_STATUS[state.error.kind]
    return HTTPStatus.ACCEPTED


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/sessions/{session_id}/analyses")
async def submit_analysis(
    session_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
    file: Optional[UploadFile] = File(
        default=None, description="Photograph of the plant to identify."
    ),
    wait: bool = Query(
        default=True,
        description="When false, respond immediately and poll the session instead.",
    ),
) -> JSONResponse:
    """
    Start a new analysis cycle for the session, replacing any cycle in flight.
    """
    controller = registry.get(session_id)
    image: Optional[ImageFile] = file
    if file is not None and not _declared_too_large(file, controller.max_upload_bytes):
        # The upload is closed when this request ends; the cycle may outlive it.
        image = InMemoryImageFile(
            await file.read(),
            filename=file.filename,
            content_type=file.content_type,
        )

    task = controller.select_file(image)
    if not wait:
        return _state_response(controller.state, HTTPStatus.ACCEPTED)

    state = await task
    if state.cycle != controller.state.cycle:
        logger.info(
            "Session %s: cycle %d was superseded by cycle %d.",
            session_id,
            state.cycle,
            controller.state.cycle,
        )
        return _state_response(controller.state, HTTPStatus.CONFLICT)
    return _state_response(state, _status_for(state))


@router.get("/sessions/{session_id}")
async def get_session_state(
    session_id: str,
    registry: Annotated[WorkflowRegistry, Depends(get_workflow_registry)],
) -> JSONResponse:
    """Return the session's current phase and, when finished, its outcome."""
    controller = registry.peek(session_id)
    state = controller.state if controller is not None else WorkflowState()
    return _state_response(state, HTTPStatus.OK)
