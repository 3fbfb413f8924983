"""
Orchestrates one plant-analysis cycle at a time.

A cycle validates the selected image, base64-encodes it, asks Gemini for a
description and parses the prose into a ``PlantRecord``. Selecting a new file
while a cycle is in flight starts a fresh cycle straight away; the older one
keeps running until its network call returns, but none of its transitions are
applied because they carry a stale cycle token.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections import OrderedDict
from dataclasses import dataclass
from textwrap import dedent
from typing import Callable, Optional

from plant_identifier.clients.files import ImageFile
from plant_identifier.clients.gemini import (
    GeminiClient,
    GeminiMalformedResponseError,
    GeminiServerError,
    GeminiTransportError,
)
from plant_identifier.core.config import (
    DEFAULT_MAX_SESSIONS,
    DEFAULT_MAX_UPLOAD_BYTES,
)
from plant_identifier.schemas import (
    ErrorKind,
    PlantRecord,
    WorkflowFailure,
    WorkflowPhase,
    WorkflowState,
)
from plant_identifier.services.plant_parser import (
    InvalidArgumentError,
    PlantInfoParser,
)

logger = logging.getLogger(__name__)

PLANT_DESCRIPTION_PROMPT = dedent(
    """\
    이 사진 속 식물이나 꽃이 무엇인지 한국어로 설명해주세요.
    반드시 아래 형식을 그대로 지켜서 답해주세요.

    이름: (식물의 일반적인 이름)
    학명: (학명)
    물주기: (물을 주는 주기)
    온도: (적정 온도)
    습도: (적정 습도)
    특징:
    - (특징 1)
    - (특징 2)
    주의사항:
    - (주의사항 1)
    - (주의사항 2)
    """
)

_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.MISSING_INPUT: "이미지를 선택해주세요.",
    ErrorKind.FILE_TOO_LARGE: "이미지 파일이 너무 큽니다.",
    ErrorKind.READ_ERROR: "이미지 파일을 읽을 수 없습니다.",
    ErrorKind.SERVER_ERROR: "분석 서버에서 오류가 발생했습니다.",
    ErrorKind.MALFORMED_RESPONSE: "분석 결과를 해석할 수 없습니다. 다시 시도해주세요.",
    ErrorKind.NETWORK_ERROR: "분석 서버에 연결할 수 없습니다.",
    ErrorKind.INVALID_ARGUMENT: "분석 결과 형식이 올바르지 않습니다.",
}

StateListener = Callable[[WorkflowState], None]


class PlantAnalysisError(RuntimeError):
    """Base class for failures that end a cycle in the failed phase."""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.user_message = user_message or _ERROR_MESSAGES[self.kind]
        self.status = status

    def to_failure(self) -> WorkflowFailure:
        return WorkflowFailure(
            kind=self.kind, message=self.user_message, status=self.status
        )


class MissingInputError(PlantAnalysisError):
    kind = ErrorKind.MISSING_INPUT


class FileTooLargeError(PlantAnalysisError):
    kind = ErrorKind.FILE_TOO_LARGE


class ImageReadError(PlantAnalysisError):
    kind = ErrorKind.READ_ERROR


class ServerError(PlantAnalysisError):
    kind = ErrorKind.SERVER_ERROR


class MalformedResponseError(PlantAnalysisError):
    kind = ErrorKind.MALFORMED_RESPONSE


class NetworkError(PlantAnalysisError):
    kind = ErrorKind.NETWORK_ERROR


class InvalidTextError(PlantAnalysisError):
    kind = ErrorKind.INVALID_ARGUMENT


@dataclass(slots=True, frozen=True)
class AnalysisRequest:
    """The validated selection, alive only until encoding finishes."""

    file: ImageFile
    size: Optional[int]
    mime_type: str


class WorkflowController:
    """Drive the single active analysis cycle and expose its state."""

    def __init__(
        self,
        gemini_client: GeminiClient,
        parser: PlantInfoParser | None = None,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        default_mime_type: str = "image/jpeg",
        prompt: str = PLANT_DESCRIPTION_PROMPT,
    ) -> None:
        self._gemini = gemini_client
        self._parser = parser or PlantInfoParser()
        self._max_upload_bytes = max_upload_bytes
        self._default_mime_type = default_mime_type
        self._prompt = prompt
        self._cycle = 0
        self._state = WorkflowState()
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[WorkflowState]] = set()

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for every applied state; returns an unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def select_file(self, file: ImageFile | None) -> asyncio.Task[WorkflowState]:
        """Start a new cycle for ``file``, superseding any cycle in flight.

        The returned task resolves to the terminal state computed for this
        cycle. That state is only published if no newer cycle has started.
        Must be called from within a running event loop.
        """
        if self._state.phase.is_in_flight:
            logger.info(
                "Cycle %d superseded while %s.", self._cycle, self._state.phase.value
            )
        self._cycle += 1
        cycle = self._cycle

        # The task exists before any listener sees the new cycle.
        task = asyncio.get_running_loop().create_task(
            self._run_cycle(cycle, file), name=f"plant-analysis-{cycle}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._publish(WorkflowState(phase=WorkflowPhase.VALIDATING, cycle=cycle))
        return task

    async def analyze(self, file: ImageFile | None) -> WorkflowState:
        """Run a cycle for ``file`` and wait for its terminal state."""
        return await self.select_file(file)

    async def _run_cycle(self, cycle: int, file: ImageFile | None) -> WorkflowState:
        try:
            request = self._validate(file)
            self._transition(cycle, WorkflowPhase.ENCODING)
            image_base64 = await self._encode(request)

            self._transition(cycle, WorkflowPhase.AWAITING_RESPONSE)
            text = await self._request_description(image_base64, request.mime_type)

            self._transition(cycle, WorkflowPhase.PARSING)
            record = self._parse(text)
        except PlantAnalysisError as exc:
            logger.warning("Cycle %d failed (%s): %s", cycle, exc.kind.value, exc)
            return self._transition(
                cycle, WorkflowPhase.FAILED, error=exc.to_failure()
            )

        logger.info("Cycle %d identified %r.", cycle, record.name)
        return self._transition(cycle, WorkflowPhase.SUCCEEDED, record=record)

    def _validate(self, file: ImageFile | None) -> AnalysisRequest:
        if file is None:
            raise MissingInputError("No image file was selected.")

        size = file.size
        if size is not None:
            self._check_size(size, file.filename)
        return AnalysisRequest(
            file=file,
            size=size,
            mime_type=self._resolve_mime_type(file.content_type),
        )

    def _check_size(self, size: int, filename: Optional[str]) -> None:
        if size <= self._max_upload_bytes:
            return
        limit_mb = self._max_upload_bytes / (1024 * 1024)
        raise FileTooLargeError(
            f"{filename or 'Image'} is {size} bytes; limit is {self._max_upload_bytes}.",
            user_message=f"이미지 파일은 {limit_mb:g}MB 이하만 업로드할 수 있습니다.",
        )

    def _resolve_mime_type(self, content_type: Optional[str]) -> str:
        if content_type and content_type.startswith("image/"):
            return content_type
        return self._default_mime_type

    async def _encode(self, request: AnalysisRequest) -> str:
        try:
            raw = await request.file.read()
        except OSError as exc:
            raise ImageReadError(
                f"Could not read {request.file.filename or 'image'}: {exc}"
            ) from exc

        if request.size is None:
            self._check_size(len(raw), request.file.filename)
        return base64.b64encode(raw).decode("ascii")

    async def _request_description(self, image_base64: str, mime_type: str) -> str:
        try:
            return await self._gemini.generate_description(
                prompt=self._prompt,
                image_base64=image_base64,
                mime_type=mime_type,
            )
        except GeminiServerError as exc:
            raise ServerError(
                str(exc),
                user_message=(
                    f"{_ERROR_MESSAGES[ErrorKind.SERVER_ERROR]} "
                    f"(HTTP {exc.status_code})"
                ),
                status=exc.status_code,
            ) from exc
        except GeminiMalformedResponseError as exc:
            raise MalformedResponseError(str(exc)) from exc
        except GeminiTransportError as exc:
            raise NetworkError(str(exc)) from exc

    def _parse(self, text: str) -> PlantRecord:
        try:
            return self._parser.parse(text)
        except InvalidArgumentError as exc:
            raise InvalidTextError(str(exc)) from exc

    def _transition(
        self,
        cycle: int,
        phase: WorkflowPhase,
        *,
        record: PlantRecord | None = None,
        error: WorkflowFailure | None = None,
    ) -> WorkflowState:
        state = WorkflowState(phase=phase, cycle=cycle, record=record, error=error)
        if cycle != self._cycle:
            logger.debug(
                "Discarding %s from superseded cycle %d (current cycle %d).",
                phase.value,
                cycle,
                self._cycle,
            )
            return state
        self._publish(state)
        return state

    def _publish(self, state: WorkflowState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)


class WorkflowRegistry:
    """Keep one controller per user session, evicting idle sessions past a cap.

    Sessions are ordered by last use. When the cap is exceeded, the least
    recently used sessions that are not mid-cycle are dropped; sessions with a
    cycle in flight are never evicted, so the registry can temporarily hold
    more than ``max_sessions`` controllers.
    """

    def __init__(
        self,
        factory: Callable[[], WorkflowController],
        *,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1.")
        self._factory = factory
        self._max_sessions = max_sessions
        self._controllers: OrderedDict[str, WorkflowController] = OrderedDict()

    def __len__(self) -> int:
        return len(self._controllers)

    def get(self, session_id: str) -> WorkflowController:
        controller = self._controllers.get(session_id)
        if controller is None:
            controller = self._factory()
            self._controllers[session_id] = controller
            self._evict(keep=session_id)
        else:
            self._controllers.move_to_end(session_id)
        return controller

    def peek(self, session_id: str) -> WorkflowController | None:
        return self._controllers.get(session_id)

    def _evict(self, *, keep: str) -> None:
        excess = len(self._controllers) - self._max_sessions
        if excess <= 0:
            return
        for session_id in list(self._controllers):
            if excess <= 0:
                break
            if session_id == keep:
                continue
            if self._controllers[session_id].state.phase.is_in_flight:
                continue
            del self._controllers[session_id]
            excess -= 1
            logger.debug("Evicted idle session %s.", session_id)


__all__ = [
    "AnalysisRequest",
    "FileTooLargeError",
    "ImageReadError",
    "InvalidTextError",
    "MalformedResponseError",
    "MissingInputError",
    "NetworkError",
    "PLANT_DESCRIPTION_PROMPT",
    "PlantAnalysisError",
    "ServerError",
    "WorkflowController",
    "WorkflowRegistry",
]
