try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json

import httpx
import pytest

from plant_identifier.clients import InMemoryImageFile
from plant_identifier.clients.gemini import (
    GeminiClient,
    GeminiMalformedResponseError,
    GeminiServerError,
    GeminiTransportError,
    extract_text,
)
from plant_identifier.core.config import GeminiSettings
from plant_identifier.schemas import ErrorKind, WorkflowPhase
from plant_identifier.services import WorkflowController


def _settings() -> GeminiSettings:
    return GeminiSettings(
        GEMINI_API_KEY="secret-key",
        GEMINI_MODEL_NAME="gemini-test",
        GEMINI_API_BASE_URL="https://gemini.test/v1beta/",
    )


def _client(handler) -> GeminiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClient(_settings(), http_client=http_client)


def _success_payload(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


@pytest.mark.asyncio
async def test_generate_description_sends_prompt_then_image():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_success_payload("이름: 몬스테라"))

    text = await _client(handler).generate_description(
        prompt="describe", image_base64="aGVsbG8=", mime_type="image/jpeg"
    )

    assert text == "이름: 몬스테라"
    assert len(captured) == 1
    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/v1beta/models/gemini-test:generateContent"
    assert request.url.params["key"] == "secret-key"
    assert json.loads(request.content) == {
        "contents": [
            {
                "parts": [
                    {"text": "describe"},
                    {"inlineData": {"mimeType": "image/jpeg", "data": "aGVsbG8="}},
                ]
            }
        ]
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 403, 500, 503])
async def test_non_success_status_raises_server_error(status_code):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text="quota exceeded")

    with pytest.raises(GeminiServerError) as exc_info:
        await _client(handler).generate_description(
            prompt="p", image_base64="", mime_type="image/jpeg"
        )

    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == "quota exceeded"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": []}}]}),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
async def test_success_without_wrapper_is_malformed(response):
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(GeminiMalformedResponseError):
        await _client(handler).generate_description(
            prompt="p", image_base64="", mime_type="image/jpeg"
        )


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GeminiTransportError):
        await _client(handler).generate_description(
            prompt="p", image_base64="", mime_type="image/jpeg"
        )


@pytest.mark.asyncio
async def test_undecodable_body_is_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"content-encoding": "gzip"}, content=b"not gzip"
        )

    with pytest.raises(GeminiMalformedResponseError):
        await _client(handler).generate_description(
            prompt="p", image_base64="", mime_type="image/jpeg"
        )


@pytest.mark.asyncio
async def test_redirect_loop_is_a_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("redirect loop", request=request)

    with pytest.raises(GeminiTransportError):
        await _client(handler).generate_description(
            prompt="p", image_base64="", mime_type="image/jpeg"
        )


@pytest.mark.asyncio
async def test_undecodable_body_ends_cycle_as_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"content-encoding": "gzip"}, content=b"not gzip"
        )

    controller = WorkflowController(_client(handler))

    state = await controller.analyze(
        InMemoryImageFile(b"jpeg", filename="plant.jpg", content_type="image/jpeg")
    )

    assert state.phase is WorkflowPhase.FAILED
    assert state.error.kind is ErrorKind.MALFORMED_RESPONSE
    assert controller.state == state


def test_extract_text_rejects_non_string_text():
    with pytest.raises(GeminiMalformedResponseError):
        extract_text({"candidates": [{"content": {"parts": [{"text": 42}]}}]})


def test_extract_text_rejects_non_mapping_payload():
    with pytest.raises(GeminiMalformedResponseError):
        extract_text(["candidates"])
