"""Client wrapper for the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from plant_identifier.core.config import GeminiSettings

logger = logging.getLogger(__name__)

_MAX_LOGGED_BODY = 2000


class GeminiError(RuntimeError):
    """Base class for failures talking to Gemini."""


class GeminiServerError(GeminiError):
    """Raised when Gemini answers with a non-success HTTP status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        message = f"Gemini returned HTTP {status_code}"
        super().__init__(f"{message}: {detail}" if detail else message)
        self.status_code = status_code
        self.detail = detail


class GeminiMalformedResponseError(GeminiError):
    """Raised when a successful response lacks the generated-content wrapper."""


class GeminiTransportError(GeminiError):
    """Raised when the request never produced an HTTP response."""


class GeminiClient:
    """Send an image plus instructions to Gemini and return the generated text."""

    def __init__(
        self,
        settings: GeminiSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return (
            f"{self._settings.api_base_url}/models/"
            f"{self._settings.model_name}:generateContent"
        )

    async def generate_description(
        self,
        *,
        prompt: str,
        image_base64: str,
        mime_type: str,
    ) -> str:
        """Issue exactly one request and return the first candidate's text."""
        body = build_request_body(
            prompt=prompt, image_base64=image_base64, mime_type=mime_type
        )
        logger.info(
            "Requesting plant description from %s (%d base64 chars, %s).",
            self._settings.model_name,
            len(image_base64),
            mime_type,
        )

        if self._http_client is not None:
            response = await self._post(self._http_client, body)
        else:
            timeout = httpx.Timeout(self._settings.request_timeout_seconds)
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await self._post(client, body)

        if not response.is_success:
            detail = response.text[:_MAX_LOGGED_BODY]
            logger.error(
                "Gemini request failed with HTTP %s: %s", response.status_code, detail
            )
            raise GeminiServerError(response.status_code, detail)

        try:
            payload = response.json()
        except ValueError as exc:
            raise GeminiMalformedResponseError(
                "Gemini response body is not valid JSON."
            ) from exc
        return extract_text(payload)

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        try:
            return await client.post(
                self.endpoint,
                params={"key": self._settings.api_key},
                json=body,
            )
        except httpx.DecodingError as exc:
            raise GeminiMalformedResponseError(
                "Gemini response body could not be decoded."
            ) from exc
        except httpx.RequestError as exc:
            raise GeminiTransportError(
                f"Could not reach Gemini: {exc.__class__.__name__}"
            ) from exc


def build_request_body(
    *, prompt: str, image_base64: str, mime_type: str
) -> dict[str, Any]:
    """Construct a single content unit: instruction text, then inline image."""
    return {
        "contents": [
            {
                "parts": [
                    {"text": prompt},
                    {
                        "inlineData": {
                            "mimeType": mime_type,
                            "data": image_base64,
                        }
                    },
                ]
            }
        ]
    }


def extract_text(payload: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GeminiMalformedResponseError(
            "Gemini response is missing candidates[0].content.parts[0].text."
        ) from exc
    if not isinstance(text, str):
        raise GeminiMalformedResponseError(
            f"Gemini candidate text has unexpected type {type(text).__name__}."
        )
    return text


__all__ = [
    "GeminiClient",
    "GeminiError",
    "GeminiMalformedResponseError",
    "GeminiServerError",
    "GeminiTransportError",
    "build_request_body",
    "extract_text",
]
