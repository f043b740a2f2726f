"""Backend HTTP client for Stable Diffusion style generation endpoints.

Processing flow:
    1. Serialize the `GenerationRequest` to JSON.
    2. POST once to the configured endpoint with configured headers and timeout.
    3. Return the `images` list (base64 strings) unchanged on success.

Retry behavior:
    None. One attempt per user command; users retry by re-issuing the command.

Error handling strategy:
    The client itself classifies failures into `rryth.core.errors` types, so
    callers never inspect `httpx` objects:
        - error body with `message`      -> `BackendMessageError` (verbatim)
        - HTTP 402                       -> `UnauthorizedError`
        - any other non-2xx status       -> `BackendStatusError(status)`
        - connect/read/write/pool timeout -> `RequestTimeoutError`
        - other transport failure        -> `TransportError(<exception name>)`
        - anything else                  -> `UnknownError`

Cancellation:
    A timeout aborts the wait only; the backend may keep processing.

Security considerations:
    Backend error bodies are logged and may be shown to users verbatim.
"""

import logging
from typing import Any, Mapping, Optional

import httpx

from rryth.core.errors import (
    BackendMessageError,
    BackendStatusError,
    RequestTimeoutError,
    TransportError,
    UnauthorizedError,
    UnknownError,
)
from rryth.image.request_builder import GenerationRequest


logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> Optional[str]:
    """Return the `message` field of a JSON error body, if there is one."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
        return data["message"]
    return None


def classify_response(response: httpx.Response) -> Exception:
    """Map a non-2xx backend response to a typed generation error."""
    message = _error_message(response)
    if message is not None:
        logger.error("Backend error body (%s): %s", response.status_code, response.text)
        return BackendMessageError(message)
    if response.status_code == 402:
        return UnauthorizedError()
    return BackendStatusError(response.status_code)


def classify_transport_error(err: httpx.RequestError) -> Exception:
    if isinstance(err, httpx.TimeoutException):
        return RequestTimeoutError()
    return TransportError(type(err).__name__)


class GenerationClient:
    """One-shot POST client for the generation endpoint."""

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.headers = dict(headers or {})
        self.timeout = timeout
        self._transport = transport

    async def generate(self, request: GenerationRequest) -> list[str]:
        """Run one generation request.

        Returns:
            Backend `images` list, unmodified.

        Raises:
            GenerationError: Classified failure (see module docstring).
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                transport=self._transport,
            ) as client:
                response = await client.post(self.endpoint, json=request.to_payload())
        except httpx.RequestError as err:
            logger.warning("Generation request failed: %r", err)
            raise classify_transport_error(err) from err
        except Exception as err:
            logger.exception("Unexpected failure while calling the generation backend")
            raise UnknownError() from err

        if not response.is_success:
            raise classify_response(response)

        try:
            data: Any = response.json()
            images = data["images"]
        except (ValueError, KeyError, TypeError) as err:
            logger.error("Malformed backend response: %.200s", response.text)
            raise UnknownError() from err

        if not isinstance(images, list):
            logger.error("Backend `images` is %s, expected list", type(images).__name__)
            raise UnknownError()
        return images
