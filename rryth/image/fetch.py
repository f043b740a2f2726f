"""Source-image download for image-to-image requests.

Processing flow:
    1. `data:` URLs are decoded locally; other URLs are fetched with `httpx`.
    2. Declared size (`content-length`) and MIME type are validated.
    3. Pillow reads the pixel dimensions.
    4. The payload is re-encoded as a `data:` URL for the backend.

Size validation:
    - Remote payloads are streamed; a `content-length` over `max_bytes` is
      rejected up front and reading stops once more than `max_bytes` arrived.
    - Decoded `data:` payloads are checked after decoding.

Error handling strategy:
    Every failure is raised as `NetworkError` with a locale key
    (`file-too-large`, `unsupported-file-type`, `download-error`).
"""

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass

import httpx
from PIL import Image, UnidentifiedImageError

from rryth.core.errors import NetworkError


logger = logging.getLogger(__name__)

ALLOWED_TYPES = ("image/jpeg", "image/png")
DEFAULT_MAX_BYTES = 10 * 1024 * 1024

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?),(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImageData:
    buffer: bytes
    data_url: str
    width: int
    height: int


def image_size(buffer: bytes) -> tuple[int, int]:
    """Return `(width, height)` of an encoded image."""
    try:
        with Image.open(io.BytesIO(buffer)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise NetworkError(locale_key="download-error") from exc


def _to_image_data(buffer: bytes, mime: str, max_bytes: int) -> ImageData:
    if mime not in ALLOWED_TYPES:
        raise NetworkError(locale_key="unsupported-file-type")
    if len(buffer) > max_bytes:
        raise NetworkError(locale_key="file-too-large")
    width, height = image_size(buffer)
    encoded = base64.b64encode(buffer).decode("ascii")
    return ImageData(buffer, f"data:{mime};base64,{encoded}", width, height)


def decode_data_url(url: str, max_bytes: int = DEFAULT_MAX_BYTES) -> ImageData:
    match = _DATA_URL.match(url)
    if not match or ";base64" not in (match.group("params") or ""):
        raise NetworkError(locale_key="download-error")
    try:
        buffer = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise NetworkError(locale_key="download-error") from exc
    return _to_image_data(buffer, (match.group("mime") or "").lower(), max_bytes)


class ImageFetcher:
    """Download collaborator used by the orchestrator for `<image>` references."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_bytes: int = DEFAULT_MAX_BYTES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._transport = transport

    async def fetch(self, url: str) -> ImageData:
        """Download and validate one image.

        Raises:
            NetworkError: On transport failure, non-2xx status, oversized or
                unsupported payloads, or undecodable image data.
        """
        if url.startswith("data:"):
            return decode_data_url(url, self.max_bytes)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()

                    declared = response.headers.get("content-length")
                    if declared and declared.isdigit() and int(declared) > self.max_bytes:
                        raise NetworkError(locale_key="file-too-large")

                    mime = response.headers.get("content-type", "").split(";")[0].strip().lower()
                    if mime not in ALLOWED_TYPES:
                        raise NetworkError(locale_key="unsupported-file-type")

                    buffer = bytearray()
                    async for chunk in response.aiter_bytes():
                        buffer.extend(chunk)
                        if len(buffer) > self.max_bytes:
                            raise NetworkError(locale_key="file-too-large")
        except httpx.HTTPError as exc:
            logger.warning("Image download failed for %s: %s", url, exc)
            raise NetworkError(locale_key="download-error") from exc

        return _to_image_data(bytes(buffer), mime, self.max_bytes)
