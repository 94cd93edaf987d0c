import base64
import logging
import mimetypes
from typing import Callable, Optional

from urllib3 import encode_multipart_formdata

from config_client import (
    UPLOAD_IMAGE_ENDPOINT,
    ConfigClient,
    MalformedResponse,
    NetworkFailure,
    Unauthorized,
)
from settings import UPLOAD_TIMEOUT

logger = logging.getLogger(__name__)

IMAGE_FIELD = "image"
CHUNK_SIZE = 64 * 1024

ProgressCallback = Callable[[int], None]


class UploadFailed(Exception):
    """Upload did not produce a durable URL. Safe to show and discard."""


def guess_content_type(filename: str, content_type: Optional[str] = None) -> str:
    return content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"


def preview_data_uri(filename: str, data: bytes, content_type: Optional[str] = None) -> str:
    """Local-only preview of an image; never a value to persist."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{guess_content_type(filename, content_type)};base64,{encoded}"


def is_local_image(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:")


class ProgressBody:
    """File-like request body that reports the percentage of bytes sent."""

    def __init__(self, body: bytes, on_progress: Optional[ProgressCallback] = None, chunk_size: int = CHUNK_SIZE):
        self._body = body
        self._offset = 0
        self._on_progress = on_progress
        self._reported = -1
        self.chunk_size = chunk_size

    def __len__(self):
        return len(self._body)

    def __iter__(self):
        while True:
            chunk = self.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    @property
    def percent(self) -> int:
        if not self._body:
            return 100
        return int(self._offset * 100 / len(self._body))

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._body) - self._offset
        chunk = self._body[self._offset:self._offset + size]
        self._offset += len(chunk)
        self._report()
        return chunk

    def _report(self):
        percent = self.percent
        if percent <= self._reported:
            return
        self._reported = percent
        logger.debug("Upload progress: %d%%", percent)
        if self._on_progress is not None:
            self._on_progress(percent)


class ImageUploadClient:
    def __init__(self, client: ConfigClient, timeout: float = UPLOAD_TIMEOUT):
        self.client = client
        self.timeout = timeout

    def upload(
        self,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Send one image to the upload endpoint and return its public URL."""
        if not data:
            raise UploadFailed("No image selected")
        headers = self.client.auth_headers()
        body, multipart_type = encode_multipart_formdata(
            {IMAGE_FIELD: (filename, data, guess_content_type(filename, content_type))}
        )
        headers["Content-Type"] = multipart_type
        stream = ProgressBody(body, on_progress)

        try:
            response = self.client.send(
                "POST", UPLOAD_IMAGE_ENDPOINT, data=stream, headers=headers, timeout=self.timeout
            )
        except NetworkFailure as e:
            raise UploadFailed("Network error during upload") from e
        self.client.check_unauthorized(response)

        if not 200 <= response.status_code < 300:
            message = f"Upload failed with status {response.status_code}"
            try:
                message = self.client.parse_json(response).get("message") or message
            except MalformedResponse:
                pass
            logger.warning("Upload of %s failed: %s", filename, message)
            raise UploadFailed(message)

        try:
            result = self.client.parse_json(response)
        except MalformedResponse as e:
            logger.warning("Upload of %s returned an unreadable body", filename)
            raise UploadFailed("Failed to parse response") from e
        payload = result.get("data")
        url = payload.get("url") if isinstance(payload, dict) else None
        if not result.get("success") or not url:
            raise UploadFailed(result.get("message") or "Unknown error")

        logger.info("Uploaded %s -> %s", filename, url)
        return url

    def upload_into(
        self,
        assign: Callable[[str], None],
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Upload into a bound field: preview first, then the URL, or "" on failure."""
        if not data:
            raise UploadFailed("No image selected")
        assign(preview_data_uri(filename, data, content_type))
        try:
            url = self.upload(filename, data, content_type, on_progress)
        except (UploadFailed, Unauthorized):
            assign("")
            raise
        assign(url)
        return url
