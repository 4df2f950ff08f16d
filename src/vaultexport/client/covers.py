import logging

import requests

from .base import BaseClient
from ..config import MAX_DOWNLOAD_BYTES, USER_AGENT
from ..errors import FetchError, SizeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class CoverClient(BaseClient):
    """
    Downloads cover images.

    Only successful responses with an ``image/*`` content type are accepted,
    and the body is read in chunks so an oversized payload is rejected
    without holding all of it.
    """

    def __init__(self, user_agent: str = USER_AGENT, max_bytes: int = MAX_DOWNLOAD_BYTES):
        super().__init__(user_agent=user_agent)
        self.max_bytes = max_bytes

    def fetch_image(self, url: str) -> bytes:
        """
        Args:
            url: Remote cover URL

        Returns:
            Raw image bytes

        Raises:
            FetchError: transport failure, non-2xx status, or non-image content
            SizeError: payload larger than ``max_bytes``
        """
        try:
            resp = self.request("GET", url, stream=True)
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {e}") from e

        with resp:
            if not resp.ok:
                raise FetchError(f"HTTP {resp.status_code}: {resp.reason}")

            content_type = resp.headers.get("Content-Type", "")
            if not content_type.startswith("image/"):
                raise FetchError(f"Not an image (Content-Type: {content_type or None})")

            buffer = bytearray()
            try:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    buffer.extend(chunk)
                    if len(buffer) > self.max_bytes:
                        size_mb = len(buffer) / (1024 * 1024)
                        raise SizeError(f"Image too large (>{size_mb:.2f}MB)")
            except requests.RequestException as e:
                raise FetchError(f"Download interrupted: {e}") from e

        logger.debug(f"Fetched {len(buffer)} bytes from {url}")
        return bytes(buffer)
