import logging

import requests

from ..config import USER_AGENT

logger = logging.getLogger(__name__)


class BaseClient:
    """requests Session with a fixed User-Agent; usable as a context manager."""

    def __init__(self, user_agent: str = USER_AGENT, timeout: float = 30.0):
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def request(self, method: str, url: str, stream: bool = False) -> requests.Response:
        logger.info(f"Fetching: {url}")
        return self.session.request(method, url, stream=stream, timeout=self.timeout)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
