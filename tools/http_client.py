"""
HTTP Client Tool — fetches JSON and HTML from job boards.
Uses httpx with browser-like headers, timeouts, and retry logic.
"""

import logging
import time
from typing import Callable, Optional

import httpx

from models.errors import FetchError


logger = logging.getLogger(__name__)

# Common browser-like headers to avoid being blocked
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",  # Exclude brotli to avoid decompressobj reuse bug
}

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
JSON_ACCEPT = "application/json"

# Statuses worth another attempt; anything else non-200 fails immediately
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


class HttpClient:
    """
    Thin wrapper over one shared httpx.Client.

    Every failure is raised as FetchError tagged with the caller's source name,
    so adapters never see raw httpx exceptions.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._sleep = sleep
        self._client = httpx.Client(
            headers=DEFAULT_HEADERS,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def get_json(self, url: str, source: str, params: dict = None):
        """GET a URL and decode the JSON body."""
        response = self._get(url, source, params, accept=JSON_ACCEPT)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(source, f"Invalid JSON from {url}: {e}") from e

    def get_text(self, url: str, source: str, params: dict = None) -> str:
        """GET a URL and return the body as text (HTML pages)."""
        return self._get(url, source, params, accept=HTML_ACCEPT).text

    def close(self) -> None:
        self._client.close()

    def _get(self, url: str, source: str, params: Optional[dict], accept: str) -> httpx.Response:
        last_error = ""

        for attempt in range(self.max_retries):
            try:
                response = self._client.get(url, params=params or {}, headers={"Accept": accept})
            except httpx.TimeoutException:
                last_error = f"Timeout after {self.timeout}s for {url}"
            except httpx.HTTPError as e:
                last_error = f"HTTP error for {url}: {e}"
            else:
                if response.status_code == 200:
                    return response
                last_error = f"HTTP {response.status_code} for {url}"
                if response.status_code not in RETRYABLE_STATUSES:
                    raise FetchError(source, last_error)

            if attempt < self.max_retries - 1:
                logger.debug("%s: %s (attempt %d/%d)", source, last_error, attempt + 1, self.max_retries)
                self._sleep(2 ** attempt)  # Exponential backoff

        raise FetchError(source, f"{last_error} ({self.max_retries} attempts)")
