"""
HTTP access to the monitored page.

Fetches the IELTS page with browser-like headers and a fixed timeout.
"""

import logging
from typing import Optional

import requests

from ielts_bot.config import Settings, get_settings

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the monitored page cannot be fetched."""
    pass


class PageFetcher:
    """
    Downloads the monitored page.

    Timeouts, connection errors and non-2xx responses are all reported
    as FetchError so callers can treat them as a missed check.
    """

    # User agent to mimic a real browser
    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize page fetcher.

        Args:
            url: Page to fetch, defaults to the configured target URL
            timeout: Request timeout in seconds
            settings: Optional settings instance, will use default if not provided
        """
        if url is None or timeout is None:
            settings = settings or get_settings()
            url = url or settings.target_url
            timeout = timeout or settings.request_timeout

        self.url = url
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": self.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "tr-TR,tr;q=0.9,en-US;q=0.8,en;q=0.5",
        })

    def fetch(self) -> str:
        """
        Fetch the page and return its decoded text.

        Returns:
            str: Page HTML

        Raises:
            FetchError: On timeout, connection error or HTTP error status
        """
        logger.debug(f"Fetching page: {self.url}")

        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise FetchError(f"Timed out after {self.timeout}s fetching {self.url}") from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Could not fetch {self.url}: {e}") from e

        # The page does not always declare its charset; let requests sniff it
        if not response.encoding or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding

        logger.debug(f"Fetched {len(response.text)} characters from {self.url}")
        return response.text

    def close(self) -> None:
        self.session.close()
