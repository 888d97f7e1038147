"""
HueQuery Image Search
Image search provider interface and the Bing async-results scraper.
"""
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import requests
from loguru import logger

from huequery.config import config
from huequery.services.reliability import TimeoutManager, UpstreamError, timeout_manager


class ImageSearchProvider(ABC):
    """Abstract base class for image search providers."""

    @abstractmethod
    async def search(self, query: str, offset: int = 0, count: int = 10) -> List[str]:
        """Return up to `count` image URLs for query starting at offset."""
        pass


class BingImageSearchProvider(ImageSearchProvider):
    """Scrapes image URLs from Bing's async image results page."""

    ENDPOINT = "https://www.bing.com/images/async"
    MURL_PATTERN = re.compile(r"murl&quot;:&quot;(https?://[^&]+)&quot;")

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 timeouts: Optional[TimeoutManager] = None,
                 request_timeout: float = config.SEARCH_TIMEOUT):
        self.session = session or requests.Session()
        self.timeouts = timeouts or timeout_manager
        self.request_timeout = request_timeout
        self.headers = {
            'User-Agent': config.USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5'
        }

    def parse_image_urls(self, html: str, count: int) -> List[str]:
        """Pull media URLs out of the results markup, in page order."""
        urls = []
        for match in self.MURL_PATTERN.finditer(html):
            if len(urls) >= count:
                break
            urls.append(match.group(1))
        return urls

    def _fetch(self, query: str, offset: int, count: int) -> List[str]:
        params = {'q': query, 'first': offset, 'count': count, 'mmasync': 1}
        try:
            response = self.session.get(
                self.ENDPOINT,
                params=params,
                headers=self.headers,
                timeout=self.request_timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Bing request failed: {e}")

        if not response.ok:
            raise UpstreamError(f"Bing returned {response.status_code}")

        return self.parse_image_urls(response.text, count)

    async def search(self, query: str, offset: int = 0, count: int = 10) -> List[str]:
        """Search images; any failure degrades to an empty page."""
        logger.info(f"Searching images for: {query} (offset={offset}, count={count})")
        try:
            urls = await self.timeouts.run_blocking('search', self._fetch, query, offset, count)
        except UpstreamError as e:
            logger.error(f"Search failed: {e}")
            return []

        logger.info(f"Found {len(urls)} images for {query}")
        return urls
