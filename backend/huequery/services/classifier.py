"""
HueQuery Image Color Classification
Classifier interface, the image fetcher, the vision and pixel classifiers,
and the adapter that keeps a failing image from aborting its batch.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import FrozenSet, List, Optional
from urllib.parse import urlparse

import requests
from loguru import logger

from huequery.config import config
from huequery.services.colors.color_math import is_valid_hex, normalize_hex
from huequery.services.colors.extraction import dominant_color
from huequery.services.colors.vision import GeminiVisionClient
from huequery.services.reliability import TimeoutManager, UpstreamError, timeout_manager


@dataclass
class FetchedImage:
    """Downloaded image payload."""
    content: bytes
    content_type: str


class ImageColorClassifier(ABC):
    """Abstract base class for image color classifiers."""

    @abstractmethod
    async def classify(self, image_url: str, query: str) -> List[str]:
        """Return zero or more hex colors for the image."""
        pass


class ImageFetcher:
    """Downloads images with a browser user agent."""

    def __init__(self, session: Optional[requests.Session] = None, request_timeout: float = config.IMAGE_TIMEOUT):
        self.session = session or requests.Session()
        self.request_timeout = request_timeout

    def fetch(self, url: str) -> Optional[FetchedImage]:
        """
        Fetch an image.

        Returns:
            The image, or None when the host refuses access (HTTP 403)

        Raises:
            UpstreamError: On transport errors and other non-2xx responses
        """
        try:
            response = self.session.get(
                url,
                headers={'User-Agent': config.USER_AGENT},
                timeout=self.request_timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Image fetch failed: {e}")

        if response.status_code == 403:
            return None
        if not response.ok:
            raise UpstreamError(f"Image fetch failed: {response.status_code}")

        content_type = response.headers.get('content-type') or 'image/jpeg'
        return FetchedImage(content=response.content, content_type=content_type)


class PixelQuantizationClassifier(ImageColorClassifier):
    """Dominant color by local pixel clustering."""

    def __init__(self, fetcher: Optional[ImageFetcher] = None, timeouts: Optional[TimeoutManager] = None):
        self.fetcher = fetcher or ImageFetcher()
        self.timeouts = timeouts or timeout_manager

    def _classify_sync(self, image_url: str) -> List[str]:
        image = self.fetcher.fetch(image_url)
        if image is None:
            return []
        color = dominant_color(image.content)
        return [color] if color else []

    async def classify(self, image_url: str, query: str) -> List[str]:
        return await self.timeouts.run_blocking('image', self._classify_sync, image_url)


class GeminiVisionClassifier(ImageColorClassifier):
    """Asks a vision model which colors the query describes in the image."""

    def __init__(self,
                 client: GeminiVisionClient,
                 fetcher: Optional[ImageFetcher] = None,
                 timeouts: Optional[TimeoutManager] = None):
        self.client = client
        self.fetcher = fetcher or ImageFetcher()
        self.timeouts = timeouts or timeout_manager

    def _classify_sync(self, image_url: str, query: str) -> List[str]:
        image = self.fetcher.fetch(image_url)
        if image is None:
            return []
        return self.client.describe_colors(image.content, image.content_type, query)

    async def classify(self, image_url: str, query: str) -> List[str]:
        # Download and model call share the 'vision' budget
        return await self.timeouts.run_blocking('vision', self._classify_sync, image_url, query)


class ClassifierAdapter:
    """
    Boundary around an ImageColorClassifier.

    Skips blocklisted hosts, drops malformed colors and turns every failure
    into an empty result so sibling work in the batch keeps going.
    """

    def __init__(self, classifier: ImageColorClassifier, blocked_domains: Optional[FrozenSet[str]] = None):
        self.classifier = classifier
        self.blocked_domains = frozenset(
            domain.lower() for domain in (config.BLOCKED_DOMAINS if blocked_domains is None else blocked_domains)
        )

    def should_skip_url(self, url: str) -> bool:
        """Skip unparsable URLs and hosts known to refuse downloads."""
        try:
            host = (urlparse(url).hostname or '').lower()
        except ValueError:
            return True
        return not host or host in self.blocked_domains

    async def classify(self, image_url: str, query: str) -> List[str]:
        if self.should_skip_url(image_url):
            logger.debug(f"Skipping blocked image host: {image_url}")
            return []

        try:
            colors = await self.classifier.classify(image_url, query)
        except UpstreamError as e:
            logger.warning(f"Image analysis failed: {image_url} {e}")
            return []
        except Exception as e:
            logger.error(f"Error analyzing image: {image_url} {e}")
            return []

        return [normalize_hex(color) for color in colors or [] if is_valid_hex(color)]
