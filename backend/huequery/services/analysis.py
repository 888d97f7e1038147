"""
HueQuery Candidate Analysis
Turns one page of image search results into a ranked list of candidate colors.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from loguru import logger

from huequery.services.classifier import ClassifierAdapter
from huequery.services.reliability import map_with_limit
from huequery.services.search import ImageSearchProvider


@dataclass
class PageAnalysis:
    """Result of analysing one search results page."""
    image_urls: List[str] = field(default_factory=list)
    candidates: List[str] = field(default_factory=list)


def rank_colors(results: Sequence[Optional[Sequence[str]]]) -> List[str]:
    """
    Rank colors by how many images produced them, ties by first-seen order.

    Args:
        results: Per-image color lists, None for failed images

    Returns:
        Distinct colors, most frequent first
    """
    counts: Dict[str, int] = {}
    for colors in results:
        if not colors:
            continue
        for color in colors:
            # dicts keep insertion order, which is first-seen order
            counts[color] = counts.get(color, 0) + 1

    order = {color: position for position, color in enumerate(counts)}
    return sorted(counts, key=lambda color: (-counts[color], order[color]))


class CandidateAnalyzer:
    """Searches one page of images and classifies them with bounded concurrency."""

    def __init__(self,
                 search_provider: ImageSearchProvider,
                 fallback: ClassifierAdapter,
                 primary: Optional[ClassifierAdapter] = None,
                 concurrency: int = 3):
        self.search_provider = search_provider
        self.primary = primary
        self.fallback = fallback
        self.concurrency = concurrency
        self._warned_missing_primary = False

    async def _classify_all(self, adapter: ClassifierAdapter, urls: List[str], query: str) -> List[Optional[List[str]]]:
        return await map_with_limit(urls, self.concurrency, lambda url: adapter.classify(url, query))

    async def analyze_page(self, query: str, search_query: str, offset: int = 0, count: int = 10) -> PageAnalysis:
        """
        Analyse one page of search results for query.

        Args:
            query: User-facing query, used to phrase the vision question
            search_query: Analysis variant sent to the search provider
            offset: Result offset of the page
            count: Page size

        Returns:
            PageAnalysis with the page's image URLs and ranked colors
        """
        logger.info(f"Analyzing color for: {query}")

        urls = (await self.search_provider.search(search_query, offset, count))[:count]
        if not urls:
            return PageAnalysis()

        ranked: List[str] = []
        if self.primary is not None:
            ranked = rank_colors(await self._classify_all(self.primary, urls, query))
        elif not self._warned_missing_primary:
            logger.warning("Vision classifier is not configured; falling back to dominant color analysis.")
            self._warned_missing_primary = True

        if not ranked:
            ranked = rank_colors(await self._classify_all(self.fallback, urls, query))

        return PageAnalysis(image_urls=urls, candidates=ranked)
