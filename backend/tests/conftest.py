"""
Test configuration and fixtures for HueQuery tests.
"""
from typing import Dict, List, Optional, Sequence

import pytest

from huequery.services.analysis import CandidateAnalyzer
from huequery.services.cache import CachePersistence, CandidateStore, NullCachePersistence
from huequery.services.classifier import ClassifierAdapter, ImageColorClassifier
from huequery.services.feedback import InMemoryFeedbackStore
from huequery.services.orchestrator import ColorSelectionEngine
from huequery.services.reliability import UpstreamError
from huequery.services.search import ImageSearchProvider


class FakeSearchProvider(ImageSearchProvider):
    """Serves slices of a fixed URL list and records every call."""

    def __init__(self, urls: Sequence[str] = (), fail: bool = False):
        self.urls = list(urls)
        self.fail = fail
        self.calls: List[tuple] = []

    async def search(self, query: str, offset: int = 0, count: int = 10) -> List[str]:
        self.calls.append((query, offset, count))
        if self.fail:
            raise UpstreamError("search unavailable")
        return self.urls[offset:offset + count]


class FakeClassifier(ImageColorClassifier):
    """Returns canned colors per URL; listed URLs raise."""

    def __init__(self, colors_by_url: Optional[Dict[str, List[str]]] = None, failing: Sequence[str] = ()):
        self.colors_by_url = colors_by_url or {}
        self.failing = set(failing)
        self.calls: List[str] = []

    async def classify(self, image_url: str, query: str) -> List[str]:
        self.calls.append(image_url)
        if image_url in self.failing:
            raise UpstreamError(f"cannot analyse {image_url}")
        return list(self.colors_by_url.get(image_url, []))


def image_urls(count: int) -> List[str]:
    return [f"https://img.example.com/{i}.jpg" for i in range(count)]


def build_store(search: ImageSearchProvider,
                classifier: ImageColorClassifier,
                persistence: Optional[CachePersistence] = None,
                **kwargs) -> CandidateStore:
    analyzer = CandidateAnalyzer(search, fallback=ClassifierAdapter(classifier), concurrency=3)
    return CandidateStore(analyzer, persistence=persistence or NullCachePersistence(), **kwargs)


@pytest.fixture
def ocean_urls():
    """Two images for 'ocean blue'."""
    return image_urls(2)


@pytest.fixture
def ocean_classifier(ocean_urls):
    return FakeClassifier({
        ocean_urls[0]: ["#1E90FF"],
        ocean_urls[1]: ["#4682B4"],
    })


@pytest.fixture
def feedback_store():
    return InMemoryFeedbackStore()


@pytest.fixture
def ocean_search(ocean_urls):
    return FakeSearchProvider(ocean_urls)


@pytest.fixture
def ocean_engine(ocean_search, ocean_classifier, feedback_store):
    """Engine whose providers yield [#1E90FF, #4682B4]."""
    store = build_store(ocean_search, ocean_classifier)
    return ColorSelectionEngine(store, feedback_store)


@pytest.fixture
def failing_engine(feedback_store):
    """Engine whose search provider always fails."""
    store = build_store(FakeSearchProvider(fail=True), FakeClassifier())
    return ColorSelectionEngine(store, feedback_store)
