"""
HueQuery Feedback Store
Records liked colors and serves the most recent like for a query.
"""
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from loguru import logger

from huequery.services.colors.color_math import is_valid_hex, normalize_hex
from huequery.services.storage import JsonDatabase


class FeedbackStore(ABC):
    """Abstract base class for like feedback persistence."""

    @abstractmethod
    def record_like(self, query: str, color: str, timestamp: Optional[float] = None) -> bool:
        """Store a like. Returns False on failure, never raises."""
        pass

    @abstractmethod
    def most_recent_like(self, query: str) -> Optional[str]:
        """Most recently liked color for query (case-insensitive), if any."""
        pass


def _latest_match(likes: List[Dict[str, Any]], query: str) -> Optional[str]:
    target = query.strip().lower()
    for item in reversed(likes):
        if not isinstance(item, dict):
            continue
        if str(item.get('query', '')).strip().lower() != target:
            continue
        color = item.get('color')
        if is_valid_hex(color):
            return normalize_hex(color)
    return None


class InMemoryFeedbackStore(FeedbackStore):
    """Likes kept for the lifetime of the process."""

    def __init__(self):
        self.likes: List[Dict[str, Any]] = []

    def record_like(self, query: str, color: str, timestamp: Optional[float] = None) -> bool:
        self.likes.append({
            'query': query,
            'color': color,
            'timestamp': int((timestamp or time.time()) * 1000)
        })
        return True

    def most_recent_like(self, query: str) -> Optional[str]:
        return _latest_match(self.likes, query)


class JsonFeedbackStore(FeedbackStore):
    """Likes stored under "likes" in the JSON database."""

    def __init__(self, db: JsonDatabase):
        self.db = db

    def record_like(self, query: str, color: str, timestamp: Optional[float] = None) -> bool:
        entry = {
            'query': query,
            'color': color,
            'timestamp': int((timestamp or time.time()) * 1000)
        }
        try:
            saved = self.db.update(lambda doc: doc['likes'].append(entry))
        except Exception as e:
            logger.error(f"Failed to save feedback: {e}")
            return False
        logger.info(f"Learned: {query} => {color}")
        return saved

    def most_recent_like(self, query: str) -> Optional[str]:
        try:
            return self.db.read(lambda doc: _latest_match(doc['likes'], query))
        except Exception as e:
            logger.warning(f"Failed to read feedback for {query!r}: {e}")
            return None
