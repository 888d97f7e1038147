"""
HueQuery Candidate Cache
Per-query candidate color store with an in-memory layer, a persistence
shadow (JSON file, Redis, or none) and a time-to-live.
"""
import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Set

import redis
from loguru import logger

from huequery.services.analysis import CandidateAnalyzer
from huequery.services.colors.color_math import is_valid_hex, normalize_hex
from huequery.services.fingerprint import generate_cache_key
from huequery.services.metrics import MetricsCollector, metrics as default_metrics
from huequery.services.storage import JsonDatabase


@dataclass
class CacheRecord:
    """Ordered distinct candidates discovered for one (query, variant) key."""
    key: str
    created_at: float
    candidates: List[str] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)
    pages_loaded: int = 0

    def add_candidate(self, color: Any) -> bool:
        """Append a color if well-formed and unseen. Returns True if added."""
        if not is_valid_hex(color):
            return False
        normalized = normalize_hex(color)
        if normalized in self.seen:
            return False
        self.seen.add(normalized)
        self.candidates.append(normalized)
        return True

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at < ttl_seconds

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the persistence shadow (createdAt in epoch ms)."""
        return {
            'createdAt': int(self.created_at * 1000),
            'candidates': list(self.candidates),
            'seen': sorted(self.seen),
            'pagesLoaded': self.pages_loaded
        }

    def snapshot(self) -> 'CacheRecord':
        """Copy that stays stable while the live record keeps growing."""
        return CacheRecord(
            key=self.key,
            created_at=self.created_at,
            candidates=list(self.candidates),
            seen=set(self.seen),
            pages_loaded=self.pages_loaded
        )

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> 'CacheRecord':
        """Rebuild a record, dropping malformed candidate colors."""
        record = cls(key=key, created_at=float(data.get('createdAt') or 0) / 1000.0)
        for color in data.get('candidates') or []:
            record.add_candidate(color)
        for color in data.get('seen') or []:
            if is_valid_hex(color):
                record.seen.add(normalize_hex(color))
        record.pages_loaded = int(data.get('pagesLoaded') or 0)
        return record


class CandidateLookup(NamedTuple):
    """Candidate for a step, the candidate list so far and the resolved index."""
    candidate: Optional[str]
    candidates: List[str]
    index: int


class CachePersistence(ABC):
    """Abstract base class for the candidate cache persistence shadow."""

    @abstractmethod
    def load(self, key: str) -> Optional[CacheRecord]:
        """Load a record, or None if absent."""
        pass

    @abstractmethod
    def save(self, key: str, record: CacheRecord) -> bool:
        """Store a record. Returns False on failure, never raises."""
        pass

    def prune(self, now: float, ttl_seconds: float) -> int:
        """Drop records older than the TTL. Returns the number removed."""
        return 0


class NullCachePersistence(CachePersistence):
    """Persistence shadow that keeps nothing."""

    def load(self, key: str) -> Optional[CacheRecord]:
        return None

    def save(self, key: str, record: CacheRecord) -> bool:
        return True


class JsonCachePersistence(CachePersistence):
    """Shadow stored under "candidateCache" in the JSON database."""

    def __init__(self, db: JsonDatabase):
        self.db = db

    def load(self, key: str) -> Optional[CacheRecord]:
        data = self.db.read(lambda doc: doc['candidateCache'].get(key))
        if not isinstance(data, dict):
            return None
        return CacheRecord.from_dict(key, data)

    def save(self, key: str, record: CacheRecord) -> bool:
        payload = record.to_dict()

        def write(doc: Dict[str, Any]) -> None:
            doc['candidateCache'][key] = payload

        try:
            return self.db.update(write)
        except Exception as e:
            logger.warning(f"Failed to persist candidate cache: {e}")
            return False

    def prune(self, now: float, ttl_seconds: float) -> int:
        cutoff_ms = (now - ttl_seconds) * 1000
        expired = self.db.read(lambda doc: [
            key for key, data in doc['candidateCache'].items()
            if not isinstance(data, dict) or float(data.get('createdAt') or 0) <= cutoff_ms
        ])
        if not expired:
            return 0

        def drop(doc: Dict[str, Any]) -> None:
            for key in expired:
                doc['candidateCache'].pop(key, None)

        self.db.update(drop)
        return len(expired)


class RedisCachePersistence(CachePersistence):
    """Redis shadow; entries expire with the cache TTL."""

    PREFIX = "huequery:candidates:"

    def __init__(self, redis_url: str = "redis://localhost:6379", ttl_seconds: int = 1800,
                 client: Optional[redis.Redis] = None):
        self.redis_client = client or redis.from_url(redis_url, decode_responses=True)
        self.ttl_seconds = ttl_seconds

    def ping(self) -> bool:
        """Test Redis connection."""
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            return False

    def load(self, key: str) -> Optional[CacheRecord]:
        try:
            value = self.redis_client.get(self.PREFIX + key)
        except redis.RedisError as e:
            logger.error(f"Redis get failed for key {key}: {e}")
            return None
        if not value:
            return None
        try:
            return CacheRecord.from_dict(key, json.loads(value))
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cache record {key}: {e}")
            return None

    def save(self, key: str, record: CacheRecord) -> bool:
        try:
            return bool(self.redis_client.setex(self.PREFIX + key, self.ttl_seconds, json.dumps(record.to_dict())))
        except redis.RedisError as e:
            logger.error(f"Redis set failed for key {key}: {e}")
            return False


class CandidateStore:
    """
    Monotonic, append-only candidate cache.

    Records are keyed by normalized (query, analysis variant). Candidates
    already discovered are never reordered or removed within the TTL; paging
    only appends colors not seen before.
    """

    def __init__(self,
                 analyzer: CandidateAnalyzer,
                 persistence: Optional[CachePersistence] = None,
                 ttl_seconds: float = 1800,
                 page_size: int = 10,
                 max_pages: int = 10,
                 clock: Callable[[], float] = time.time,
                 metrics: Optional[MetricsCollector] = None):
        self.analyzer = analyzer
        self.persistence = persistence or NullCachePersistence()
        self.ttl_seconds = ttl_seconds
        self.page_size = page_size
        self.max_pages = max_pages
        self.clock = clock
        self.metrics = metrics or default_metrics
        self._records: Dict[str, CacheRecord] = {}

        self.stats = {
            'memory_hits': 0,
            'shadow_hits': 0,
            'misses': 0,
            'pages_fetched': 0,
            'persist_failures': 0,
            'pruned': 0
        }

    async def _persist(self, record: CacheRecord) -> None:
        try:
            ok = await asyncio.to_thread(self.persistence.save, record.key, record.snapshot())
        except Exception as e:
            logger.warning(f"Failed to persist candidate cache: {e}")
            ok = False
        if not ok:
            self.stats['persist_failures'] += 1

    async def _load_shadow(self, key: str) -> Optional[CacheRecord]:
        try:
            return await asyncio.to_thread(self.persistence.load, key)
        except Exception as e:
            logger.warning(f"Failed to load candidate cache {key}: {e}")
            return None

    async def _prune_expired(self, now: float) -> None:
        """Forget expired records in memory and in the shadow."""
        expired = [key for key, record in self._records.items() if not record.is_fresh(now, self.ttl_seconds)]
        for key in expired:
            del self._records[key]

        try:
            dropped = await asyncio.to_thread(self.persistence.prune, now, self.ttl_seconds)
        except Exception as e:
            logger.warning(f"Failed to prune candidate cache: {e}")
            dropped = 0

        if expired or dropped:
            self.stats['pruned'] += len(expired)
            logger.debug(f"Pruned {len(expired)} memory and {dropped} persisted cache records")

    async def get_record(self, query: str, analysis_query: str) -> CacheRecord:
        """Return the live record for the key, promoting or creating it as needed."""
        key = generate_cache_key(query, analysis_query)
        now = self.clock()

        cached = self._records.get(key)
        if cached and cached.is_fresh(now, self.ttl_seconds):
            self.stats['memory_hits'] += 1
            self.metrics.record_cache_hit('memory')
            return cached

        persisted = await self._load_shadow(key)

        # Another request may have installed the key while the shadow was read
        cached = self._records.get(key)
        if cached and cached.is_fresh(now, self.ttl_seconds):
            self.stats['memory_hits'] += 1
            self.metrics.record_cache_hit('memory')
            return cached

        if persisted and persisted.is_fresh(now, self.ttl_seconds):
            self.stats['shadow_hits'] += 1
            self.metrics.record_cache_hit('shadow')
            self._records[key] = persisted
            return persisted

        self.stats['misses'] += 1
        self.metrics.record_cache_miss()
        fresh = CacheRecord(key=key, created_at=now)
        self._records[key] = fresh
        await self._prune_expired(now)
        await self._persist(fresh)
        return fresh

    async def get_candidate_for_step(self, query: str, analysis_query: str, step: int) -> CandidateLookup:
        """
        Get the candidate at position `step`, fetching more pages if needed.

        Args:
            query: User-facing base query
            analysis_query: Search string sent to the image search provider
            step: Zero-based refinement counter

        Returns:
            CandidateLookup; candidate is None when analysis is exhausted
        """
        target_index = max(0, step)
        record = await self.get_record(query, analysis_query)

        while len(record.candidates) <= target_index and record.pages_loaded < self.max_pages:
            with self.metrics.time_page_analysis():
                page = await self.analyzer.analyze_page(
                    query,
                    analysis_query,
                    offset=record.pages_loaded * self.page_size,
                    count=self.page_size
                )
            record.pages_loaded += 1
            self.stats['pages_fetched'] += 1

            changed = False
            for color in page.candidates:
                changed = record.add_candidate(color) or changed

            if changed:
                await self._persist(record)

            if not page.image_urls:
                logger.info(f"Image search exhausted for {analysis_query!r} after {record.pages_loaded} pages")
                break

        candidates = list(record.candidates)
        if len(candidates) > target_index:
            return CandidateLookup(candidates[target_index], candidates, target_index)
        return CandidateLookup(None, candidates, target_index)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        lookups = self.stats['memory_hits'] + self.stats['shadow_hits'] + self.stats['misses']
        hits = self.stats['memory_hits'] + self.stats['shadow_hits']
        return {
            'stats': self.stats.copy(),
            'records': len(self._records),
            'hit_rate': hits / lookups if lookups > 0 else 0.0
        }

    def clear(self) -> None:
        """Drop the in-memory layer and reset statistics."""
        self._records.clear()
        for key in self.stats:
            self.stats[key] = 0
