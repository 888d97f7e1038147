"""
Service wiring and FastAPI dependencies for the HueQuery backend
"""
from typing import Optional

from loguru import logger

from huequery.config import Config, config
from huequery.services.analysis import CandidateAnalyzer
from huequery.services.cache import (
    CachePersistence, CandidateStore, JsonCachePersistence, NullCachePersistence, RedisCachePersistence
)
from huequery.services.classifier import (
    ClassifierAdapter, GeminiVisionClassifier, ImageFetcher, PixelQuantizationClassifier
)
from huequery.services.colors.vision import GeminiModelResolver, GeminiVisionClient
from huequery.services.feedback import FeedbackStore, JsonFeedbackStore
from huequery.services.orchestrator import ColorSelectionEngine, build_weight_policy
from huequery.services.search import BingImageSearchProvider
from huequery.services.storage import JsonDatabase

_db: Optional[JsonDatabase] = None
_feedback: Optional[FeedbackStore] = None
_engine: Optional[ColorSelectionEngine] = None


def get_database(cfg: Config = config) -> JsonDatabase:
    """Get or open the shared JSON database."""
    global _db
    if _db is None:
        _db = JsonDatabase(cfg.DB_PATH)
    return _db


def build_cache_persistence(cfg: Config = config, db: Optional[JsonDatabase] = None) -> CachePersistence:
    """Redis when configured and reachable, else the JSON file, else nothing."""
    if cfg.REDIS_URL:
        shadow = RedisCachePersistence(cfg.REDIS_URL, ttl_seconds=cfg.CACHE_TTL_SECONDS)
        if shadow.ping():
            logger.info("Using Redis candidate cache shadow")
            return shadow
        logger.warning("Redis unavailable, falling back to the JSON cache shadow")

    db = db or get_database(cfg)
    if db.writable:
        return JsonCachePersistence(db)

    logger.info("Using in-memory candidate cache only")
    return NullCachePersistence()


def build_engine(cfg: Config = config,
                 feedback: Optional[FeedbackStore] = None,
                 persistence: Optional[CachePersistence] = None) -> ColorSelectionEngine:
    """Assemble the selection engine from configuration."""
    fetcher = ImageFetcher(request_timeout=cfg.IMAGE_TIMEOUT)
    fallback = ClassifierAdapter(PixelQuantizationClassifier(fetcher))

    primary = None
    if cfg.GEMINI_API_KEY:
        resolver = GeminiModelResolver(cfg.GEMINI_API_KEY, cfg.GEMINI_MODEL, request_timeout=cfg.SEARCH_TIMEOUT)
        client = GeminiVisionClient(cfg.GEMINI_API_KEY, resolver)
        primary = ClassifierAdapter(GeminiVisionClassifier(client, fetcher))

    analyzer = CandidateAnalyzer(
        search_provider=BingImageSearchProvider(request_timeout=cfg.SEARCH_TIMEOUT),
        fallback=fallback,
        primary=primary,
        concurrency=cfg.ANALYSIS_CONCURRENCY
    )
    store = CandidateStore(
        analyzer,
        persistence=persistence or build_cache_persistence(cfg),
        ttl_seconds=cfg.CACHE_TTL_SECONDS,
        page_size=cfg.PAGE_SIZE,
        max_pages=cfg.MAX_PAGES
    )
    policy_name = cfg.WEIGHT_POLICY
    if not cfg.validate_weight_policy(policy_name):
        logger.warning(f"Unknown weight policy {policy_name!r}, using fixed")
        policy_name = "fixed"

    return ColorSelectionEngine(
        store,
        feedback or get_feedback_store(),
        weight_policy=build_weight_policy(policy_name),
        fallback_size=cfg.FALLBACK_SIZE
    )


def get_feedback_store() -> FeedbackStore:
    """FastAPI dependency: the likes store."""
    global _feedback
    if _feedback is None:
        _feedback = JsonFeedbackStore(get_database())
    return _feedback


def get_engine() -> ColorSelectionEngine:
    """FastAPI dependency: the shared selection engine."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine
