"""
HueQuery API Routes
Implements /api/generate, /api/feedback and supporting routes.
"""
import asyncio
import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from loguru import logger

from huequery import __version__
from huequery.config import config
from huequery.deps import get_engine, get_feedback_store
from huequery.schemas import (
    CacheStatsResponse, ErrorResponse, FeedbackRequest, FeedbackResponse, GenerateRequest, GenerateResponse,
    HealthResponse
)
from huequery.services.feedback import FeedbackStore
from huequery.services.metrics import metrics
from huequery.services.orchestrator import ColorSelectionEngine, SelectionRequest

router = APIRouter(prefix="/api", tags=["Color Selection"])


@router.post("/generate",
             response_model=GenerateResponse,
             response_model_exclude_none=True,
             responses={400: {"model": ErrorResponse}},
             summary="Generate Color",
             description="Map a free-text query to one representative color")
async def generate_color(
    body: GenerateRequest,
    engine: ColorSelectionEngine = Depends(get_engine)
) -> GenerateResponse:
    """
    Select a color for the query.

    A fresh query sends step 0 and no mode; "show me another" sends
    mode="refine", the shown color as previousColor and an increasing step.
    """
    if not isinstance(body.query, str):
        raise HTTPException(status_code=400, detail="Missing query")

    query = body.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    request = SelectionRequest(
        query=query,
        previous_color=body.previous_color,
        mode=body.mode,
        step=body.step
    )

    start_time = time.time()
    metrics.record_request(body.mode or "new")

    result = None
    try:
        result = await asyncio.wait_for(engine.select_color(request), timeout=config.TIMEOUT_TOTAL)
    except asyncio.TimeoutError:
        logger.warning(f"Selection for {query!r} exceeded {config.TIMEOUT_TOTAL}s, using fallback")
        metrics.record_degraded("deadline")
        result = engine.select_fallback(request)
    else:
        if result.degraded:
            metrics.record_degraded("analysis")
    finally:
        metrics.record_request_complete(result.source if result else "error", (time.time() - start_time) * 1000)

    return GenerateResponse(**result.to_response())


@router.post("/feedback", response_model=FeedbackResponse, summary="Record Feedback")
async def record_feedback(
    body: FeedbackRequest,
    feedback: FeedbackStore = Depends(get_feedback_store)
) -> FeedbackResponse:
    """Remember liked colors; the next fresh request for the query returns it."""
    if body.rating == "like":
        await asyncio.to_thread(feedback.record_like, body.query, body.color)
    return FeedbackResponse(success=True)


@router.get("/healthz", response_model=HealthResponse, summary="Health Check")
async def health() -> HealthResponse:
    return HealthResponse(ok=True, version=__version__)


@router.get("/cache/stats", response_model=CacheStatsResponse, summary="Candidate Cache Statistics")
async def cache_stats(engine: ColorSelectionEngine = Depends(get_engine)) -> CacheStatsResponse:
    return CacheStatsResponse(**engine.store.get_cache_stats())


@router.get("/metrics", response_class=PlainTextResponse, summary="Prometheus Metrics")
async def prometheus_metrics() -> str:
    return metrics.get_metrics()
