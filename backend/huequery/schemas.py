"""
HueQuery API Schemas
Pydantic models for color generation and feedback request/response validation.
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Color generation request."""
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = Field(None, description="Free-text query, e.g. 'ocean blue'")
    previous_color: Optional[str] = Field(
        None,
        alias="previousColor",
        description="Color currently shown, never repeated by the next answer"
    )
    mode: Optional[Literal["refine"]] = Field(None, description="'refine' for 'show me another'")
    step: int = Field(0, ge=0, description="Refinement counter, 0 for a fresh query")


class GenerateResponse(BaseModel):
    """Selected color."""
    color: str = Field(..., pattern=r"^#[0-9A-F]{6}$", description="Hex color code in format #RRGGBB")
    source: str = Field(..., description="raw_exact, learned, weighted_raw or analyzed_candidate")
    weight: Optional[float] = Field(None, description="Blend weight of the color-name anchor")
    step: Optional[int] = Field(None, description="Refinement step the color was selected for")


class FeedbackRequest(BaseModel):
    """User feedback on a shown color."""
    query: str = Field(..., description="Query the color was generated for")
    color: str = Field(..., description="Color the feedback refers to")
    rating: str = Field(..., description="'like' is recorded, other ratings are ignored")


class FeedbackResponse(BaseModel):
    """Feedback acknowledgement."""
    success: bool = True


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("huequery", description="Service name")


class CacheStatsResponse(BaseModel):
    """Candidate cache statistics."""
    stats: Dict[str, int]
    records: int
    hit_rate: float


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str = Field(..., description="Error message")
