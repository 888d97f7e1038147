"""
HueQuery Color Selection Orchestrator
Turns a query, an optional previous color, a refinement mode and a step
counter into one final color.
"""
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from huequery.services.cache import CandidateStore
from huequery.services.colors.color_math import blend, same_color, shift_hue
from huequery.services.colors.lexicon import (
    ColorName, analysis_variant, find_raw_color_name, is_single_raw_color_query, lookup
)
from huequery.services.feedback import FeedbackStore
from huequery.services.fingerprint import generate_fallback_candidates

SOURCE_RAW_EXACT = "raw_exact"
SOURCE_LEARNED = "learned"
SOURCE_WEIGHTED_RAW = "weighted_raw"
SOURCE_ANALYZED = "analyzed_candidate"

MODE_REFINE = "refine"

COLLISION_HUE_SHIFT = 30


@dataclass
class SelectionRequest:
    """Input to the selection engine."""
    query: str
    previous_color: Optional[str] = None
    mode: Optional[str] = None
    step: int = 0


@dataclass
class SelectionResult:
    """Final color and the rule that produced it."""
    color: str
    source: str
    step: Optional[int] = None
    weight: Optional[float] = None
    candidate_index: Optional[int] = None
    degraded: bool = False

    def to_response(self) -> Dict[str, Any]:
        """Render the API payload."""
        response: Dict[str, Any] = {'color': self.color, 'source': self.source}
        if self.weight is not None:
            response['weight'] = self.weight
        if self.step is not None:
            response['step'] = self.step
        return response


class WeightPolicy(ABC):
    """Blend weight given to the lexicon anchor color."""

    @abstractmethod
    def weight_for(self, step: int) -> float:
        pass


class FixedWeightPolicy(WeightPolicy):
    """The same anchor weight for every step."""

    def __init__(self, weight: float = 0.8):
        self.weight = weight

    def weight_for(self, step: int) -> float:
        return self.weight


class IncrementalWeightPolicy(WeightPolicy):
    """
    Anchor weight grows with each refinement step.

    Starts at `start`, adds `increment` per step and drops back to `reset`
    whenever the running weight reaches 1.0.
    """

    def __init__(self, start: float = 0.8, increment: float = 0.039, reset: float = 0.01):
        self.start = start
        self.increment = increment
        self.reset = reset

    def weight_for(self, step: int) -> float:
        weight = self.start
        for _ in range(max(0, step)):
            weight += self.increment
            if weight >= 1.0:
                weight = self.reset
        return round(weight, 6)


def build_weight_policy(name: str) -> WeightPolicy:
    """Create a weight policy by configuration name."""
    if name == "incremental":
        return IncrementalWeightPolicy()
    if name == "fixed":
        return FixedWeightPolicy()
    raise ValueError(f"Unknown weight policy: {name}")


class ColorSelectionEngine:
    """Main orchestrator for color selection requests."""

    def __init__(self,
                 store: CandidateStore,
                 feedback: FeedbackStore,
                 weight_policy: Optional[WeightPolicy] = None,
                 fallback_size: int = 15):
        self.store = store
        self.feedback = feedback
        self.weight_policy = weight_policy or FixedWeightPolicy()
        self.fallback_size = fallback_size

    def _combine(self, candidate: str, anchor: Optional[ColorName], weight: Optional[float]) -> str:
        """Blend toward the anchor and clamp into its hue buckets."""
        color = candidate
        if anchor is not None:
            color = blend(anchor.hex, candidate, weight)
            if anchor.ranges:
                color = shift_hue(color, 0, anchor.ranges)
        return color

    def _learned_color(self, query: str) -> Optional[str]:
        try:
            return self.feedback.most_recent_like(query)
        except Exception as e:
            logger.warning(f"Feedback lookup failed for {query!r}: {e}")
            return None

    def _terminal_result(self, request: SelectionRequest, query: str, step: int) -> Optional[SelectionResult]:
        """Exact lexicon match and learned color, which skip analysis."""
        if is_single_raw_color_query(query):
            entry = lookup(find_raw_color_name(query))
            return SelectionResult(color=entry.hex, source=SOURCE_RAW_EXACT)

        if not request.mode and step == 0:
            learned = self._learned_color(query)
            if learned:
                return SelectionResult(color=learned, source=SOURCE_LEARNED)
        return None

    def _finalize(self,
                  request: SelectionRequest,
                  query: str,
                  step: int,
                  candidates: List[str],
                  index: int,
                  degraded: bool = False) -> SelectionResult:
        """Blend, clamp and resolve collisions with the previous color."""
        anchor = lookup(find_raw_color_name(query))
        weight = self.weight_policy.weight_for(step) if anchor else None

        final_color = self._combine(candidates[index], anchor, weight)

        if same_color(request.previous_color, final_color):
            if len(candidates) > 1:
                index = (index + 1) % len(candidates)
                final_color = self._combine(candidates[index], anchor, weight)

            # A single forced shift, accepted as is
            if same_color(request.previous_color, final_color):
                logger.info("Persistent collision. Forcing hue shift.")
                final_color = shift_hue(final_color, COLLISION_HUE_SHIFT, anchor.ranges if anchor else None)

        return SelectionResult(
            color=final_color,
            source=SOURCE_WEIGHTED_RAW if anchor else SOURCE_ANALYZED,
            step=step,
            weight=weight,
            candidate_index=index,
            degraded=degraded
        )

    def _fallback_candidates(self, query: str, step: int) -> Tuple[List[str], int]:
        candidates = generate_fallback_candidates(query, self.fallback_size)
        return candidates, step % len(candidates)

    async def select_color(self, request: SelectionRequest) -> SelectionResult:
        """
        Select one color for a request.

        Never raises for upstream or persistence failures: analysis problems
        degrade to hash-derived fallback candidates.
        """
        start_time = time.time()
        request_id = str(uuid.uuid4())
        query = request.query.strip()
        step = max(0, int(request.step or 0))
        log = logger.bind(request_id=request_id, query=query, step=step)

        log.info(f"[Generate] query=\"{query}\" mode={request.mode or 'new'} step={step}")

        terminal = self._terminal_result(request, query, step)
        if terminal is not None:
            log.info(f"Result: {terminal.color} (Source: {terminal.source})")
            return terminal

        search_query = analysis_variant(query, MODE_REFINE if request.mode == MODE_REFINE else None)

        candidates: List[str] = []
        index = 0
        try:
            found = await self.store.get_candidate_for_step(query, search_query, step)
            if found.candidate:
                candidates, index = found.candidates, found.index
        except Exception as e:
            log.warning(f"Analysis skipped or failed: {e}")

        degraded = not candidates
        if degraded:
            candidates, index = self._fallback_candidates(query, step)

        result = self._finalize(request, query, step, candidates, index, degraded=degraded)

        total_ms = round((time.time() - start_time) * 1000, 2)
        if result.source == SOURCE_WEIGHTED_RAW:
            log.bind(total_ms=total_ms).info(
                f"Result: {result.color} (Source: Weighted Raw, Step: {step}, Weight: {result.weight:.3f})"
            )
        else:
            log.bind(total_ms=total_ms).info(f"Result: {result.color} (Source: Analysis, Step: {step})")
        return result

    def select_fallback(self, request: SelectionRequest) -> SelectionResult:
        """Select without image analysis, for callers whose deadline expired."""
        query = request.query.strip()
        step = max(0, int(request.step or 0))

        terminal = self._terminal_result(request, query, step)
        if terminal is not None:
            return terminal

        candidates, index = self._fallback_candidates(query, step)
        return self._finalize(request, query, step, candidates, index, degraded=True)
