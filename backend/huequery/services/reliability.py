"""
HueQuery Reliability & Timeout Management
Implements per-call timeouts and the bounded concurrent mapper used to fan
image analysis out to external services.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from loguru import logger

from huequery.config import config

T = TypeVar('T')
R = TypeVar('R')


class UpstreamError(Exception):
    """An external search or classification call failed."""
    pass


class TimeoutError(UpstreamError):
    """Custom timeout exception."""
    pass


class TimeoutManager:
    """Manages timeouts for outbound operations."""

    def __init__(self, default_timeout: float = 30.0):
        self.default_timeout = default_timeout
        self.timeouts = {
            'search': config.SEARCH_TIMEOUT,
            'image': config.IMAGE_TIMEOUT,
            'vision': config.VISION_TIMEOUT,
            'total': config.TIMEOUT_TOTAL
        }

    @asynccontextmanager
    async def timeout(self, operation: str, custom_timeout: Optional[float] = None):
        """Context manager for timeout handling."""
        timeout_value = custom_timeout or self.timeouts.get(operation, self.default_timeout)

        try:
            async with asyncio.timeout(timeout_value):
                yield
        except asyncio.TimeoutError:
            logger.warning(f"Timeout in {operation} after {timeout_value}s")
            raise TimeoutError(f"Operation {operation} timed out after {timeout_value}s")

    async def run_blocking(self, operation: str, func: Callable[..., R], *args, **kwargs) -> R:
        """Run a blocking call in a worker thread under the operation timeout."""
        async with self.timeout(operation):
            return await asyncio.to_thread(func, *args, **kwargs)

    def configure(self, timeout_config: Dict[str, float]) -> None:
        """Update timeout configuration."""
        self.timeouts.update(timeout_config)


async def map_with_limit(
    items: Sequence[T],
    limit: int,
    mapper: Callable[[T], Awaitable[R]],
) -> List[Optional[R]]:
    """
    Run mapper over items with at most `limit` calls in flight.

    Each worker claims the next unclaimed index until none remain, so every
    item is attempted exactly once. A failing item yields None in its slot
    and does not disturb the other workers.

    Args:
        items: Inputs to process
        limit: Maximum number of concurrent workers
        mapper: Coroutine function applied to each item

    Returns:
        Results in the same order as items
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    results: List[Optional[R]] = [None] * len(items)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while True:
            # Claim and advance with no await in between
            current = next_index
            next_index += 1
            if current >= len(items):
                return
            try:
                results[current] = await mapper(items[current])
            except Exception as e:
                logger.warning(f"Mapped call failed for {items[current]!r}: {e}")
                results[current] = None

    workers = [asyncio.create_task(worker()) for _ in range(min(limit, len(items)))]
    if workers:
        await asyncio.gather(*workers)
    return results


# Global timeout manager instance
timeout_manager = TimeoutManager()
