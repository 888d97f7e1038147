"""
HueQuery Metrics
Prometheus counters and histograms for color selection and candidate analysis.
"""
from contextlib import contextmanager
import time
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class MetricsCollector:
    """Prometheus metrics collector for HueQuery."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # Counters
        self.generate_requests_total = Counter(
            'generate_requests_total',
            'Total color generation requests',
            ['mode'],
            registry=self.registry
        )

        self.generate_results_total = Counter(
            'generate_results_total',
            'Selected colors by source',
            ['source'],
            registry=self.registry
        )

        self.generate_degraded_total = Counter(
            'generate_degraded_total',
            'Responses served from hash fallback candidates',
            ['reason'],
            registry=self.registry
        )

        self.cache_hits_total = Counter(
            'candidate_cache_hits_total',
            'Candidate cache hits',
            ['layer'],
            registry=self.registry
        )

        self.cache_misses_total = Counter(
            'candidate_cache_misses_total',
            'Candidate cache misses',
            registry=self.registry
        )

        # Histograms
        self.generate_duration_ms = Histogram(
            'generate_duration_ms',
            'Color generation duration in milliseconds',
            registry=self.registry,
            buckets=[5, 50, 250, 500, 1000, 2500, 5000, 10000, 25000]
        )

        self.page_analysis_duration_ms = Histogram(
            'page_analysis_duration_ms',
            'Search plus classification of one results page in milliseconds',
            registry=self.registry,
            buckets=[250, 500, 1000, 2000, 4000, 8000, 12000, 20000]
        )

        # Gauges
        self.requests_in_flight = Gauge(
            'generate_requests_in_flight',
            'Generation requests currently being processed',
            registry=self.registry
        )

    def record_request(self, mode: str):
        """Record a new request."""
        self.generate_requests_total.labels(mode=mode).inc()
        self.requests_in_flight.inc()

    def record_request_complete(self, source: str, duration_ms: float):
        """Record request completion."""
        self.requests_in_flight.dec()
        self.generate_results_total.labels(source=source).inc()
        self.generate_duration_ms.observe(duration_ms)

    def record_degraded(self, reason: str):
        self.generate_degraded_total.labels(reason=reason).inc()

    def record_cache_hit(self, layer: str):
        self.cache_hits_total.labels(layer=layer).inc()

    def record_cache_miss(self):
        self.cache_misses_total.inc()

    @contextmanager
    def time_page_analysis(self):
        """Observe the wall time of the enclosed page analysis."""
        start_time = time.time()
        try:
            yield
        finally:
            self.page_analysis_duration_ms.observe((time.time() - start_time) * 1000)

    def get_metrics(self) -> str:
        """Get Prometheus metrics in text format."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics instance
metrics = MetricsCollector()
