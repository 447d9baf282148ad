"""Prometheus metrics for title discovery and article acquisition."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)


@dataclass
class RefillEvent:
    mode: str
    attempts: int
    title_count: int
    duration_seconds: float
    status: str


@dataclass
class AcquisitionEvent:
    mode: str
    titles_tried: int
    duration_seconds: float
    status: str


@dataclass
class ExtractionEvent:
    section_count: int
    status: str


class MetricsCollector:
    """Registry of counters describing the acquisition pipeline.

    Each collector owns its own ``CollectorRegistry`` so that building a second
    instance (tests do this) never trips over duplicate metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._exporter_started = False

        self._refills = Counter(
            "curio_search_refills_total",
            "Title buffer refills by feed mode and outcome",
            labelnames=("mode", "status"),
            registry=self.registry,
        )
        self._refill_attempts = Counter(
            "curio_search_attempts_total",
            "Search requests issued while refilling title buffers",
            labelnames=("mode",),
            registry=self.registry,
        )
        self._refill_duration = Histogram(
            "curio_search_refill_duration_seconds",
            "Duration of title buffer refills in seconds",
            labelnames=("mode", "status"),
            buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
            registry=self.registry,
        )
        self._acquisitions = Counter(
            "curio_article_acquisitions_total",
            "Article acquisitions by feed mode and outcome",
            labelnames=("mode", "status"),
            registry=self.registry,
        )
        self._titles_tried = Counter(
            "curio_article_titles_tried_total",
            "Buffered titles consumed while looking for a qualifying article",
            labelnames=("mode",),
            registry=self.registry,
        )
        self._acquisition_duration = Histogram(
            "curio_article_acquisition_duration_seconds",
            "Duration of article acquisition in seconds",
            labelnames=("mode", "status"),
            buckets=(0.25, 0.5, 1, 2, 5, 10, 30, 60),
            registry=self.registry,
        )
        self._extractions = Counter(
            "curio_section_extractions_total",
            "HTML section extraction runs by outcome",
            labelnames=("status",),
            registry=self.registry,
        )

        self.last_refill: Optional[RefillEvent] = None
        self.last_acquisition: Optional[AcquisitionEvent] = None
        self.last_extraction: Optional[ExtractionEvent] = None

    def enable_exporter(self, port: int) -> bool:
        """Start the Prometheus HTTP exporter for this registry."""

        if self._exporter_started:
            return True
        start_http_server(port, registry=self.registry)
        self._exporter_started = True
        logger.info("Prometheus metrics exporter started", extra={"event": "metrics.started", "port": port})
        return True

    def record_refill(
        self, mode: str, *, attempts: int, title_count: int, duration_seconds: float, status: str
    ) -> None:
        self.last_refill = RefillEvent(mode, attempts, title_count, duration_seconds, status)
        self._refills.labels(mode=mode, status=status).inc()
        self._refill_attempts.labels(mode=mode).inc(attempts)
        self._refill_duration.labels(mode=mode, status=status).observe(duration_seconds)

    def record_acquisition(self, mode: str, *, titles_tried: int, duration_seconds: float, status: str) -> None:
        self.last_acquisition = AcquisitionEvent(mode, titles_tried, duration_seconds, status)
        self._acquisitions.labels(mode=mode, status=status).inc()
        if titles_tried:
            self._titles_tried.labels(mode=mode).inc(titles_tried)
        self._acquisition_duration.labels(mode=mode, status=status).observe(duration_seconds)

    def record_extraction(self, *, section_count: int, status: str) -> None:
        self.last_extraction = ExtractionEvent(section_count, status)
        self._extractions.labels(status=status).inc()

    def reset(self) -> None:
        """Reset cached inspection state (primarily for tests)."""

        self.last_refill = None
        self.last_acquisition = None
        self.last_extraction = None


metrics = MetricsCollector()


def configure_metrics_from_env() -> None:
    """Start metrics exporter when ``CURIO_METRICS_PORT`` is defined."""

    port_value = os.getenv("CURIO_METRICS_PORT")
    if not port_value:
        return
    try:
        port = int(port_value)
    except ValueError:
        logger.warning(
            "Invalid CURIO_METRICS_PORT value; expected integer",
            extra={"event": "metrics.invalid_port", "value": port_value},
        )
        return
    metrics.enable_exporter(port)


__all__ = ["configure_metrics_from_env", "metrics", "MetricsCollector"]
