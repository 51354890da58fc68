"""
Prometheus metrics collection.

Stateless service with in-memory metrics.
"""

import time
from typing import Optional

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

from .. import __version__
from ..models.conversion import INITIATE_CHECKOUT, LEAD, LOW_VALUE, PURCHASE

logger = structlog.get_logger(__name__)

# Passthrough categories are reported as "other"
_KNOWN_CATEGORIES = {LEAD, PURCHASE, INITIATE_CHECKOUT, LOW_VALUE}


class MetricsCollector:
    """
    Centralized metrics collection for the postback relay.

    Keep metrics simple,
    use in-memory counters, let Prometheus handle storage.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        # Service info
        self.service_info = Info(
            "postback_relay_service",
            "Postback relay service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "postback-relay",
        })

        # Inbound postbacks
        self.postbacks_received_total = Counter(
            "postbacks_received_total",
            "Total inbound postbacks",
            ["outcome"],
            registry=self.registry,
        )

        self.events_per_postback = Histogram(
            "events_per_postback",
            "Number of outbound events derived from one postback",
            buckets=[1, 2, 3, 5],
            registry=self.registry,
        )

        # Outbound dispatch
        self.events_dispatched_total = Counter(
            "events_dispatched_total",
            "Total outbound events dispatched",
            ["category", "ok"],
            registry=self.registry,
        )

        self.dispatch_duration = Histogram(
            "dispatch_duration_seconds",
            "Outbound postback duration in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        # Track start time for uptime calculation
        self._start_time = time.time()
        logger.info("Metrics collector initialized")

    def record_postback(self, accepted: bool, events_count: int = 0) -> None:
        """Record an inbound postback and how many events it produced."""
        outcome = "accepted" if accepted else "dropped"
        self.postbacks_received_total.labels(outcome=outcome).inc()

        if accepted:
            self.events_per_postback.observe(events_count)

    def record_dispatch(self, category: str, succeeded: bool, duration_seconds: float) -> None:
        """Record one outbound delivery attempt."""
        self.events_dispatched_total.labels(
            category=category if category in _KNOWN_CATEGORIES else "other",
            ok="1" if succeeded else "0",
        ).inc()
        self.dispatch_duration.observe(duration_seconds)

    def update_system_metrics(self) -> None:
        """Update system-level metrics."""
        self.uptime_seconds.set(time.time() - self._start_time)
