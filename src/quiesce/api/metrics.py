"""Prometheus metrics for the shutdown lifecycle."""

from fastapi import APIRouter, Response
from prometheus_client import (
    Counter, Histogram, Gauge, Enum,
    generate_latest, CONTENT_TYPE_LATEST,
    CollectorRegistry
)

from ..utils.logging import get_logger

logger = get_logger(__name__)

ORCHESTRATOR_STATES = ["starting", "running", "shutdown_requested", "draining", "terminated"]


class LifecycleMetrics:
    """Metrics for one orchestrator.

    Each instance owns its registry so several orchestrators (e.g. in tests)
    never collide on metric names.
    """

    def __init__(self, namespace: str = "quiesce"):
        self.registry = CollectorRegistry()

        self.orchestrator_state = Enum(
            f'{namespace}_orchestrator_state',
            'Current orchestrator lifecycle state',
            states=ORCHESTRATOR_STATES,
            registry=self.registry
        )

        self.outstanding_workers = Gauge(
            f'{namespace}_outstanding_workers',
            'Workers registered and not yet deregistered',
            registry=self.registry
        )

        self.worker_transitions = Counter(
            f'{namespace}_worker_transitions_total',
            'Worker state transitions',
            ['state'],
            registry=self.registry
        )

        self.shutdown_signals = Counter(
            f'{namespace}_shutdown_signals_total',
            'Shutdown requests received',
            ['source'],
            registry=self.registry
        )

        self.cleanup_failures = Counter(
            f'{namespace}_cleanup_failures_total',
            'Worker cleanup routines that raised',
            ['error_type'],
            registry=self.registry
        )

        self.drain_duration = Histogram(
            f'{namespace}_drain_duration_seconds',
            'Time from cancellation to the last worker deregistering',
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self.registry
        )

    def render(self) -> bytes:
        """Return metrics in Prometheus text format."""
        return generate_latest(self.registry)


def create_metrics_router(metrics: LifecycleMetrics) -> APIRouter:
    """Build a router exposing ``metrics`` at ``/metrics``."""
    router = APIRouter()

    @router.get(
        "/metrics",
        response_class=Response,
        summary="Prometheus metrics",
        description="Expose shutdown lifecycle metrics in Prometheus format"
    )
    async def metrics_endpoint():
        return Response(
            content=metrics.render(),
            media_type=CONTENT_TYPE_LATEST
        )

    return router
