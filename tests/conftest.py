"""Shared pytest fixtures for quiesce tests."""

import threading

import pytest
from fastapi.testclient import TestClient

from quiesce.api.metrics import LifecycleMetrics
from quiesce.core.cancellation import CancellationToken
from quiesce.core.orchestrator import ShutdownOrchestrator
from quiesce.core.signals import SignalListener
from quiesce.core.tracker import CompletionTracker
from quiesce.history.lifecycle_log import LifecycleLog


@pytest.fixture
def token():
    """Return a fresh, active cancellation token."""
    return CancellationToken()


@pytest.fixture
def tracker():
    """Return an empty completion tracker."""
    return CompletionTracker()


@pytest.fixture
def history():
    """Return a lifecycle log large enough for any single test."""
    return LifecycleLog(max_size=500)


@pytest.fixture
def metrics():
    """Return metrics bound to a private registry."""
    return LifecycleMetrics()


@pytest.fixture
def listener():
    """Return a signal listener that is always restored after the test."""
    listener = SignalListener(poll_interval=0.05)
    yield listener
    listener.close()


@pytest.fixture
def orchestrator(listener, history, metrics):
    """Return an orchestrator with history and metrics attached."""
    return ShutdownOrchestrator(
        listener=listener,
        history=history,
        metrics=metrics,
        drain_log_interval=0.5,
    )


@pytest.fixture
def shutdown_after():
    """Schedule ``orchestrator.request_shutdown()`` from another thread."""
    timers = []

    def schedule(orchestrator, delay, source="test"):
        timer = threading.Timer(delay, orchestrator.request_shutdown, kwargs={"source": source})
        timer.start()
        timers.append(timer)
        return timer

    yield schedule
    for timer in timers:
        timer.cancel()


@pytest.fixture
def test_client(orchestrator):
    """Return a FastAPI test client for the orchestrator's status API."""
    from quiesce.main import create_app
    app = create_app(orchestrator)
    return TestClient(app)
