"""Integration tests for the status API."""

import threading


def test_health_endpoint_returns_200(test_client):
    """Test that health endpoint returns 200 status."""
    response = test_client.get("/health")
    assert response.status_code == 200


def test_health_reports_starting_state(test_client):
    data = test_client.get("/health").json()
    assert data["status"] == "starting"
    assert data["state"] == "starting"
    assert data["cancelled"] is False
    assert data["outstanding"] == 0
    assert "timestamp" in data


def test_health_lists_outstanding_workers(test_client, orchestrator):
    orchestrator.tracker.register("manual")
    data = test_client.get("/health").json()
    assert data["outstanding"] == 1
    assert data["workers"] == [{"name": "manual", "state": "registered"}]


def test_liveness(test_client):
    assert test_client.get("/health/live").json() == {"status": "alive"}


def test_readiness_follows_lifecycle(test_client, orchestrator):
    """Ready only while RUNNING; 503 once shutdown is requested."""
    assert test_client.get("/health/ready").status_code == 503

    orchestrator.start()
    response = test_client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}

    orchestrator.request_shutdown("test")
    orchestrator.run()
    response = test_client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["state"] == "terminated"
    assert test_client.get("/health").json()["status"] == "terminated"


def test_events_endpoint(test_client, orchestrator):
    orchestrator.request_shutdown("test")
    orchestrator.run()

    events = test_client.get("/health/events", params={"kind": "orchestrator"}).json()["events"]
    assert [e["state"] for e in events] == [
        "starting", "running", "shutdown_requested", "draining", "terminated",
    ]
    limited = test_client.get("/health/events", params={"limit": 1}).json()["events"]
    assert len(limited) == 1


def test_metrics_endpoint(test_client, orchestrator):
    orchestrator.request_shutdown("test")
    orchestrator.run()

    response = test_client.get("/metrics")
    assert response.status_code == 200
    body = response.text
    assert 'quiesce_orchestrator_state{quiesce_orchestrator_state="terminated"} 1.0' in body
    assert 'quiesce_shutdown_signals_total{source="test"} 1.0' in body
    assert "quiesce_drain_duration_seconds_count 1.0" in body


def test_health_during_drain(test_client, orchestrator):
    """In-process: a worker cleaning up sees the draining status."""
    from quiesce.core.worker import FunctionWorker

    release = threading.Event()
    observed = {}

    def cleanup():
        observed["health"] = test_client.get("/health").json()
        release.set()

    orchestrator.add_worker(FunctionWorker(step=lambda: None, cleanup=cleanup, name="flusher", poll_interval=0.01))
    orchestrator.request_shutdown()
    orchestrator.run()

    assert release.is_set()
    assert observed["health"]["status"] == "draining"
    assert observed["health"]["cancelled"] is True
    assert observed["health"]["workers"] == [{"name": "flusher", "state": "cleaning_up"}]
