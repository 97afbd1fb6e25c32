"""Integration tests for the status API served by a real uvicorn worker."""

import socket
import threading
import time

import httpx

from quiesce.core.orchestrator import OrchestratorState, ShutdownOrchestrator
from quiesce.main import create_app
from quiesce.workers.heartbeat import HeartbeatWorker
from quiesce.workers.status_server import StatusServerWorker


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_until_serving(base_url, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            httpx.get(f"{base_url}/health/live", timeout=0.5)
            return True
        except httpx.TransportError:
            time.sleep(0.05)
    return False


def test_status_api_reports_draining_while_workers_finish(listener, history, metrics):
    """/health stays reachable and reports DRAINING while a slow cleanup runs."""
    orchestrator = ShutdownOrchestrator(
        listener=listener,
        history=history,
        metrics=metrics,
        drain_log_interval=0.5,
    )
    orchestrator.add_worker(HeartbeatWorker(name="slow", poll_interval=0.01, cleanup_duration=1.5))
    port = _free_port()
    base_url = f"http://127.0.0.1:{port}"
    orchestrator.add_worker(
        StatusServerWorker(create_app(orchestrator), port=port, poll_interval=0.05)
    )

    draining = threading.Event()

    def on_state(old, new):
        if new is OrchestratorState.DRAINING:
            draining.set()

    orchestrator.add_listener(on_state)
    seen = {}

    def client():
        seen["serving"] = _wait_until_serving(base_url)
        orchestrator.request_shutdown("test")
        draining.wait(5.0)
        seen["health"] = httpx.get(f"{base_url}/health", timeout=2.0).json()
        seen["ready"] = httpx.get(f"{base_url}/health/ready", timeout=2.0).status_code

    thread = threading.Thread(target=client)
    thread.start()
    assert orchestrator.run() == 0
    thread.join()

    assert seen["serving"] is True
    assert seen["health"]["status"] == "draining"
    assert seen["health"]["state"] == "draining"
    assert "slow" in [w["name"] for w in seen["health"]["workers"]]
    assert seen["ready"] == 503
    assert orchestrator.state is OrchestratorState.TERMINATED
