"""Unit tests for the bundled workers."""

import threading
import time

from quiesce.core.orchestrator import ShutdownOrchestrator
from quiesce.main import create_app
from quiesce.workers.heartbeat import HeartbeatWorker
from quiesce.workers.status_server import StatusServerWorker


def test_heartbeat_worker_flushes_every_beat(token, tracker):
    worker = HeartbeatWorker(name="hb", poll_interval=0.01, cleanup_duration=0.05)
    handle = tracker.register(worker.name)
    thread = threading.Thread(target=worker.run, args=(token, tracker, handle))
    thread.start()
    time.sleep(0.05)
    token.trigger()
    thread.join(2.0)

    assert len(worker.beats) >= 1
    assert worker.flushed == len(worker.beats)
    assert tracker.count == 0


def test_heartbeat_cleanup_duration_holds_registration(token, tracker):
    worker = HeartbeatWorker(name="hb", poll_interval=0.01, cleanup_duration=0.2)
    handle = tracker.register(worker.name)
    token.trigger()
    thread = threading.Thread(target=worker.run, args=(token, tracker, handle))
    start = time.monotonic()
    thread.start()

    assert tracker.wait(timeout=2.0)
    assert time.monotonic() - start >= 0.2
    thread.join()


def test_status_server_stops_on_cleanup(token, tracker, listener):
    """The server thread is gone before the worker deregisters."""
    app = create_app(ShutdownOrchestrator(listener=listener))
    worker = StatusServerWorker(app, host="127.0.0.1", port=0, poll_interval=0.05)
    handle = tracker.register(worker.name)
    thread = threading.Thread(target=worker.run, args=(token, tracker, handle))
    thread.start()
    time.sleep(0.3)

    token.trigger()
    assert tracker.wait(timeout=10.0)
    thread.join()

    assert worker.failure is None
    assert worker.cleanup_error is None
    assert not worker._thread.is_alive()
