"""Worker that serves the status API while the process runs."""

import threading
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ..core.worker import Worker
from ..utils.logging import get_logger

logger = get_logger(__name__)


class StatusServerWorker(Worker):
    """Run uvicorn in a background thread for the lifetime of the worker.

    The worker is drain-last: its token is only cancelled after every other
    worker has deregistered, so /health keeps reporting DRAINING and the
    outstanding workers while they finish. Cleanup asks uvicorn to exit and
    waits for its thread; only then does the worker deregister.
    """

    drain_last = True

    def __init__(
        self,
        app: FastAPI,
        host: str = "127.0.0.1",
        port: int = 8000,
        poll_interval: float = 0.5,
        name: str = "status-server",
    ):
        super().__init__(name=name, poll_interval=poll_interval)
        self.app = app
        self.host = host
        self.port = port
        self.server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    def setup(self) -> None:
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_config=None  # We handle logging ourselves
        )
        self.server = uvicorn.Server(config)
        # uvicorn skips installing signal handlers off the main thread
        self._thread = threading.Thread(
            target=self.server.run,
            name=f"{self.name}-uvicorn",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Status API listening on http://{self.host}:{self.port}")

    def step(self) -> None:
        if self._thread is not None and not self._thread.is_alive():
            raise RuntimeError("Status API server exited unexpectedly")

    def cleanup(self) -> None:
        if self.server is None or self._thread is None:
            return
        self.server.should_exit = True
        self._thread.join()
        logger.info("Status API stopped")
