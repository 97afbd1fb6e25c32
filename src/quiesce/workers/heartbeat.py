"""Demonstration worker that beats until cancelled, then flushes."""

import threading
import time
from datetime import datetime, timezone
from typing import List, Optional

from ..core.worker import Worker
from ..utils.logging import get_logger

logger = get_logger(__name__)


class HeartbeatWorker(Worker):
    """Record a heartbeat per step; spend ``cleanup_duration`` flushing them.

    Stands in for a real service loop holding resources that must be
    released on shutdown.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        poll_interval: float = 0.5,
        step_duration: float = 0.0,
        cleanup_duration: float = 0.0,
    ):
        super().__init__(name=name, poll_interval=poll_interval)
        self.step_duration = step_duration
        self.cleanup_duration = cleanup_duration
        self.beats: List[datetime] = []
        self.flushed = 0
        self._lock = threading.Lock()

    def step(self) -> None:
        if self.step_duration:
            time.sleep(self.step_duration)
        with self._lock:
            self.beats.append(datetime.now(timezone.utc))
        logger.debug(f"{self.name} heartbeat #{len(self.beats)}")

    def cleanup(self) -> None:
        logger.info(f"{self.name} flushing {len(self.beats)} heartbeats")
        if self.cleanup_duration:
            time.sleep(self.cleanup_duration)
        with self._lock:
            self.flushed = len(self.beats)
        logger.info(f"{self.name} cleanup complete")
