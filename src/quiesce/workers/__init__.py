"""Workers shipped with quiesce."""

from .heartbeat import HeartbeatWorker
from .status_server import StatusServerWorker

__all__ = ["HeartbeatWorker", "StatusServerWorker"]
