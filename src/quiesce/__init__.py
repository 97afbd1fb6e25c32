"""
Quiesce: graceful shutdown coordination for multi-worker processes.

A single external stop request is broadcast to every worker thread, each
worker runs its cleanup, and the process exits only once all of them have
finished.
"""

from .core import (
    CancellationToken,
    CompletionTracker,
    FunctionWorker,
    ShutdownOrchestrator,
    ShutdownSignal,
    SignalListener,
    Worker,
)

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "CompletionTracker",
    "FunctionWorker",
    "ShutdownOrchestrator",
    "ShutdownSignal",
    "SignalListener",
    "Worker",
    "__version__",
]
