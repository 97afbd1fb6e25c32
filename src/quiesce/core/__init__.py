"""
Core shutdown coordination primitives.

The cancellation token broadcasts a single stop request, the completion
tracker counts outstanding workers, and the orchestrator ties both to the
signal listener.
"""

from .cancellation import CancellationToken, TokenState
from .errors import ContractViolation, InvalidTransition, QuiesceError, SignalSubscriptionError
from .orchestrator import OrchestratorState, ShutdownOrchestrator
from .signals import ShutdownSignal, SignalListener
from .tracker import CompletionTracker, WorkerHandle, WorkerState
from .worker import FunctionWorker, Worker

__all__ = [
    "CancellationToken",
    "TokenState",
    "CompletionTracker",
    "WorkerHandle",
    "WorkerState",
    "Worker",
    "FunctionWorker",
    "ShutdownSignal",
    "SignalListener",
    "ShutdownOrchestrator",
    "OrchestratorState",
    "QuiesceError",
    "SignalSubscriptionError",
    "ContractViolation",
    "InvalidTransition",
]
