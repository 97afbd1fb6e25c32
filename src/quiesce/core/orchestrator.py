"""Shutdown orchestration: start workers, wait for a stop request, drain."""

import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from ..utils.logging import get_logger
from .cancellation import CancellationToken
from .errors import ContractViolation, InvalidTransition
from .signals import ShutdownSignal, SignalListener
from .tracker import CompletionTracker, WorkerHandle, WorkerState
from .worker import Worker

logger = get_logger(__name__)


class OrchestratorState(str, Enum):
    """Orchestrator lifecycle. States are only ever entered in this order."""
    STARTING = "starting"
    RUNNING = "running"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    DRAINING = "draining"
    TERMINATED = "terminated"


_NEXT_STATE = {
    OrchestratorState.STARTING: OrchestratorState.RUNNING,
    OrchestratorState.RUNNING: OrchestratorState.SHUTDOWN_REQUESTED,
    OrchestratorState.SHUTDOWN_REQUESTED: OrchestratorState.DRAINING,
    OrchestratorState.DRAINING: OrchestratorState.TERMINATED,
}

StateListener = Callable[[OrchestratorState, OrchestratorState], None]


class ShutdownOrchestrator:
    """Run a set of workers until a shutdown signal, then drain them.

    The orchestrator owns the cancellation tokens and the completion tracker
    and hands them to every worker it starts. Workers marked ``drain_last``
    get ``late_token``, which is only triggered once every other worker has
    deregistered, so they keep serving while the rest drain. ``run()`` is meant to be called
    from the main thread, where signal handlers live.
    """

    def __init__(
        self,
        listener: Optional[SignalListener] = None,
        history=None,
        metrics=None,
        drain_log_interval: float = 5.0,
    ):
        """Initialize orchestrator.

        Args:
            listener: Source of shutdown events, SIGINT/SIGTERM by default
            history: Optional LifecycleLog receiving every transition
            metrics: Optional LifecycleMetrics updated on every transition
            drain_log_interval: Seconds between progress reports while draining
        """
        self.listener = listener or SignalListener()
        self.history = history
        self.metrics = metrics
        self.drain_log_interval = drain_log_interval

        self.token = CancellationToken()
        self.late_token = CancellationToken(name="drain_last")
        self.tracker = CompletionTracker(on_transition=self._on_worker_transition)

        self._state = OrchestratorState.STARTING
        self._state_lock = threading.Lock()
        self._state_listeners: List[StateListener] = []
        self._workers: List[Worker] = []
        self._threads: List[threading.Thread] = []
        self._late_ids: Set[int] = set()
        self._violations: List[ContractViolation] = []
        self._signal: Optional[ShutdownSignal] = None
        self._started = False

        if self.metrics is not None:
            self.metrics.orchestrator_state.state(self._state.value)

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def workers(self) -> List[Worker]:
        return list(self._workers)

    @property
    def shutdown_signal(self) -> Optional[ShutdownSignal]:
        """The event that ended the RUNNING phase, once received."""
        return self._signal

    def add_worker(self, worker: Worker) -> Worker:
        """Queue a worker to be started by :meth:`start`.

        Raises:
            InvalidTransition: If the orchestrator has already started
        """
        if self._started:
            raise InvalidTransition(f"Cannot add worker {worker.name} after start")
        self._workers.append(worker)
        return worker

    def add_listener(self, callback: StateListener) -> None:
        """Register ``callback(old_state, new_state)`` for state changes."""
        self._state_listeners.append(callback)

    def request_shutdown(self, source: str = "manual") -> None:
        """Ask the orchestrator to shut down, as if a signal had arrived."""
        self.listener.notify(source)

    def start(self) -> None:
        """Subscribe to signals, register and launch every worker.

        Signal subscription happens first; if it fails nothing is
        registered and :class:`SignalSubscriptionError` propagates.
        """
        if self._started:
            raise InvalidTransition("Orchestrator already started")
        self._started = True
        self._record("orchestrator", "orchestrator", self._state.value)

        self.listener.subscribe()

        handles = [self.tracker.register(worker.name) for worker in self._workers]
        for index, (worker, handle) in enumerate(zip(self._workers, handles)):
            if worker.drain_last:
                self._late_ids.add(handle.id)
            token = self.late_token if worker.drain_last else self.token
            thread = threading.Thread(
                target=worker.run,
                args=(token, self.tracker, handle, self._on_cleanup_error, self._on_contract_violation),
                name=f"quiesce-{worker.name}",
            )
            try:
                thread.start()
            except RuntimeError:
                logger.exception(f"Could not start worker {worker.name}")
                self._abort_start(handles[index:])
                raise
            self._threads.append(thread)

        logger.info(f"Started {len(self._threads)} workers")
        self._advance(OrchestratorState.RUNNING)

    def _abort_start(self, unstarted: List[WorkerHandle]) -> None:
        for handle in unstarted:
            self.tracker.deregister(handle)
        self.token.trigger()
        self.late_token.trigger()
        self.tracker.wait()
        self.listener.close()

    def run(self) -> int:
        """Run the full lifecycle and return the process exit status.

        Blocks until a shutdown event arrives and every worker has
        deregistered.

        Raises:
            ContractViolation: If a worker deregistered more than once; the
                orchestrator stays in DRAINING
        """
        if not self._started:
            self.start()
        if self._state is not OrchestratorState.RUNNING:
            raise InvalidTransition(f"Cannot run from state {self._state.value}")

        shutdown = self.listener.wait()
        self._signal = shutdown
        logger.info(f"Shutdown requested by {shutdown.source}")
        if self.metrics is not None:
            self.metrics.shutdown_signals.labels(source=shutdown.source).inc()
        self._record("signal", shutdown.source, "received")
        self._advance(OrchestratorState.SHUTDOWN_REQUESTED)

        self.token.trigger()
        self._advance(OrchestratorState.DRAINING)
        self._drain()

        # Violations are reported after the tracker count drops, from the
        # worker thread, so collect them only once every thread has exited.
        for thread in self._threads:
            thread.join()
        extra_signals = self.listener.received - 1
        if extra_signals > 0:
            logger.debug(f"Ignored {extra_signals} duplicate shutdown requests")
        self.listener.close()

        if self._violations:
            names = ", ".join(str(v) for v in self._violations)
            raise ContractViolation(
                f"{len(self._violations)} worker(s) broke the tracker contract: {names}"
            ) from self._violations[0]

        self._advance(OrchestratorState.TERMINATED)
        return 0

    def _drain(self) -> None:
        started = time.monotonic()
        if self._late_ids:
            self._wait_draining(lambda handles: all(h.id in self._late_ids for h in handles), started)
            logger.info(f"Stopping {self.tracker.count} drain-last workers")
        self.late_token.trigger()
        self._wait_draining(lambda handles: not handles, started)

        elapsed = time.monotonic() - started
        if self.metrics is not None:
            self.metrics.drain_duration.observe(elapsed)
        logger.info(f"All workers drained in {elapsed:.3f}s")

    def _wait_draining(
        self,
        predicate: Callable[[List[WorkerHandle]], bool],
        started: float,
    ) -> None:
        while not self.tracker.wait_for(predicate, timeout=self.drain_log_interval):
            outstanding = self.tracker.outstanding()
            names = ", ".join(h.name for h in outstanding)
            logger.warning(
                f"Still draining {len(outstanding)} workers: {names}",
                extra={"elapsed": round(time.monotonic() - started, 3)},
            )

    def _advance(self, new_state: OrchestratorState) -> None:
        with self._state_lock:
            old_state = self._state
            if _NEXT_STATE.get(old_state) is not new_state:
                raise InvalidTransition(
                    f"Orchestrator cannot move from {old_state.value} to {new_state.value}"
                )
            self._state = new_state

        logger.info(f"Orchestrator {old_state.value} -> {new_state.value}")
        if self.metrics is not None:
            self.metrics.orchestrator_state.state(new_state.value)
        self._record("orchestrator", "orchestrator", new_state.value)
        for callback in list(self._state_listeners):
            try:
                callback(old_state, new_state)
            except Exception as e:
                logger.error(f"Error notifying state listener: {e}")

    def _on_worker_transition(
        self,
        handle: WorkerHandle,
        old_state: Optional[WorkerState],
        new_state: WorkerState,
    ) -> None:
        previous = old_state.value if old_state is not None else "new"
        logger.info(
            f"Worker {handle.name} {previous} -> {new_state.value}",
            extra={"worker": handle.name},
        )
        if self.metrics is not None:
            self.metrics.worker_transitions.labels(state=new_state.value).inc()
            if new_state is WorkerState.REGISTERED:
                self.metrics.outstanding_workers.inc()
            elif new_state is WorkerState.COMPLETED:
                self.metrics.outstanding_workers.dec()
        self._record("worker", handle.name, new_state.value)

    def _on_cleanup_error(self, handle: WorkerHandle, error: BaseException) -> None:
        if self.metrics is not None:
            self.metrics.cleanup_failures.labels(error_type=type(error).__name__).inc()
        self._record("worker", handle.name, "cleanup_failed", detail=str(error))

    def _on_contract_violation(self, handle: WorkerHandle, error: ContractViolation) -> None:
        self._violations.append(error)
        logger.critical(f"Worker {handle.name} deregistered twice: {error}", extra={"worker": handle.name})
        self._record("worker", handle.name, "contract_violation", detail=str(error))

    def _record(self, kind: str, subject: str, state: str, detail: Optional[str] = None) -> None:
        if self.history is not None:
            self.history.record(kind, subject, state, detail=detail)

    def snapshot(self) -> Dict[str, Any]:
        """Point-in-time view used by the status API."""
        outstanding = self.tracker.outstanding()
        return {
            "state": self._state.value,
            "cancelled": self.token.is_cancelled(),
            "outstanding": len(outstanding),
            "workers": [{"name": h.name, "state": h.state.value} for h in outstanding],
        }
