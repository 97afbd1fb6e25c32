"""Cooperative worker threads that drain on cancellation."""

from typing import Callable, Optional

from ..utils.logging import get_logger
from .cancellation import CancellationToken
from .errors import ContractViolation
from .tracker import CompletionTracker, WorkerHandle, WorkerState

logger = get_logger(__name__)

CleanupErrorCallback = Callable[[WorkerHandle, BaseException], None]
ContractViolationCallback = Callable[[WorkerHandle, ContractViolation], None]


class Worker:
    """A unit of concurrent work.

    Subclasses implement :meth:`step`, one bounded unit of work, and may
    override :meth:`setup` and :meth:`cleanup`. The token is checked before
    every step, so a worker notices cancellation at most one ``step()`` plus
    one ``poll_interval`` after it happens. The reaction is not instantaneous.
    """

    # Workers with drain_last set are only cancelled once every other worker
    # has deregistered.
    drain_last = False

    def __init__(self, name: Optional[str] = None, poll_interval: float = 0.5):
        """Initialize worker.

        Args:
            name: Worker name, used for the thread and in logs
            poll_interval: Seconds to idle between steps
        """
        self.name = name or type(self).__name__
        self.poll_interval = poll_interval
        self.steps = 0
        self.failure: Optional[BaseException] = None
        self.cleanup_error: Optional[BaseException] = None

    def setup(self) -> None:
        """Acquire resources before the first step."""

    def step(self) -> None:
        """Run one unit of work."""
        raise NotImplementedError

    def cleanup(self) -> None:
        """Release resources after the work loop exits."""

    def run(
        self,
        token: CancellationToken,
        tracker: CompletionTracker,
        handle: WorkerHandle,
        on_cleanup_error: Optional[CleanupErrorCallback] = None,
        on_contract_violation: Optional[ContractViolationCallback] = None,
    ) -> None:
        """Thread body: work until cancelled, clean up, deregister.

        ``handle`` must already be registered with ``tracker``. It is
        deregistered on every exit path, once cleanup has finished or the
        worker has stopped for good.

        Args:
            token: Shared cancellation token
            tracker: Tracker that issued ``handle``
            handle: This worker's registration
            on_cleanup_error: Called when cleanup raises; the error is not
                propagated
            on_contract_violation: Called when deregistration finds the
                handle already released, e.g. by cleanup itself; without it
                the ContractViolation propagates
        """
        try:
            handle.transition(WorkerState.RUNNING)
            try:
                self.setup()
                self._work_loop(token)
            except Exception as e:
                self.failure = e
                logger.exception(
                    f"Worker {self.name} stopped after an error",
                    extra={"worker": self.name},
                )

            handle.transition(WorkerState.CLEANING_UP)
            try:
                self.cleanup()
            except Exception as e:
                self.cleanup_error = e
                logger.exception(
                    f"Cleanup failed for worker {self.name}",
                    extra={"worker": self.name},
                )
                if on_cleanup_error is not None:
                    on_cleanup_error(handle, e)
        finally:
            try:
                tracker.deregister(handle)
            except ContractViolation as e:
                if on_contract_violation is None:
                    raise
                logger.error(
                    f"Worker {self.name} broke the tracker contract: {e}",
                    extra={"worker": self.name},
                )
                on_contract_violation(handle, e)

    def _work_loop(self, token: CancellationToken) -> None:
        while not token.is_cancelled():
            self.step()
            self.steps += 1
            if token.wait(self.poll_interval):
                break
        logger.debug(f"Worker {self.name} observed cancellation after {self.steps} steps")


class FunctionWorker(Worker):
    """Worker built from plain callables."""

    def __init__(
        self,
        step: Callable[[], None],
        cleanup: Optional[Callable[[], None]] = None,
        setup: Optional[Callable[[], None]] = None,
        name: Optional[str] = None,
        poll_interval: float = 0.5,
    ):
        super().__init__(name=name or getattr(step, "__name__", None), poll_interval=poll_interval)
        self._step = step
        self._cleanup = cleanup
        self._setup = setup

    def setup(self) -> None:
        if self._setup is not None:
            self._setup()

    def step(self) -> None:
        self._step()

    def cleanup(self) -> None:
        if self._cleanup is not None:
            self._cleanup()
