"""Completion tracking for outstanding workers."""

import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Set

from ..utils.logging import get_logger
from .errors import ContractViolation, InvalidTransition

logger = get_logger(__name__)


class WorkerState(str, Enum):
    """Lifecycle of a tracked worker."""
    REGISTERED = "registered"
    RUNNING = "running"
    CLEANING_UP = "cleaning_up"
    COMPLETED = "completed"


_ORDER = {
    WorkerState.REGISTERED: 0,
    WorkerState.RUNNING: 1,
    WorkerState.CLEANING_UP: 2,
    WorkerState.COMPLETED: 3,
}

# (handle, old_state, new_state); old_state is None for a fresh registration
TransitionCallback = Callable[["WorkerHandle", Optional[WorkerState], WorkerState], None]


@dataclass(eq=False)
class WorkerHandle:
    """Identity and state of one registered worker."""
    id: int
    name: str
    state: WorkerState = WorkerState.REGISTERED
    _notify: Optional[TransitionCallback] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def transition(self, new_state: WorkerState) -> None:
        """Move the handle forward to ``new_state``.

        Raises:
            InvalidTransition: If the move is not forward
        """
        with self._lock:
            old_state = self.state
            if _ORDER[new_state] <= _ORDER[old_state]:
                raise InvalidTransition(
                    f"Worker {self.name} cannot move from {old_state.value} to {new_state.value}"
                )
            self.state = new_state
        if self._notify is not None:
            self._notify(self, old_state, new_state)

    @property
    def completed(self) -> bool:
        return self.state is WorkerState.COMPLETED


class CompletionTracker:
    """Thread-safe counter of outstanding workers.

    ``register()`` must be called by whoever launches a worker, before the
    worker's thread starts. ``deregister()`` must run on every exit path of
    the worker. ``wait()`` blocks until nothing is outstanding.
    """

    def __init__(self, on_transition: Optional[TransitionCallback] = None):
        """Initialize an empty tracker.

        Args:
            on_transition: Called with (handle, old_state, new_state) on every
                worker state change
        """
        self._cond = threading.Condition(threading.Lock())
        self._handles: Dict[int, WorkerHandle] = {}
        self._releasing: Set[int] = set()
        self._ids = itertools.count(1)
        self._on_transition = on_transition

    @property
    def count(self) -> int:
        """Number of registered workers that have not deregistered."""
        with self._cond:
            return len(self._handles)

    def outstanding(self) -> List[WorkerHandle]:
        """Snapshot of the handles still being tracked."""
        with self._cond:
            return list(self._handles.values())

    def register(self, name: Optional[str] = None) -> WorkerHandle:
        """Register a worker that is about to be started.

        Args:
            name: Human readable worker name

        Returns:
            The new worker handle, in REGISTERED state
        """
        with self._cond:
            handle_id = next(self._ids)
            handle = WorkerHandle(
                id=handle_id,
                name=name or f"worker-{handle_id}",
                _notify=self._on_transition,
            )
            self._handles[handle_id] = handle
            outstanding = len(self._handles)
        logger.debug(f"Registered {handle.name} ({outstanding} outstanding)")
        if self._on_transition is not None:
            self._on_transition(handle, None, WorkerState.REGISTERED)
        return handle

    def deregister(self, handle: WorkerHandle) -> None:
        """Mark a worker as completed and stop tracking it.

        Args:
            handle: Handle previously returned by :meth:`register`

        Raises:
            ContractViolation: If the handle is unknown or already deregistered
        """
        with self._cond:
            tracked = self._handles.get(handle.id)
            if tracked is not handle or handle.id in self._releasing:
                raise ContractViolation(
                    f"deregister() called for {handle.name} without a matching register()"
                )
            self._releasing.add(handle.id)
        # The handle stays counted until its COMPLETED transition has been
        # reported, so wait() cannot return ahead of it.
        try:
            handle.transition(WorkerState.COMPLETED)
        finally:
            with self._cond:
                self._releasing.discard(handle.id)
                del self._handles[handle.id]
                outstanding = len(self._handles)
                self._cond.notify_all()
        logger.debug(f"Deregistered {handle.name} ({outstanding} outstanding)")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every registered worker has deregistered.

        Returns immediately when nothing is outstanding.

        Args:
            timeout: Maximum seconds to wait, None waits forever

        Returns:
            True if the count reached zero, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(lambda: not self._handles, timeout=timeout)

    def wait_for(
        self,
        predicate: Callable[[List[WorkerHandle]], bool],
        timeout: Optional[float] = None,
    ) -> bool:
        """Block until ``predicate(outstanding_handles)`` holds.

        The predicate is re-evaluated after every deregistration.

        Returns:
            True if the predicate held, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: predicate(list(self._handles.values())), timeout=timeout
            )

    @contextmanager
    def track(self, name: Optional[str] = None) -> Iterator[WorkerHandle]:
        """Register a worker for the duration of a ``with`` block.

        The handle is deregistered on every exit path, including exceptions.
        """
        handle = self.register(name)
        try:
            yield handle
        finally:
            self.deregister(handle)
