"""Adapter from OS interruption signals to a single shutdown event."""

import queue
import signal
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..utils.logging import get_logger
from .errors import SignalSubscriptionError

logger = get_logger(__name__)

DEFAULT_SIGNALS = ("SIGINT", "SIGTERM")


@dataclass(frozen=True)
class ShutdownSignal:
    """A request to stop the process.

    ``source`` names what raised it (``SIGTERM``, ``manual``...) and is only
    informational: every ShutdownSignal compares equal to every other.
    """
    source: str = field(default="manual", compare=False)


def resolve_signal(name: str) -> signal.Signals:
    """Map a signal name such as ``SIGTERM`` or ``term`` to its enum member.

    Raises:
        SignalSubscriptionError: If the platform has no such signal
    """
    normalized = name.strip().upper()
    if not normalized.startswith("SIG"):
        normalized = f"SIG{normalized}"
    try:
        return signal.Signals[normalized]
    except KeyError:
        raise SignalSubscriptionError(f"Unknown signal: {name}") from None


class SignalListener:
    """Collapse SIGINT/SIGTERM into :class:`ShutdownSignal` events.

    Handlers only enqueue. The queue is a ``queue.SimpleQueue`` because its
    ``put`` is reentrant and may run inside a signal handler that interrupted
    the thread blocked in :meth:`wait`.
    """

    def __init__(self, signals: Iterable[str] = DEFAULT_SIGNALS, poll_interval: float = 0.5):
        """Initialize the listener without installing anything.

        Args:
            signals: Signal names to subscribe to
            poll_interval: Upper bound on a single blocking queue read in
                :meth:`wait`; bounds how long a platform that does not
                interrupt blocking reads can delay handler delivery
        """
        self.signal_names: List[str] = list(signals)
        self.poll_interval = poll_interval
        self._events: "queue.SimpleQueue[ShutdownSignal]" = queue.SimpleQueue()
        self._previous: Dict[signal.Signals, Any] = {}
        # list.append is atomic and takes no lock, so it is safe from both
        # notify() threads and the signal handler.
        self._sources: List[str] = []

    @property
    def subscribed(self) -> bool:
        return bool(self._previous)

    @property
    def received(self) -> int:
        """Number of events raised so far, consumed or not."""
        return len(self._sources)

    def subscribe(self) -> None:
        """Install handlers for every configured signal.

        Raises:
            SignalSubscriptionError: If any handler cannot be installed. Handlers
                installed before the failure are restored.
        """
        if self.subscribed:
            return
        if threading.current_thread() is not threading.main_thread():
            raise SignalSubscriptionError(
                "Signal handlers can only be installed from the main thread"
            )
        if not self.signal_names:
            raise SignalSubscriptionError("No signals configured")

        try:
            for name in self.signal_names:
                signum = resolve_signal(name)
                if signum in self._previous:
                    continue
                try:
                    self._previous[signum] = signal.signal(signum, self._handle)
                except (OSError, ValueError, RuntimeError) as e:
                    raise SignalSubscriptionError(f"Cannot subscribe to {signum.name}: {e}") from e
        except SignalSubscriptionError:
            self.close()
            raise

        names = ", ".join(s.name for s in self._previous)
        logger.info(f"Listening for shutdown signals: {names}")

    def _handle(self, signum: int, frame: Any) -> None:
        source = signal.Signals(signum).name
        self._sources.append(source)
        self._events.put(ShutdownSignal(source=source))

    def notify(self, source: str = "manual") -> None:
        """Raise a shutdown event without an OS signal."""
        self._sources.append(source)
        self._events.put(ShutdownSignal(source=source))

    def wait(self, timeout: Optional[float] = None) -> Optional[ShutdownSignal]:
        """Block until the next shutdown event.

        Args:
            timeout: Maximum seconds to wait, None waits forever

        Returns:
            The event, or None if the timeout expired
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            step = self.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                step = min(step, remaining)
            try:
                return self._events.get(timeout=step)
            except queue.Empty:
                continue

    def close(self) -> None:
        """Restore the handlers that were installed before :meth:`subscribe`."""
        if not self._previous:
            return
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Cannot restore signal handlers outside the main thread")
            return
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()
        logger.debug("Signal handlers restored")

    def __enter__(self) -> "SignalListener":
        self.subscribe()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
