"""Write-once cancellation token shared by every worker."""

import threading
import time
from enum import Enum
from typing import Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)


class TokenState(str, Enum):
    """Lifecycle of a cancellation token."""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class CancellationToken:
    """Multi-reader, write-once cancellation latch.

    Readers call :meth:`is_cancelled` between units of work. The read never
    blocks and never takes a lock. Writers call :meth:`trigger`; only the
    first call performs the ``ACTIVE -> CANCELLED`` transition, every later
    or concurrent call is a no-op.
    """

    def __init__(self, name: str = "shutdown"):
        """Initialize an active token.

        Args:
            name: Label used in log messages
        """
        self.name = name
        self._event = threading.Event()
        self._trigger_lock = threading.Lock()
        self._cancelled_at: Optional[float] = None

    @property
    def state(self) -> TokenState:
        """Current token state."""
        return TokenState.CANCELLED if self._event.is_set() else TokenState.ACTIVE

    @property
    def cancelled_at(self) -> Optional[float]:
        """Monotonic timestamp of the transition, or None while active."""
        return self._cancelled_at

    def is_cancelled(self) -> bool:
        """Return True once the token has been triggered."""
        return self._event.is_set()

    def trigger(self) -> bool:
        """Cancel the token.

        Safe to call any number of times from any thread.

        Returns:
            True if this call performed the transition, False if the token
            was already cancelled
        """
        with self._trigger_lock:
            if self._event.is_set():
                return False
            self._cancelled_at = time.monotonic()
            # The timestamp is written before the event so any reader that
            # sees CANCELLED also sees cancelled_at.
            self._event.set()
        logger.info(f"Cancellation token '{self.name}' triggered")
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or until ``timeout`` seconds pass.

        Workers use this to sleep their poll interval without delaying
        their reaction to cancellation.

        Args:
            timeout: Maximum seconds to wait, None waits forever

        Returns:
            True if the token is cancelled
        """
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"CancellationToken(name={self.name!r}, state={self.state.value})"
