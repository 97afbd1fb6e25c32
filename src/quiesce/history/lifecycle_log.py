"""Lifecycle history buffer for orchestrator and worker transitions."""

import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LifecycleEvent:
    """Represents a single lifecycle transition."""
    id: str
    kind: str
    subject: str
    state: str
    timestamp: datetime
    detail: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'kind': self.kind,
            'subject': self.subject,
            'state': self.state,
            'timestamp': self.timestamp.isoformat(),
            'detail': self.detail,
            'extra': dict(self.extra),
        }


class LifecycleLog:
    """Thread-safe circular buffer of lifecycle events."""

    def __init__(self, max_size: int = 100):
        """Initialize lifecycle log.

        Args:
            max_size: Maximum number of events to keep
        """
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._buffer = deque(maxlen=max_size)
        self._lock = threading.RLock()
        self._observers: List[Callable[[LifecycleEvent], None]] = []

    def record(
        self,
        kind: str,
        subject: str,
        state: str,
        detail: Optional[str] = None,
        **extra: Any,
    ) -> LifecycleEvent:
        """Append an event to the log.

        Args:
            kind: Event category (``orchestrator``, ``worker``, ``signal``...)
            subject: What the event is about, e.g. a worker name
            state: New state or outcome
            detail: Optional free-form description

        Returns:
            The created LifecycleEvent
        """
        event = LifecycleEvent(
            id=str(uuid.uuid4()),
            kind=kind,
            subject=subject,
            state=state,
            timestamp=datetime.now(timezone.utc),
            detail=detail,
            extra=extra,
        )

        with self._lock:
            self._buffer.append(event)
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(event)
            except Exception as e:
                logger.error(f"Error notifying lifecycle observer: {e}")

        return event

    def get_events(self, limit: Optional[int] = None, kind: Optional[str] = None) -> List[LifecycleEvent]:
        """Get recorded events, oldest first.

        Args:
            limit: Return at most this many of the most recent events
            kind: Only return events of this kind
        """
        with self._lock:
            events = list(self._buffer)

        if kind is not None:
            events = [e for e in events if e.kind == kind]
        if limit:
            events = events[-limit:]
        return events

    def states_for(self, subject: str) -> List[str]:
        """Ordered list of states recorded for one subject."""
        return [e.state for e in self.get_events() if e.subject == subject]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def add_observer(self, callback: Callable[[LifecycleEvent], None]) -> None:
        with self._lock:
            self._observers.append(callback)

    def remove_observer(self, callback: Callable[[LifecycleEvent], None]) -> None:
        with self._lock:
            if callback in self._observers:
                self._observers.remove(callback)

    @property
    def size(self) -> int:
        """Get current number of events in the log."""
        with self._lock:
            return len(self._buffer)
