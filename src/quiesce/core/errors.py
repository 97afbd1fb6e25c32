"""Exceptions raised by the shutdown core."""


class QuiesceError(Exception):
    """Base class for shutdown coordination errors."""
    pass


class SignalSubscriptionError(QuiesceError):
    """Raised when the process cannot subscribe to interruption signals.

    This is fatal: startup must abort before any worker is registered.
    """
    pass


class ContractViolation(QuiesceError):
    """Raised when a caller breaks the tracker contract.

    The typical case is deregistering a handle that was never registered
    or was already deregistered, which would drive the counter negative.
    """
    pass


class InvalidTransition(QuiesceError):
    """Raised when a lifecycle state change skips or reverses a step."""
    pass
