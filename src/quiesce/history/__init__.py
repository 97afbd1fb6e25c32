"""Lifecycle history for the shutdown coordinator."""

from .lifecycle_log import LifecycleEvent, LifecycleLog

__all__ = ["LifecycleEvent", "LifecycleLog"]
