"""
API module for quiesce.

HTTP endpoints reporting the shutdown lifecycle: health probes and
Prometheus metrics.
"""

from . import health, metrics

__all__ = ["health", "metrics"]
