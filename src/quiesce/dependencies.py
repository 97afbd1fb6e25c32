"""FastAPI dependency providers.

The orchestrator and its lifecycle log are attached to ``app.state`` by
:func:`quiesce.main.create_app`; these providers read them back so route
handlers never touch module-level state.
"""

from typing import Optional

from fastapi import HTTPException, Request, status

from .core.orchestrator import ShutdownOrchestrator
from .history.lifecycle_log import LifecycleLog


def get_orchestrator(request: Request) -> ShutdownOrchestrator:
    """Get the orchestrator served by this application."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Orchestrator not attached"
        )
    return orchestrator


def get_history(request: Request) -> Optional[LifecycleLog]:
    """Get the lifecycle log, if one is configured."""
    return getattr(request.app.state, "history", None)
