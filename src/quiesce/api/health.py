"""Health check endpoints reporting the shutdown lifecycle."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from .. import __version__
from ..core.orchestrator import OrchestratorState, ShutdownOrchestrator
from ..dependencies import get_history, get_orchestrator
from ..history.lifecycle_log import LifecycleLog
from ..utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class WorkerStatus(BaseModel):
    """State of one outstanding worker."""
    name: str
    state: str


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    version: str
    state: str
    cancelled: bool
    outstanding: int
    workers: List[WorkerStatus]


_STATUS_BY_STATE = {
    OrchestratorState.STARTING: "starting",
    OrchestratorState.RUNNING: "healthy",
    OrchestratorState.SHUTDOWN_REQUESTED: "draining",
    OrchestratorState.DRAINING: "draining",
    OrchestratorState.TERMINATED: "terminated",
}


@router.get(
    "/health",
    response_model=HealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    description="Report the orchestrator state and the workers still outstanding"
)
async def health_check(
    orchestrator: ShutdownOrchestrator = Depends(get_orchestrator),
) -> HealthStatus:
    """Return the current shutdown lifecycle status."""
    snapshot = orchestrator.snapshot()
    return HealthStatus(
        status=_STATUS_BY_STATE[orchestrator.state],
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        **snapshot
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness check for Kubernetes"
)
async def liveness():
    """Simple liveness probe."""
    return {"status": "alive"}


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Ready while running; 503 once shutdown has been requested"
)
async def readiness(
    response: Response,
    orchestrator: ShutdownOrchestrator = Depends(get_orchestrator),
):
    """Readiness probe: stop routing traffic as soon as draining starts."""
    if orchestrator.state is OrchestratorState.RUNNING:
        return {"status": "ready"}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "not_ready", "state": orchestrator.state.value}


@router.get(
    "/health/events",
    summary="Lifecycle history",
    description="Recent orchestrator, worker and signal events, oldest first"
)
async def lifecycle_events(
    limit: Optional[int] = Query(default=None, ge=1),
    kind: Optional[str] = None,
    history: Optional[LifecycleLog] = Depends(get_history),
) -> Dict[str, Any]:
    """Return recorded lifecycle events."""
    if history is None:
        return {"events": []}
    events = history.get_events(limit=limit, kind=kind)
    return {"events": [event.to_dict() for event in events]}
