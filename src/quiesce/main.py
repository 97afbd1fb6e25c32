"""Main application entry point for the quiesce service."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI

from . import __version__
from .api import health
from .api.metrics import LifecycleMetrics, create_metrics_router
from .config.loader import load_config
from .config.settings import Settings
from .core.errors import ContractViolation, InvalidTransition, SignalSubscriptionError
from .core.orchestrator import ShutdownOrchestrator
from .core.signals import SignalListener
from .history.lifecycle_log import LifecycleLog
from .utils.logging import setup_logging, get_logger
from .workers.heartbeat import HeartbeatWorker
from .workers.status_server import StatusServerWorker

logger = get_logger(__name__)


def create_app(
    orchestrator: ShutdownOrchestrator,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create the status API for an orchestrator.

    Args:
        orchestrator: Orchestrator whose lifecycle is reported
        settings: Optional settings; controls the app title and docs

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )
    app.state.orchestrator = orchestrator
    app.state.history = orchestrator.history

    app.include_router(health.router, tags=["health"])
    if orchestrator.metrics is not None:
        app.include_router(create_metrics_router(orchestrator.metrics), tags=["monitoring"])

    return app


def build_orchestrator(settings: Settings) -> ShutdownOrchestrator:
    """Assemble an orchestrator with the workers described by ``settings``."""
    listener = SignalListener(
        signals=settings.shutdown.signals,
        poll_interval=settings.shutdown.listener_poll_interval,
    )
    orchestrator = ShutdownOrchestrator(
        listener=listener,
        history=LifecycleLog(max_size=settings.history.max_size),
        metrics=LifecycleMetrics(),
        drain_log_interval=settings.shutdown.drain_log_interval,
    )

    for index in range(settings.workers.count):
        orchestrator.add_worker(HeartbeatWorker(
            name=f"heartbeat-{index + 1}",
            poll_interval=settings.workers.poll_interval,
            step_duration=settings.workers.step_duration,
            cleanup_duration=settings.workers.cleanup_duration,
        ))

    if settings.api.enabled:
        orchestrator.add_worker(StatusServerWorker(
            create_app(orchestrator, settings),
            host=settings.api.host,
            port=settings.api.port,
            poll_interval=settings.workers.poll_interval,
        ))

    return orchestrator


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="quiesce",
        description="Run workers until SIGINT/SIGTERM, then drain them before exiting.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a TOML configuration file")
    parser.add_argument("--workers", type=int, default=None, help="Number of heartbeat workers")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for running the service.

    Returns:
        Process exit status: 0 once every worker has drained, 1 on a fatal
        startup error or a broken lifecycle contract
    """
    args = parse_args(argv)
    try:
        settings = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Cannot load configuration: {e}")
        return 1
    if args.workers is not None:
        settings.workers.count = max(0, args.workers)

    setup_logging(settings)
    logger.info(f"Starting {settings.app_name}", extra={"version": __version__})

    orchestrator = build_orchestrator(settings)
    try:
        return orchestrator.run()
    except SignalSubscriptionError as e:
        logger.critical(f"Cannot subscribe to shutdown signals: {e}")
        return 1
    except (ContractViolation, InvalidTransition):
        logger.exception("Shutdown sequence aborted by a lifecycle contract violation")
        return 1


if __name__ == "__main__":
    sys.exit(main())
