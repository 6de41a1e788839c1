"""
FastAPI liveness application for the stock monitor.
"""

from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from api.models import HealthResponse, LastCycleInfo
from scheduler import __version__
from scheduler.models import CollectionStatus
from scheduler.scheduler_service import RunCoordinator


def create_app(coordinator: Optional[RunCoordinator] = None) -> FastAPI:
    """
    Create the liveness application.

    Args:
        coordinator: Run coordinator whose state is reported on /health

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="Stock Monitor",
        description="Keep-alive and health endpoints for the catalog stock monitor.",
        version=__version__,
    )
    app.state.coordinator = coordinator

    @app.get("/", response_class=PlainTextResponse, tags=["Health"])
    async def root() -> str:
        """Keep-alive endpoint."""
        return "Stock monitor running"

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        coordinator = app.state.coordinator
        if coordinator is None:
            return HealthResponse(
                status="starting",
                timestamp=datetime.utcnow(),
                version=__version__
            )

        last_cycle = None
        status = "healthy"
        result = coordinator.last_result
        if result is not None:
            failed = sum(1 for o in result.outcomes if o.status != CollectionStatus.UPDATED)
            last_cycle = LastCycleInfo(
                cycle_id=result.cycle_id,
                started_at=result.started_at,
                finished_at=result.finished_at,
                success=result.success,
                new_items=result.new_item_count,
                failed_collections=failed,
                summary_delivered=result.summary_delivered
            )
            if not result.success or result.summary_delivered is False:
                status = "degraded"

        return HealthResponse(
            status=status,
            timestamp=datetime.utcnow(),
            version=__version__,
            cycle_running=coordinator.is_running,
            last_cycle=last_cycle
        )

    return app
