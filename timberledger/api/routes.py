"""Service-level endpoints: welcome and health."""

from datetime import datetime, timezone

from fastapi import APIRouter, status

from timberledger import __version__
from timberledger.api.responses import respond
from timberledger.database import health_check as db_health_check

router = APIRouter()


@router.get("/")
async def root():
    """Welcome message."""
    return respond("Welcome to the Timber Ledger API", data={"version": __version__})


@router.get("/health")
async def health_check():
    """Health check endpoint.

    Returns:
        Service and database status; 503 when the database is unreachable
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    db_healthy = await db_health_check()
    health_status["database"] = "healthy" if db_healthy else "unhealthy"

    if health_status["database"] != "healthy":
        health_status["status"] = "degraded"
        return respond(
            "Service is degraded",
            data=health_status,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return respond("Service is healthy", data=health_status)
