"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from src.database import check_database_connection

router = APIRouter(tags=["Health"])


async def _database_probe(ok_status: str, failed_status: str) -> Response:
    db_connected = await check_database_connection()
    if db_connected:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": ok_status, "database": "connected"},
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": failed_status, "database": "disconnected"},
    )


@router.get("/health", response_model=None)
async def health_check() -> Response:
    """Health check including control-plane database status.

    Site teardown cannot remove site records without the database, so a
    disconnected database reports ``degraded`` with 503.
    """
    return await _database_probe("healthy", "degraded")


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """Liveness probe: the process is up. No dependency checks."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_probe() -> Response:
    """Readiness probe: ready when the database answers."""
    return await _database_probe("ready", "not_ready")
