from fastapi import APIRouter, HTTPException, status

from app.core.config import get_settings
from app.core.db import check_database_connection

router = APIRouter()
settings = get_settings()


@router.get("/healthz", summary="Health check")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health", summary="Service health with database probe")
async def service_health() -> dict:
    database_ready = await check_database_connection()
    return {
        "status": "ok" if database_ready else "degraded",
        "service": settings.project_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database_ready": database_ready,
    }


@router.get("/health/ready", summary="Readiness probe")
async def readiness_check() -> dict:
    """Only returns ok when the database answers."""
    if not await check_database_connection():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "database_ready": False},
        )
    return {"status": "ready", "database_ready": True}


@router.get("/health/live", summary="Liveness probe")
async def liveness_check() -> dict[str, str]:
    return {"status": "ok"}
