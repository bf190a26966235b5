import time
from datetime import datetime, UTC

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.db.postgres import check_postgres_health
from app.dependencies import AppContext, get_context

router = APIRouter()

SERVICE_NAME = "options-desk-api"


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    service: str
    version: str


class DetailedHealthResponse(HealthResponse):
    database: str
    environment: str
    uptime_seconds: float


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health(context: AppContext = Depends(get_context)):
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        service=SERVICE_NAME,
        version=context.settings.VERSION
    )


@router.get("/health/detailed", response_model=DetailedHealthResponse, status_code=status.HTTP_200_OK)
async def health_detailed(context: AppContext = Depends(get_context)):
    database_healthy = await check_postgres_health(context.engine)

    return DetailedHealthResponse(
        status="healthy" if database_healthy else "degraded",
        timestamp=datetime.now(UTC),
        service=SERVICE_NAME,
        version=context.settings.VERSION,
        database="healthy" if database_healthy else "unhealthy",
        environment=context.settings.ENVIRONMENT,
        uptime_seconds=time.monotonic() - context.started_at
    )
