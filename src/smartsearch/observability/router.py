"""Operational endpoints: Prometheus scrape, health and readiness."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from ..database import get_db
from .health import HealthStatus, check_database_health, collect_health

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", summary="Health check endpoint")
def health_check(db: Session = Depends(get_db)):
    """200 when healthy or degraded, 503 when the database is down."""
    report = collect_health(db)
    status_code = 503 if report["status"] == HealthStatus.UNHEALTHY.value else 200
    return JSONResponse(content=report, status_code=status_code)


@router.get("/ready", summary="Readiness check endpoint")
def readiness_check(db: Session = Depends(get_db)):
    """Ready as soon as the database answers."""
    database = check_database_health(db)
    if database.status != HealthStatus.HEALTHY:
        return JSONResponse(content={"status": "not_ready", "message": database.message}, status_code=503)
    return {"status": "ready", "message": "Search service is ready to serve traffic"}
