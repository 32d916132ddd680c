"""Metrics and health endpoints."""

import logging
import time

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def _check_database(db: Session) -> dict:
    start = time.time()
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "latency_ms": round((time.time() - start) * 1000, 2)}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "message": str(e)}


def _check_storage(request: Request) -> dict:
    storage = getattr(request.app.state, "storage", None)
    if storage is None or not hasattr(storage, "check_bucket"):
        return {"status": "degraded", "message": "Object storage not configured"}
    if storage.check_bucket():
        return {"status": "healthy"}
    return {"status": "unhealthy", "message": "Bucket not reachable"}


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)):
    """Report database and object storage health; 503 if any component is unhealthy."""
    components = {
        "database": _check_database(db),
        "object_storage": _check_storage(request),
    }
    statuses = {c["status"] for c in components.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return JSONResponse(
        content={"status": overall, "components": components},
        status_code=503 if overall == "unhealthy" else 200,
    )
