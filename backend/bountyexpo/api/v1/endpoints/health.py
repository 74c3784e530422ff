"""
Health Check Endpoints

- /health/live  - the process is up
- /health/ready - the database answers and every model table exists
"""

import time
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from bountyexpo.core.config import settings
from bountyexpo.core.database import missing_tables
from bountyexpo.core.logging_config import logger

router = APIRouter(prefix="/health", tags=["Health Checks"])


@router.get("/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "app": settings.APP_NAME,
    }


@router.get("/ready")
async def readiness_check():
    """200 when the service can take traffic, 503 otherwise"""
    started = time.perf_counter()
    database = {}
    try:
        missing = await missing_tables()
        database["status"] = "healthy" if not missing else "schema_incomplete"
        if missing:
            database["missing_tables"] = missing
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Readiness: database unreachable: {e}")
        database = {"status": "unreachable", "error": str(e)}
    database["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)

    ready = database["status"] == "healthy"
    body = {
        "status": "ready" if ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {"database": database},
    }
    if not ready:
        logger.warning(f"Readiness check failed: {database['status']}")
    return JSONResponse(status_code=200 if ready else 503, content=body)
