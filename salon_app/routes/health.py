"""
Health Routes
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import ENVIRONMENT
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_started_at = time.time()


@router.get("/health")
def health(db_check: bool = Query(False, alias="db"), db: Session = Depends(get_db)):
    """
    Health check. Pass ?db=true to include a database round-trip;
    a failing database answers 503 with status "degraded".
    """
    payload = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.time() - _started_at, 2),
        "environment": ENVIRONMENT,
        "database": {"connected": False, "latency": 0},
    }

    if not db_check:
        return payload

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        payload["database"] = {
            "connected": True,
            "latency": round((time.time() - start) * 1000, 2),
        }
        logger.info(f"✅ Health check: Database connected ({payload['database']['latency']}ms)")
    except SQLAlchemyError as e:
        logger.error(f"❌ Health check: Database connection failed: {e}")
        payload["status"] = "degraded"
        return JSONResponse(status_code=503, content=payload)

    return payload
