"""
SiteLog Backend: Health Check Route
======================================

What:  GET /health for monitoring and load balancer probes.
How:   Always answers {"status": "ok"} while the process serves requests,
       and reports database reachability alongside it so monitoring can
       alert on a lost database without the probe taking the instance
       out of rotation.
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from sitelog import __version__
from sitelog.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    try:
        await request.app.state.database.ping()
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status="ok",
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
