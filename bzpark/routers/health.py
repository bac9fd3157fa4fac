# bzpark/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB, and ESP8266 reachability when polling is on.
"""

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bzpark.config import settings
from bzpark.database import get_db
from bzpark.utils.logger import get_logger
from bzpark.utils.responses import timestamp

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", summary="System health check")
async def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity (503 when unreachable)
    - ESP8266 reachability, if the poller is enabled
    """
    result = {
        "success": True,
        "message": "BZpark API is healthy",
        "timestamp": timestamp(),
        "data": {"backend": "ok", "database": "unknown"},
    }
    code = status.HTTP_200_OK

    try:
        db.execute(text("SELECT 1"))
        result["data"]["database"] = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check: database unreachable: {e}")
        result["data"]["database"] = "unreachable"
        result["success"] = False
        result["message"] = "Database unreachable"
        code = status.HTTP_503_SERVICE_UNAVAILABLE

    if settings.ESP8266_POLLING_ENABLED:
        try:
            async with httpx.AsyncClient(timeout=3) as client:
                resp = await client.get(f"{settings.ESP8266_BASE_URL.rstrip('/')}/")
            result["data"]["esp8266"] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
        except httpx.HTTPError:
            result["data"]["esp8266"] = "unreachable"

    return JSONResponse(status_code=code, content=result)
