"""
Health and Monitoring Router.

Public, unauthenticated endpoints for liveness probes and operators.

Endpoints Provided:
- `/healthcheck`: lightweight liveness check in the standard response envelope.
- `/monitoring/ping`: simple connectivity test.
- `/monitoring/detailed`: component status for the database and asset store
  plus host resource usage (psutil). An unreachable database marks the
  service "degraded" instead of failing the request.
"""

from datetime import datetime, timezone
from typing import Any, Dict

import psutil
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.database import get_database_info, get_session_factory
from core.logging_config import get_logger
from core.responses import api_response
from providers.asset_store import AssetStore

from .dependencies import get_asset_store

logger = get_logger(__name__)

VERSION = "1.0.0"
SERVICE_NAME = "VidShare API"

health_router = APIRouter(tags=["Health & Monitoring"])

monitoring_router = APIRouter(prefix="/monitoring", tags=["Health & Monitoring"])


def system_stats() -> Dict[str, Any]:
    """Current host CPU, memory and disk usage"""
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")
    return {
        "cpu": {"percent": psutil.cpu_percent(interval=None), "count": psutil.cpu_count()},
        "memory": {
            "total_bytes": memory.total,
            "available_bytes": memory.available,
            "percent": memory.percent,
        },
        "disk": {
            "total_bytes": disk.total,
            "free_bytes": disk.free,
            "percent": round((disk.used / disk.total) * 100, 2) if disk.total else 0,
        },
    }


@health_router.get("/healthcheck")
async def health_check():
    """Basic health check endpoint (no authentication required)"""
    logger.debug("Health check requested")
    return api_response(200, {"status": "Ok"}, "Health check passed")


@monitoring_router.get("/ping")
async def ping() -> Dict[str, str]:
    """Simple ping endpoint for connectivity testing"""
    logger.debug("Ping requested")
    return {
        "message": "pong",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
    }


@monitoring_router.get("/detailed")
async def detailed_health_check(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    asset_store: AssetStore = Depends(get_asset_store),
) -> Dict[str, Any]:
    """Detailed health check with component status"""
    logger.info("Detailed health check requested")

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "service": SERVICE_NAME,
        "components": {},
    }

    db_info = await get_database_info(session_factory)
    db_healthy = db_info["connection_healthy"]
    health_status["components"]["database"] = {
        "status": "healthy" if db_healthy else "unhealthy",
        "info": db_info,
    }
    if not db_healthy:
        health_status["status"] = "degraded"

    health_status["components"]["asset_store"] = {
        "status": "healthy",
        "source": asset_store.source_name,
    }

    try:
        health_status["components"]["system"] = {
            "status": "healthy",
            "stats": system_stats(),
        }
    except (psutil.Error, OSError) as e:
        logger.warning(f"System stats unavailable (non-critical): {e}")
        health_status["components"]["system"] = {
            "status": "unavailable",
            "error": str(e),
        }

    return health_status
