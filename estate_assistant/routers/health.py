"""
Health check routes for load balancers and orchestrators.
"""

import os
import platform
import resource
import sys
import time
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ..config import Settings
from ..database import Database, utcnow
from ..dependencies import get_ai_service, get_app_settings, get_broker_service, get_database
from ..services.ai_service import AIService
from ..services.broker_service import BrokerService
from ..utils.logger import performance_timer


logger = structlog.get_logger("estate_assistant.health")

router = APIRouter(prefix="/api/health", tags=["Health"])

# Liveness fails once the resident set grows beyond this
MEMORY_LIMIT_BYTES = 512 * 1024 * 1024


def _uptime(request: Request) -> float:
    return round(time.time() - request.app.state.started_at, 2)


STATM_PATH = "/proc/self/statm"


def _max_rss_bytes() -> int:
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Bytes on macOS, kilobytes elsewhere
    return max_rss if sys.platform == "darwin" else max_rss * 1024


def current_rss_bytes(statm_path: str = STATM_PATH) -> int:
    """Resident memory right now; falls back to the peak where /proc is unavailable."""
    try:
        with open(statm_path) as statm:
            resident_pages = int(statm.read().split()[1])
    except (OSError, IndexError, ValueError):
        return _max_rss_bytes()
    return resident_pages * os.sysconf("SC_PAGE_SIZE")


async def _database_health(database: Database) -> Dict[str, Any]:
    health = await database.get_health_status()
    return {
        "status": "healthy" if health["connected"] else "unhealthy",
        "connected": health["connected"],
        "backend": health["backend"],
        "database": health["database"],
        "poolSize": health["poolSize"],
        "poolAvailable": health["poolAvailable"],
        "lastQuery": health.get("lastQuery"),
    }


def _ai_service_health(ai_service: AIService) -> Dict[str, Any]:
    stats = ai_service.get_service_stats()
    return {
        "status": "healthy",
        "elevenLabsConfigured": stats["elevenLabsConfigured"],
        "aiModel": stats["model"],
        "requestCount": stats["requestCount"],
        "uptime": stats["uptime"],
        "averageRequestsPerMinute": stats["averageRequestsPerMinute"],
    }


async def _broker_service_health(broker_service: BrokerService) -> Dict[str, Any]:
    stats = await broker_service.get_service_stats()
    return {
        "status": "healthy",
        "activeListings": stats["activeListings"],
        "activeAgents": stats["activeAgents"],
        "averageListingPrice": stats["averageListingPrice"],
        "brokerLicense": stats["brokerLicense"],
        "lastUpdated": stats["lastUpdated"],
    }


def _system_health(request: Request) -> Dict[str, Any]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {
        "status": "healthy",
        "memory": {"rss": current_rss_bytes(), "maxRss": _max_rss_bytes()},
        "cpu": {"user": usage.ru_utime, "system": usage.ru_stime},
        "uptime": _uptime(request),
        "pid": os.getpid(),
    }


@router.get("")
async def health_check(request: Request, settings: Settings = Depends(get_app_settings)):
    """Basic health check."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "compliance": settings.COMPLIANCE_LEVEL,
        "timestamp": utcnow().isoformat(),
        "uptime": _uptime(request),
        "environment": settings.ENVIRONMENT,
    }


@router.get("/detailed")
async def detailed_health_check(
    request: Request,
    include_metrics: bool = Query(False, alias="includeMetrics"),
    settings: Settings = Depends(get_app_settings),
    database: Database = Depends(get_database),
    ai_service: AIService = Depends(get_ai_service),
    broker_service: BrokerService = Depends(get_broker_service)
):
    """Per-component health; 503 when any component is not healthy."""
    components: Dict[str, Any] = {}
    with performance_timer("detailed-health-check", "HealthRoutes") as timer:
        checks = (
            ("database", lambda: _database_health(database)),
            ("brokerService", lambda: _broker_service_health(broker_service)),
        )
        for name, check in checks:
            try:
                components[name] = await check()
            except Exception as e:
                logger.warning("Health check component failed", component_name=name, error=str(e))
                components[name] = {"status": "unhealthy", "error": str(e)}

        components["aiService"] = _ai_service_health(ai_service)
        components["system"] = _system_health(request)

        overall = "healthy" if all(c["status"] == "healthy" for c in components.values()) else "degraded"
        timer["overall_status"] = overall

    body: Dict[str, Any] = {
        "status": overall,
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "compliance": settings.COMPLIANCE_LEVEL,
        "timestamp": utcnow().isoformat(),
        "uptime": _uptime(request),
        "environment": settings.ENVIRONMENT,
        "components": components,
    }

    if include_metrics:
        body["metrics"] = {
            "python": {
                "version": platform.python_version(),
                "implementation": platform.python_implementation(),
                "platform": sys.platform,
                "arch": platform.machine(),
            },
            "system": {
                "loadAverage": list(os.getloadavg()),
                "cpuCount": os.cpu_count(),
            },
            "application": {
                "requestCount": ai_service.request_count,
                "databaseConnected": database.is_connected,
                "configurationValid": not settings.validate_configuration(),
            },
        }

    return JSONResponse(status_code=200 if overall == "healthy" else 503, content=body)


@router.get("/readiness")
async def readiness_check(
    settings: Settings = Depends(get_app_settings),
    database: Database = Depends(get_database)
):
    """Ready once the database is connected and the configuration is complete."""
    issues = settings.validate_configuration()
    if database.is_connected and not issues:
        return {"status": "ready", "timestamp": utcnow().isoformat()}

    return JSONResponse(
        status_code=503,
        content={
            "status": "not ready",
            "databaseConnected": database.is_connected,
            "issues": issues,
            "timestamp": utcnow().isoformat(),
        },
    )


@router.get("/liveness")
async def liveness_check(request: Request):
    """Alive while current resident memory stays under the limit."""
    rss = current_rss_bytes()
    if rss < MEMORY_LIMIT_BYTES:
        return {
            "status": "alive",
            "memoryUsage": rss,
            "uptime": _uptime(request),
            "timestamp": utcnow().isoformat(),
        }

    return JSONResponse(
        status_code=503,
        content={
            "status": "unhealthy",
            "reason": "Memory limit exceeded",
            "memoryUsage": rss,
            "timestamp": utcnow().isoformat(),
        },
    )
