"""Health check endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text

from linksplit.database import get_db
from linksplit.services.link_cache import LinkCache, get_link_cache

router = APIRouter()


@router.get("/health")
@router.head("/health")
async def health_check():
    """Basic health check."""
    return {"status": "healthy", "service": "linksplit"}


@router.get("/health/detailed")
async def detailed_health_check(
    db: Session = Depends(get_db),
    cache: LinkCache = Depends(get_link_cache)
):
    """
    Detailed health check including database and link cache connectivity.

    Redirects keep working without Redis, so a cache outage reports the
    service as degraded rather than unhealthy.
    """
    checks = {
        "api": "healthy",
        "database": "unknown",
        "link_cache": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    if not cache.enabled:
        checks["link_cache"] = "disabled"
    else:
        try:
            cache.redis.ping()
            checks["link_cache"] = "healthy"
        except Exception as e:
            checks["link_cache"] = f"unhealthy: {str(e)}"

    if checks["database"] != "healthy":
        overall_status = "unhealthy"
    elif checks["link_cache"] not in ("healthy", "disabled"):
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "checks": checks
    }
