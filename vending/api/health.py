from fastapi import APIRouter, Depends
import logging

from vending.api.deps import get_container
from vending.container import Container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Basic health check endpoint."
)
async def health_check():
    """Simple health check."""
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if all services (DB, Redis) are ready."
)
async def readiness_check(container: Container = Depends(get_container)):
    """
    Readiness check for all dependencies.

    Returns status of:
    - Database connection
    - Redis connection (reported as disabled when no Redis URL is configured)
    """
    checks = {
        "database": False,
        "redis": False if container.cache.enabled else "disabled"
    }

    # Check database
    try:
        checks["database"] = await container.database.ping()
    except Exception as e:
        logger.warning(f"Database readiness check failed: {e}")
        checks["database_error"] = str(e)

    # Check Redis
    if container.cache.enabled:
        try:
            checks["redis"] = await container.cache.ping()
        except Exception as e:
            logger.warning(f"Redis readiness check failed: {e}")
            checks["redis_error"] = str(e)

    # Determine overall status
    all_healthy = checks["database"] is True and checks["redis"] in (True, "disabled")

    return {
        "status": "ready" if all_healthy else "not_ready",
        "checks": checks
    }
