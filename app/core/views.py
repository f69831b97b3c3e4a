"""
Infrastructure endpoints that sit outside the AI domain.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)

HEALTH_CACHE_KEY = "health_check"


def _database_ok() -> bool:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        return False
    return True


def _cache_ok() -> bool:
    # django-redis runs with IGNORE_EXCEPTIONS, so an outage shows up as a miss
    cache.set(HEALTH_CACHE_KEY, "ok", timeout=1)
    return cache.get(HEALTH_CACHE_KEY) == "ok"


def health_check(request):
    """
    Liveness/readiness probe.

    The database is required; the cache only degrades the report.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "disconnected"}
    """
    database_ok = _database_ok()
    body = {
        "status": "healthy" if database_ok else "unhealthy",
        "database": "connected" if database_ok else "disconnected",
        "cache": "connected" if _cache_ok() else "disconnected",
    }
    return JsonResponse(body, status=200 if database_ok else 503)
