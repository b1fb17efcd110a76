"""
Core views providing infrastructure endpoints and API error translation.

This module contains code that is not part of the business domain but is
shared by every API:
- health_check: liveness/readiness probe
- application_exception_handler: DRF hook mapping core.exceptions to responses
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and database health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable
    """
    health_status = {"status": "healthy", "database": "unknown"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.error("Health check database probe failed", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        return JsonResponse(health_status, status=503)

    return JsonResponse(health_status, status=200)


def application_exception_handler(exc, context):
    """
    Translate domain exceptions into JSON responses.

    BaseApplicationError subclasses carry their own status code and body
    (see core.exceptions). Anything else is left to DRF's default handler,
    which returns None for unhandled exceptions so Django reports a 500.
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"Request rejected: {exc.error_code}",
            extra={
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
