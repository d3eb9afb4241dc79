"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure:
- health_check: database connectivity check for load balancers
- api_exception_handler: DRF exception handler rendering application errors
"""

import logging

from django.conf import settings
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Used by Docker health checks, Kubernetes liveness checks and load balancers.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable or configuration incomplete

    Example Response:
        {
            "status": "healthy",
            "database": "connected"
        }
    """
    from authentication.dependencies import get_auth_services

    health_status = {
        "status": "healthy",
        "database": "unknown",
    }

    try:
        available = get_auth_services().store.is_available()
    except BaseApplicationError as exc:
        logger.error(f"Health check could not build services: {exc}")
        available = False

    if available:
        health_status["database"] = "connected"
        status_code = 200
    else:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        status_code = 503

    return JsonResponse(health_status, status=status_code)


def api_exception_handler(exc, context):
    """
    Render exceptions raised inside DRF views.

    - BaseApplicationError subclasses become ``{"error", "error_code", "details"}``
      with the status carried by the exception class.
    - DRF's own exceptions (parse errors, throttling) keep DRF's rendering.
    - Anything else is logged and reported as a generic 500. The exception
      text is included only when DEBUG is on.
    """
    if isinstance(exc, BaseApplicationError):
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__} in {_view_name(context)}: {exc}")
        body = exc.to_dict()
        if exc.status_code >= 500 and not settings.DEBUG:
            body = {"error": "Internal server error", "error_code": exc.error_code}
        return Response(body, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        return response

    logger.exception(f"Unhandled error in {_view_name(context)}")
    body = {"error": "Internal server error", "error_code": "INTERNAL_ERROR"}
    if settings.DEBUG:
        body["details"] = {"exception": f"{exc.__class__.__name__}: {exc}"}
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _view_name(context) -> str:
    view = context.get("view") if context else None
    return view.__class__.__name__ if view is not None else "unknown view"
