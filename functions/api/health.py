"""
Health Check Endpoint - GET /health

Returns service status and version information.
No authentication required.
"""

import time
from datetime import datetime, timezone

from shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from shared.response_utils import success_response

VERSION = "1.0.0"

logger = configure_structured_logging()


def handler(event, context):
    """
    Lambda handler for health check.

    Returns:
        200 with status information
    """
    start_time = time.time()
    set_request_id(event)

    headers = event.get("headers") or {}
    origin = headers.get("origin") or headers.get("Origin")

    response = success_response(
        {
            "status": "healthy",
            "version": VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        headers={"Cache-Control": "no-cache"},
        origin=origin,
    )

    latency_ms = (time.time() - start_time) * 1000
    log_api_request(logger, "GET", "/health", 200, latency_ms)

    return response
