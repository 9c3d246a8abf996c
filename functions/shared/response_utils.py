"""
Response utilities for Lambda handlers.

Provides consistent response formatting for success and error responses.
"""

import json
import os
from typing import Optional, Any, Dict, List

# CORS configuration for the single-page app
_PROD_ORIGINS = [
    "https://myvge.com",
    "https://www.myvge.com",
]
_DEV_ORIGINS = [
    "http://localhost:5173",  # Vite dev server
]


def get_allowed_origins() -> List[str]:
    """Origins allowed to call the functions from a browser."""
    if os.environ.get("ALLOW_DEV_CORS") == "true":
        return _PROD_ORIGINS + _DEV_ORIGINS
    return list(_PROD_ORIGINS)


def get_cors_headers(origin: Optional[str]) -> Dict[str, str]:
    """
    Get CORS headers if origin is allowed.

    Args:
        origin: The Origin header from the request

    Returns:
        Dict with CORS headers if origin is allowed, empty dict otherwise
    """
    if origin and origin in get_allowed_origins():
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Origin",
        }
    return {}


def error_response(
    status_code: int,
    code: str,
    message: str,
    retry_after: Optional[int] = None,
) -> dict:
    """
    Create an error response.

    Args:
        status_code: HTTP status code
        code: Machine-readable error code (snake_case)
        message: Human-readable error message
        retry_after: Optional Retry-After header value in seconds

    Returns:
        Lambda response dict
    """
    response_headers = {"Content-Type": "application/json"}
    if retry_after is not None:
        response_headers["Retry-After"] = str(retry_after)

    body = {
        "error": {
            "code": code,
            "message": message,
        }
    }

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(body),
    }


def success_response(
    data: Any,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
    origin: Optional[str] = None,
) -> dict:
    """
    Create a success response.

    Args:
        data: Response body data
        status_code: HTTP status code (default 200)
        headers: Additional response headers
        origin: Request Origin header for CORS

    Returns:
        Lambda response dict
    """
    response_headers = {"Content-Type": "application/json"}
    response_headers.update(get_cors_headers(origin))
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(data),
    }
