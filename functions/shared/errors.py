"""
Error types raised while reconciling subscriptions.

Each error knows its HTTP status and machine-readable code so the webhook
handler can turn it straight into a response.
"""

import json
from typing import Optional


class APIError(Exception):
    """Base class for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API Gateway response format."""
        body = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            body["error"]["details"] = self.details

        return {
            "statusCode": self.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body),
        }


class InvalidPayloadError(APIError):
    """Raised when a webhook body is not a well-formed Stripe event."""

    def __init__(self, message: str = "Invalid webhook payload"):
        super().__init__(
            code="invalid_webhook_payload",
            message=message,
            status_code=400,
        )


class InvalidEventDataError(APIError):
    """Raised when a verified event lacks the data needed to reconcile it."""

    def __init__(self, message: str = "Invalid event data"):
        super().__init__(
            code="invalid_event_data",
            message=message,
            status_code=400,
        )


class UnknownPlanError(APIError):
    """Raised in strict mode when a price ID maps to no known tier."""

    def __init__(self, price_id: str):
        super().__init__(
            code="unknown_plan",
            message=f"Unknown plan: {price_id}",
            status_code=400,
            details={"price_id": price_id},
        )
        self.price_id = price_id
