"""
Shared Type Definitions for Lambda Handlers.

Provides TypedDict definitions for AWS Lambda events and stored records.
"""

from typing import TypedDict, Optional, Any


class APIGatewayEvent(TypedDict, total=False):
    """API Gateway proxy event structure."""

    httpMethod: str
    headers: dict[str, str]
    pathParameters: Optional[dict[str, str]]
    queryStringParameters: Optional[dict[str, str]]
    body: Optional[str]
    requestContext: dict[str, Any]
    resource: str
    path: str
    isBase64Encoded: bool


class StripeEvent(TypedDict):
    """The parts of a Stripe event envelope the webhook reads."""

    id: str
    type: str
    data: dict[str, Any]


class SubscriptionRecord(TypedDict):
    """Subscription fields of a user profile."""

    user_id: str
    subscription_tier: str
    subscription_status: Optional[str]
    updated_at: Optional[str]
