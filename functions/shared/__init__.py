# Shared utilities package
from .billing_utils import get_stripe_secrets, resolve_tier
from .constants import SUBSCRIPTION_STATUSES, SUBSCRIPTION_TIERS
from .errors import APIError
from .profiles import get_subscription, update_subscription
from .response_utils import error_response, success_response

__all__ = [
    "get_stripe_secrets",
    "resolve_tier",
    "SUBSCRIPTION_TIERS",
    "SUBSCRIPTION_STATUSES",
    "get_subscription",
    "update_subscription",
    "error_response",
    "success_response",
    "APIError",
]
