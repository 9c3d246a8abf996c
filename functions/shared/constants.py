"""
Shared constants for VGE subscriptions.
"""

# Subscription tiers, lowest first
SUBSCRIPTION_TIERS = ("free", "basic", "pro", "premium")

DEFAULT_TIER = "free"

# Tier assigned to price IDs we don't recognise (non-strict mode)
FALLBACK_TIER = "basic"

SUBSCRIPTION_STATUSES = ("active", "cancelled")

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"

# Stripe event types we reconcile
CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"

# Metadata keys the checkout session creator may use for the user ID
USER_ID_METADATA_KEYS = ("userId", "user_id")

# Seconds Stripe should wait before redelivering after a transient failure
RETRY_AFTER_SECONDS = 60

# DynamoDB throttling error codes (transient, safe to retry)
THROTTLING_ERRORS = (
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "ThrottlingException",
    "InternalServerError",
)
