"""
Profile subscription state in DynamoDB.

The profiles table holds one PROFILE item per user, keyed by the identity
provider's user ID. update_subscription is the only writer of the
subscription_tier and subscription_status fields.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from shared.aws_clients import get_dynamodb
from shared.constants import DEFAULT_TIER, SUBSCRIPTION_STATUSES, SUBSCRIPTION_TIERS
from shared.types import SubscriptionRecord

logger = logging.getLogger(__name__)

PROFILES_TABLE = os.environ.get("PROFILES_TABLE", "vge-profiles")
PROFILE_SK = "PROFILE"


def _profile_key(user_id: str) -> dict:
    return {"pk": user_id, "sk": PROFILE_SK}


def update_subscription(
    user_id: str,
    tier: str,
    status: str,
    updated_at: Optional[str] = None,
    table=None,
) -> bool:
    """
    Persist a user's subscription tier and status.

    A single UpdateItem; DynamoDB creates the profile item if it does not
    exist yet. Applying the same arguments twice leaves the same state.

    Args:
        user_id: Identity provider user ID (must be non-empty)
        tier: One of SUBSCRIPTION_TIERS
        status: One of SUBSCRIPTION_STATUSES
        updated_at: ISO-8601 timestamp, defaults to now (UTC)
        table: DynamoDB table resource. Fetched if not provided.

    Returns:
        True once the write has been accepted.

    Raises:
        ValueError: Invalid user_id, tier or status
        botocore.exceptions.ClientError: The write failed
    """
    if not user_id:
        raise ValueError("user_id is required to update a subscription")
    if tier not in SUBSCRIPTION_TIERS:
        raise ValueError(f"Unknown subscription tier: {tier}")
    if status not in SUBSCRIPTION_STATUSES:
        raise ValueError(f"Unknown subscription status: {status}")

    if table is None:
        table = get_dynamodb().Table(PROFILES_TABLE)

    if updated_at is None:
        updated_at = datetime.now(timezone.utc).isoformat()

    table.update_item(
        Key=_profile_key(user_id),
        UpdateExpression=(
            "SET subscription_tier = :tier, subscription_status = :status, updated_at = :now"
        ),
        ExpressionAttributeValues={
            ":tier": tier,
            ":status": status,
            ":now": updated_at,
        },
    )

    logger.info(
        f"Updated subscription for {user_id}: tier={tier}, status={status}",
        extra={"user_id": user_id, "subscription_tier": tier, "subscription_status": status},
    )
    return True


def get_subscription(user_id: str, table=None) -> SubscriptionRecord:
    """Read a user's subscription, applying defaults for missing fields."""
    if table is None:
        table = get_dynamodb().Table(PROFILES_TABLE)

    response = table.get_item(Key=_profile_key(user_id))
    item = response.get("Item") or {}

    return {
        "user_id": user_id,
        "subscription_tier": item.get("subscription_tier", DEFAULT_TIER),
        "subscription_status": item.get("subscription_status"),
        "updated_at": item.get("updated_at"),
    }
