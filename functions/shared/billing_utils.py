"""Shared billing utilities: Stripe secrets and price-to-tier resolution."""

import json
import logging
import os
import time

from botocore.exceptions import ClientError

from shared.aws_clients import get_secretsmanager
from shared.constants import FALLBACK_TIER
from shared.errors import UnknownPlanError

logger = logging.getLogger(__name__)

# Tier mapping from Stripe price IDs (configured via environment)
# Use `or` to handle empty string env vars left behind by deploy tooling
PRICE_TO_TIER = {
    (os.environ.get("STRIPE_PRICE_PREMIUM") or "price_1QnikjCOhalwhG2QUgRtMAco"): "premium",
    (os.environ.get("STRIPE_PRICE_PRO") or "price_1QnikPCOhalwhG2QVYfxwG5D"): "pro",
    (os.environ.get("STRIPE_PRICE_BASIC") or "price_basic"): "basic",
}

# Cached Stripe secrets with TTL
_stripe_secrets_cache: tuple[str | None, str | None] = (None, None)
_stripe_secrets_cache_time = 0.0
STRIPE_SECRETS_CACHE_TTL = 300  # 5 minutes


def strict_plan_mapping_enabled() -> bool:
    return os.environ.get("STRICT_PLAN_MAPPING", "").lower() == "true"


def resolve_tier(price_id: str, strict: bool | None = None, price_to_tier: dict | None = None) -> str:
    """Map a Stripe price ID to a subscription tier.

    Unknown price IDs resolve to "basic" unless strict mode is on. That
    fallback mis-tiers any plan added in Stripe but not configured here, so
    strict mode (argument, or STRICT_PLAN_MAPPING=true) raises instead.

    Args:
        price_id: Stripe price ID from the subscription's first item
        strict: Raise UnknownPlanError for unknown IDs. None reads the env.
        price_to_tier: Mapping to use instead of PRICE_TO_TIER

    Raises:
        ValueError: price_id is empty
        UnknownPlanError: price_id is unknown and strict mode is on
    """
    if not price_id:
        raise ValueError("price_id is required to resolve a tier")

    mapping = PRICE_TO_TIER if price_to_tier is None else price_to_tier
    tier = mapping.get(price_id)
    if tier:
        return tier

    if strict is None:
        strict = strict_plan_mapping_enabled()
    if strict:
        raise UnknownPlanError(price_id)

    logger.warning(f"Unrecognised price {price_id}, falling back to {FALLBACK_TIER} tier")
    return FALLBACK_TIER


def _read_secret(secret_id: str, json_field: str) -> str | None:
    """Fetch a secret that is either a plain string or JSON with `json_field`."""
    try:
        response = get_secretsmanager().get_secret_value(SecretId=secret_id)
    except ClientError as e:
        logger.error(f"Failed to retrieve secret {secret_id}: {e}")
        return None

    secret_value = response.get("SecretString", "")
    try:
        secret_json = json.loads(secret_value)
    except json.JSONDecodeError:
        return secret_value or None
    if isinstance(secret_json, dict):
        return secret_json.get(json_field) or secret_value
    return secret_value


def get_stripe_secrets() -> tuple[str | None, str | None]:
    """Return (api_key, webhook_secret), cached for STRIPE_SECRETS_CACHE_TTL.

    Plain environment variables win (local development); otherwise the
    values come from Secrets Manager.
    """
    global _stripe_secrets_cache, _stripe_secrets_cache_time

    if all(_stripe_secrets_cache) and (time.time() - _stripe_secrets_cache_time) < STRIPE_SECRETS_CACHE_TTL:
        return _stripe_secrets_cache

    api_key = os.environ.get("STRIPE_SECRET_KEY") or None
    webhook_secret = os.environ.get("STRIPE_WEBHOOK_SECRET") or None

    secret_arn = os.environ.get("STRIPE_SECRET_ARN")
    if not api_key and secret_arn:
        api_key = _read_secret(secret_arn, "key")

    webhook_secret_arn = os.environ.get("STRIPE_WEBHOOK_SECRET_ARN")
    if not webhook_secret and webhook_secret_arn:
        webhook_secret = _read_secret(webhook_secret_arn, "secret")

    # A partial result is retried on the next delivery instead of being cached
    if api_key and webhook_secret:
        _stripe_secrets_cache = (api_key, webhook_secret)
        _stripe_secrets_cache_time = time.time()
    return api_key, webhook_secret


def reset_stripe_secrets_cache() -> None:
    """Forget cached secrets. Used in tests and after secret rotation."""
    global _stripe_secrets_cache, _stripe_secrets_cache_time
    _stripe_secrets_cache = (None, None)
    _stripe_secrets_cache_time = 0.0
