"""
Stripe Webhook Endpoint - POST /webhooks/stripe

Reconciles profile subscription tier and status from Stripe events.
Uses Stripe signature verification instead of session auth.

Handles:
- checkout.session.completed: tier from the purchased plan, status active
- customer.subscription.updated: tier from the current plan, status active
- customer.subscription.deleted: downgrade to free, status cancelled

Any other event type is acknowledged and ignored.
"""

import base64
import json
import logging
import time

import stripe
from botocore.exceptions import ClientError

from shared.billing_utils import get_stripe_secrets, resolve_tier
from shared.constants import (
    CHECKOUT_COMPLETED,
    DEFAULT_TIER,
    RETRY_AFTER_SECONDS,
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    SUBSCRIPTION_DELETED,
    SUBSCRIPTION_UPDATED,
    THROTTLING_ERRORS,
    USER_ID_METADATA_KEYS,
)
from shared.errors import APIError, InvalidEventDataError, InvalidPayloadError
from shared.logging_utils import (
    configure_structured_logging,
    log_api_request,
    log_external_call,
    set_request_id,
)
from shared.profiles import update_subscription
from shared.response_utils import error_response, success_response
from shared.types import APIGatewayEvent, StripeEvent

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

WEBHOOK_PATH = "/webhooks/stripe"


def handler(event, context):
    """
    Lambda handler for Stripe webhooks.

    Returns 200 {"received": true} once the event is reconciled or ignored,
    400 for unauthenticated or malformed deliveries, and 500 for transient
    failures so Stripe redelivers.
    """
    start_time = time.time()
    configure_structured_logging()
    set_request_id(event)

    response = _process_webhook(event)

    latency_ms = (time.time() - start_time) * 1000
    log_api_request(logger, "POST", WEBHOOK_PATH, response["statusCode"], latency_ms)
    return response


def _process_webhook(event: APIGatewayEvent) -> dict:
    stripe_api_key, webhook_secret = get_stripe_secrets()

    if not stripe_api_key or not webhook_secret:
        logger.error("Stripe secrets not configured")
        return error_response(500, "stripe_not_configured", "Stripe not configured")

    stripe.api_key = stripe_api_key

    sig_header = _get_signature_header(event.get("headers") or {})
    if not sig_header:
        logger.warning("Missing Stripe signature")
        return error_response(400, "missing_signature", "Missing Stripe signature")

    # The body must reach signature verification byte-for-byte as sent
    try:
        payload = _get_raw_body(event)
    except ValueError as e:
        logger.warning(f"Could not decode webhook body: {e}")
        return error_response(400, "invalid_webhook_payload", "Invalid webhook payload")

    try:
        stripe.WebhookSignature.verify_header(
            payload, sig_header, webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Invalid Stripe signature: {e}")
        return error_response(400, "invalid_signature", "Invalid signature")

    try:
        stripe_event = _parse_event(payload)
    except InvalidPayloadError as e:
        logger.warning(f"Rejected webhook payload: {e.message}")
        return e.to_response()

    event_type = stripe_event["type"]
    data = stripe_event["data"]["object"]

    logger.info(f"Processing Stripe event: {event_type} (id={stripe_event.get('id')})")

    try:
        if event_type == CHECKOUT_COMPLETED:
            _handle_checkout_completed(data)

        elif event_type == SUBSCRIPTION_UPDATED:
            _handle_subscription_updated(data)

        elif event_type == SUBSCRIPTION_DELETED:
            _handle_subscription_deleted(data)

        else:
            logger.info(f"Unhandled event type: {event_type}")

    except APIError as e:
        logger.warning(f"Rejected {event_type}: {e.message}")
        return e.to_response()
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")
        if error_code in THROTTLING_ERRORS:
            logger.error(f"Transient error persisting {event_type}: {e}")
            return error_response(
                500, "temporary_error", "Temporary error, please retry", retry_after=RETRY_AFTER_SECONDS
            )
        logger.error(f"Failed to persist {event_type}: {e}")
        return error_response(400, "persistence_error", "Failed to update subscription")
    except (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError) as e:
        logger.error(f"Transient Stripe error handling {event_type}: {e}")
        return error_response(500, "stripe_error", "Stripe error, please retry", retry_after=RETRY_AFTER_SECONDS)
    except stripe.StripeError as e:
        logger.error(f"Stripe rejected request while handling {event_type}: {e}")
        return error_response(400, "stripe_request_failed", "Stripe request failed")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        # Don't leak internal field names in the response
        logger.error(f"Invalid data in {event_type}: {e}")
        return error_response(400, "invalid_event_data", "Invalid event data")
    except Exception as e:
        logger.error(f"Unexpected error handling {event_type}: {e}", exc_info=True)
        return error_response(500, "processing_failed", "Processing failed")

    return success_response({"received": True})


def _get_signature_header(headers: dict) -> str | None:
    """Find the Stripe-Signature header regardless of casing."""
    for name, value in headers.items():
        if name.lower() == "stripe-signature":
            return value
    return None


def _get_raw_body(event: dict) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body, validate=True).decode("utf-8")
    return body


def _parse_event(payload: str) -> StripeEvent:
    """Parse a verified payload into a Stripe event envelope."""
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        raise InvalidPayloadError("Webhook body is not valid JSON") from e

    if not isinstance(parsed, dict):
        raise InvalidPayloadError("Webhook body is not a Stripe event")

    event_type = parsed.get("type")
    data = parsed.get("data")
    if not isinstance(event_type, str) or not event_type:
        raise InvalidPayloadError("Stripe event has no type")
    if not isinstance(data, dict) or not isinstance(data.get("object"), dict):
        raise InvalidPayloadError("Stripe event has no data object")

    return parsed


def _get_user_id(obj: dict) -> str | None:
    """User ID embedded in metadata by the checkout session creator."""
    metadata = obj.get("metadata") or {}
    for key in USER_ID_METADATA_KEYS:
        user_id = metadata.get(key)
        if user_id:
            return user_id
    return None


def _first_price_id(subscription) -> str:
    """Price ID of a subscription's first item (the plan)."""
    try:
        price_id = subscription["items"]["data"][0]["price"]["id"]
    except (KeyError, IndexError, TypeError) as e:
        raise InvalidEventDataError("Subscription has no priced item") from e
    if not price_id:
        raise InvalidEventDataError("Subscription has no priced item")
    return price_id


def _retrieve_subscription(subscription_id: str):
    start_time = time.time()
    try:
        subscription = stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        log_external_call(
            logger, "stripe", "Subscription.retrieve", False, (time.time() - start_time) * 1000, error=str(e)
        )
        raise
    log_external_call(logger, "stripe", "Subscription.retrieve", True, (time.time() - start_time) * 1000)
    return subscription


def _apply_subscription(user_id: str, tier: str, status: str) -> bool:
    start_time = time.time()
    try:
        update_subscription(user_id, tier, status)
    except ClientError as e:
        log_external_call(
            logger, "dynamodb", "update_subscription", False, (time.time() - start_time) * 1000, error=str(e)
        )
        raise
    log_external_call(logger, "dynamodb", "update_subscription", True, (time.time() - start_time) * 1000)
    return True


def _handle_checkout_completed(session: dict) -> bool:
    """Checkout finished - set the purchased tier and mark active."""
    user_id = _get_user_id(session)
    if not user_id:
        logger.warning(f"No user ID in metadata of checkout session {session.get('id')}, skipping update")
        return False

    subscription_ref = session.get("subscription")
    if isinstance(subscription_ref, dict):
        subscription_ref = subscription_ref.get("id")
    if not subscription_ref:
        logger.info(f"Checkout session {session.get('id')} has no subscription, nothing to reconcile")
        return False

    subscription = _retrieve_subscription(subscription_ref)
    price_id = _first_price_id(subscription)
    tier = resolve_tier(price_id)

    logger.info(f"Checkout completed for {user_id}: price {price_id} -> tier {tier}")
    return _apply_subscription(user_id, tier, STATUS_ACTIVE)


def _handle_subscription_updated(subscription: dict) -> bool:
    """Plan changed - set the tier of the current plan and mark active."""
    user_id = _get_user_id(subscription)
    if not user_id:
        logger.warning(f"No user ID in metadata of subscription {subscription.get('id')}, skipping update")
        return False

    price_id = _first_price_id(subscription)
    tier = resolve_tier(price_id)

    logger.info(f"Subscription updated for {user_id}: price {price_id} -> tier {tier}")
    return _apply_subscription(user_id, tier, STATUS_ACTIVE)


def _handle_subscription_deleted(subscription: dict) -> bool:
    """Subscription ended - downgrade to free and mark cancelled.

    Stripe is the source of truth: the downgrade happens whatever tier the
    profile currently has.
    """
    user_id = _get_user_id(subscription)
    if not user_id:
        logger.warning(f"No user ID in metadata of subscription {subscription.get('id')}, skipping update")
        return False

    logger.info(f"Subscription deleted for {user_id}, downgrading to free")
    return _apply_subscription(user_id, DEFAULT_TIER, STATUS_CANCELLED)
