"""
Shared pytest fixtures for VGE subscription tests.
"""

import hashlib
import hmac
import json
import os
import sys
import time

import boto3
import pytest
from moto import mock_aws

# Add functions directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "functions"))

TEST_WEBHOOK_SECRET = "whsec_test_secret"
TEST_STRIPE_API_KEY = "sk_test_123"

PREMIUM_PRICE = "price_1QnikjCOhalwhG2QUgRtMAco"
PRO_PRICE = "price_1QnikPCOhalwhG2QVYfxwG5D"


def pytest_configure(config):
    """Set AWS credentials before test collection.

    This runs before test collection starts, ensuring boto3 resource
    creation during imports doesn't fail with NoRegionError.
    """
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_REGION", "us-east-1")
    os.environ.setdefault("PROFILES_TABLE", "vge-profiles")


@pytest.fixture(autouse=True)
def aws_credentials():
    """Set fake AWS credentials for all tests."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    os.environ["AWS_REGION"] = "us-east-1"


@pytest.fixture(autouse=True)
def reset_aws_clients():
    """Reset shared AWS client singletons between tests."""
    yield
    from shared.aws_clients import reset_clients

    reset_clients()


@pytest.fixture(autouse=True)
def reset_stripe_secrets():
    """Drop cached Stripe secrets so each test sees its own configuration."""
    from shared.billing_utils import reset_stripe_secrets_cache

    reset_stripe_secrets_cache()
    yield
    reset_stripe_secrets_cache()


def create_dynamodb_tables(dynamodb):
    """Create the profiles table.

    Args:
        dynamodb: boto3 DynamoDB resource
    """
    dynamodb.create_table(
        TableName="vge-profiles",
        KeySchema=[
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def mock_dynamodb():
    """Provide mocked DynamoDB with tables."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        create_dynamodb_tables(dynamodb)
        yield dynamodb


@pytest.fixture
def profiles_table(mock_dynamodb):
    return mock_dynamodb.Table("vge-profiles")


@pytest.fixture
def stripe_env(monkeypatch):
    """Configure Stripe secrets through plain environment variables."""
    monkeypatch.setenv("STRIPE_SECRET_KEY", TEST_STRIPE_API_KEY)
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    monkeypatch.delenv("STRIPE_SECRET_ARN", raising=False)
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET_ARN", raising=False)
    monkeypatch.delenv("STRICT_PLAN_MAPPING", raising=False)


@pytest.fixture
def api_gateway_event():
    """Base API Gateway event for Lambda handler tests."""
    return {
        "httpMethod": "GET",
        "headers": {},
        "pathParameters": {},
        "queryStringParameters": {},
        "body": None,
        "requestContext": {
            "identity": {"sourceIp": "127.0.0.1"},
        },
    }


def sign_payload(payload: str, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header value the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def build_stripe_event(event_type: str, data_object: dict, event_id: str = "evt_test") -> dict:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }


def subscription_object(price_id: str | None, user_id: str | None = "u1", sub_id: str = "sub_123") -> dict:
    """Minimal Stripe subscription object with one priced item."""
    obj = {
        "id": sub_id,
        "object": "subscription",
        "status": "active",
        "metadata": {"userId": user_id} if user_id else {},
        "items": {"data": []},
    }
    if price_id is not None:
        obj["items"]["data"].append({"id": "si_123", "price": {"id": price_id}})
    return obj


@pytest.fixture
def webhook_request(api_gateway_event):
    """Factory for signed webhook requests."""

    def _build(stripe_event: dict, secret: str = TEST_WEBHOOK_SECRET) -> dict:
        payload = json.dumps(stripe_event)
        api_gateway_event["httpMethod"] = "POST"
        api_gateway_event["body"] = payload
        api_gateway_event["headers"] = {"Stripe-Signature": sign_payload(payload, secret)}
        return api_gateway_event

    return _build
