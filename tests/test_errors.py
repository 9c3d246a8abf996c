"""
Tests for error types.
"""

import json

from shared.errors import APIError, InvalidEventDataError, InvalidPayloadError, UnknownPlanError


class TestAPIError:
    def test_to_response(self):
        error = APIError("some_code", "Something happened", status_code=409, details={"k": "v"})

        response = error.to_response()

        assert response["statusCode"] == 409
        assert response["headers"]["Content-Type"] == "application/json"
        assert json.loads(response["body"]) == {
            "error": {"code": "some_code", "message": "Something happened", "details": {"k": "v"}}
        }

    def test_omits_empty_details(self):
        body = json.loads(APIError("c", "m").to_response()["body"])

        assert "details" not in body["error"]


class TestWebhookErrors:
    def test_invalid_payload(self):
        error = InvalidPayloadError()

        assert error.status_code == 400
        assert error.code == "invalid_webhook_payload"

    def test_invalid_event_data(self):
        error = InvalidEventDataError("Subscription has no priced item")

        assert error.status_code == 400
        assert error.code == "invalid_event_data"
        assert str(error) == "Subscription has no priced item"

    def test_unknown_plan_carries_price_id(self):
        error = UnknownPlanError("price_mystery")

        body = json.loads(error.to_response()["body"])
        assert body["error"]["code"] == "unknown_plan"
        assert body["error"]["details"] == {"price_id": "price_mystery"}
