"""Integration tests for the payment HTTP API.

Covers:
- POST /api/v1/payments/create-order/: gateway order for the checkout widget
- POST /api/v1/payments/verify/: signature check and confirmation
- POST /api/v1/payments/cod/
- POST /api/v1/payments/webhook/: raw-body HMAC, anonymous access
"""

import hashlib
import hmac
import json

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order
from modules.payments.signatures import payment_signature

pytestmark = pytest.mark.integration

PAYMENTS_URL = "/api/v1/payments/"


@pytest.fixture()
def order(user, product, place_order):
    return place_order(user, product, quantity=2)


class TestCreateOrder:
    def test_returns_checkout_parameters(self, auth_client, order):
        response = auth_client.post(
            f"{PAYMENTS_URL}create-order/", {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["amount"] == 222200
        assert data["currency"] == "INR"
        assert data["key_id"] == "rzp_test_key"
        assert data["gateway_order_id"].startswith("order_")

    def test_foreign_order(self, api_client, other_user, order):
        api_client.force_authenticate(user=other_user)

        response = api_client.post(
            f"{PAYMENTS_URL}create-order/", {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 403

    def test_missing_order_id(self, auth_client):
        response = auth_client.post(f"{PAYMENTS_URL}create-order/", {}, format="json")

        assert response.status_code == 400
        assert response.json()["details"][0]["attr"] == "order_id"

    def test_gateway_down(self, auth_client, order, gateway):
        gateway.configure(should_succeed=False)

        response = auth_client.post(
            f"{PAYMENTS_URL}create-order/", {"order_id": str(order.id)}, format="json"
        )

        assert response.status_code == 502
        assert response.json()["code"] == "upstream_error"


class TestVerify:
    def _intent(self, client, order):
        return client.post(
            f"{PAYMENTS_URL}create-order/", {"order_id": str(order.id)}, format="json"
        ).json()["data"]["gateway_order_id"]

    def test_confirms_order(self, auth_client, order, email_sender):
        gateway_order_id = self._intent(auth_client, order)

        response = auth_client.post(
            f"{PAYMENTS_URL}verify/",
            {
                "order_id": str(order.id),
                "gateway_order_id": gateway_order_id,
                "gateway_payment_id": "pay_API1",
                "signature": payment_signature("test-key-secret", gateway_order_id, "pay_API1"),
            },
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Payment verified successfully."
        assert body["data"]["order_status"] == "confirmed"
        assert body["data"]["payment_status"] == "completed"
        assert len(email_sender.outbox) == 1

    def test_bad_signature(self, auth_client, order):
        gateway_order_id = self._intent(auth_client, order)

        response = auth_client.post(
            f"{PAYMENTS_URL}verify/",
            {
                "order_id": str(order.id),
                "gateway_order_id": gateway_order_id,
                "gateway_payment_id": "pay_API1",
                "signature": "deadbeef",
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING


class TestCashOnDelivery:
    def test_confirms(self, auth_client, order):
        response = auth_client.post(f"{PAYMENTS_URL}cod/", {"order_id": str(order.id)}, format="json")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["order_status"] == "confirmed"
        assert data["payment_method"] == "cod"
        assert data["payment_status"] == "pending"

    def test_already_processed(self, auth_client, order):
        auth_client.post(f"{PAYMENTS_URL}cod/", {"order_id": str(order.id)}, format="json")

        response = auth_client.post(f"{PAYMENTS_URL}cod/", {"order_id": str(order.id)}, format="json")

        assert response.status_code == 409


class TestWebhook:
    def _post(self, client, event, secret=b"test-webhook-secret"):
        body = json.dumps(event).encode()
        signature = hmac.new(secret, body, hashlib.sha256).hexdigest()
        return client.post(
            f"{PAYMENTS_URL}webhook/",
            data=body,
            content_type="application/json",
            HTTP_X_RAZORPAY_SIGNATURE=signature,
        )

    def test_captured_confirms_order(self, api_client, order):
        event = {
            "event": "payment.captured",
            "payload": {
                "payment": {
                    "entity": {"id": "pay_WH1", "order_id": "", "notes": {"order_id": str(order.id)}}
                }
            },
        }

        response = self._post(api_client, event)

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "ok"}
        assert Order.objects.get(pk=order.pk).status == OrderStatus.CONFIRMED

    def test_bad_signature(self, api_client, order):
        response = self._post(api_client, {"event": "payment.captured"}, secret=b"guess")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"

    def test_missing_signature(self, api_client):
        response = api_client.post(
            f"{PAYMENTS_URL}webhook/", data=b"{}", content_type="application/json"
        )
        assert response.status_code == 400

    def test_ignores_bearer_tokens(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")

        response = self._post(api_client, {"event": "order.paid", "payload": {}})

        assert response.status_code == 200
