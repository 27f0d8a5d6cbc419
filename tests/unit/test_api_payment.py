"""Tests for checkout endpoints."""

from storybook.api import config
from storybook.api.models.responses import CreateOrderResponse, VerifyPaymentResponse

ORDER_REQUEST = {
    "amount": 29900,
    "storybookId": "story-1",
    "outputFormat": "pdf",
    "customerInfo": {"name": "Asha", "email": "asha@example.com", "phone": "9999999999"},
}

VERIFY_REQUEST = {
    "razorpay_order_id": "order_rzp",
    "razorpay_payment_id": "pay_1",
    "razorpay_signature": "abc",
    "orderId": "ord-1",
}


class TestCreateOrder:
    """Tests for POST /api/payment/create-order."""

    def test_create_order(self, client_with_mocks):
        client, mocks = client_with_mocks
        mocks.checkout.create_order.return_value = CreateOrderResponse(
            order_id="ord-1",
            razorpay_order_id="order_rzp",
            razorpay_key="rzp_test_key",
            amount=29900,
            receipt="receipt_1_abcd1234",
        )

        response = client.post("/api/payment/create-order", json=ORDER_REQUEST)

        assert response.status_code == 200
        data = response.json()
        assert data["razorpayOrderId"] == "order_rzp"
        assert data["razorpayKey"] == "rzp_test_key"
        request, user_id = mocks.checkout.create_order.call_args.args
        assert request.output_format == "pdf"
        assert user_id == "user-1"

    def test_unknown_output_format(self, client_with_mocks):
        """Formats outside the output options are rejected before checkout."""
        client, mocks = client_with_mocks

        response = client.post("/api/payment/create-order", json={**ORDER_REQUEST, "outputFormat": "vinyl"})

        assert response.status_code == 400
        errors = response.json()["error"]["details"]["errors"]
        assert errors[0]["path"] == "outputFormat"
        mocks.checkout.create_order.assert_not_called()

    def test_malformed_customer_email(self, client_with_mocks):
        client, mocks = client_with_mocks
        customer = {**ORDER_REQUEST["customerInfo"], "email": "asha@.example..com"}

        response = client.post("/api/payment/create-order", json={**ORDER_REQUEST, "customerInfo": customer})

        assert response.status_code == 400
        errors = response.json()["error"]["details"]["errors"]
        assert errors[0]["path"] == "customerInfo.email"
        mocks.checkout.create_order.assert_not_called()

    def test_non_positive_amount(self, client_with_mocks):
        client, _ = client_with_mocks

        response = client.post("/api/payment/create-order", json={**ORDER_REQUEST, "amount": 0})

        assert response.status_code == 400

    def test_requires_auth(self, anonymous_client):
        client, _ = anonymous_client

        response = client.post("/api/payment/create-order", json=ORDER_REQUEST)

        assert response.status_code == 401


class TestVerifyPayment:
    """Tests for POST /api/payment/verify."""

    def test_verified(self, client_with_mocks):
        client, mocks = client_with_mocks
        mocks.checkout.verify_payment.return_value = VerifyPaymentResponse(
            order_id="ord-1", payment_id="pay_1", message="Payment verified successfully"
        )

        response = client.post("/api/payment/verify", json=VERIFY_REQUEST)

        assert response.status_code == 200
        assert response.json()["paymentId"] == "pay_1"
        request, user_id = mocks.checkout.verify_payment.call_args.args
        assert request.order_id == "ord-1"
        assert user_id == "user-1"

    def test_signature_mismatch(self, client_with_mocks):
        client, mocks = client_with_mocks
        mocks.checkout.verify_payment.return_value = None

        response = client.post("/api/payment/verify", json=VERIFY_REQUEST)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Payment verification failed"


class TestSetupAndOptions:
    """Tests for the public configuration endpoints."""

    def test_setup_not_configured(self, anonymous_client, monkeypatch):
        client, _ = anonymous_client
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "")

        response = client.get("/api/payment/setup")

        assert response.status_code == 200
        data = response.json()
        assert data["configured"] is False
        assert data["currentKeyId"] == "Not set"
        assert data["testCards"]["cardNumber"] == "4111 1111 1111 1111"

    def test_setup_truncates_key(self, anonymous_client, monkeypatch):
        """Only the first 20 characters of the key id are shown."""
        client, _ = anonymous_client
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "rzp_test_0123456789abcdefghij")
        monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", "secret")

        data = client.get("/api/payment/setup").json()

        assert data["configured"] is True
        assert data["currentKeyId"] == "rzp_test_0123456789a..."

    def test_output_options(self, anonymous_client):
        client, _ = anonymous_client

        data = client.get("/api/payment/output-options").json()

        assert data["success"] is True
        assert data["options"][0]["id"] == "pdf"
        assert {option["id"] for option in data["options"]} >= {"hardcover", "softcover", "giftBox"}
